from setuptools import setup, find_packages

setup(
    name="micstream",
    version="0.1.0",
    description="Streaming microphone capture with incremental compressed encoding",
    author="",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "lameenc>=1.4.0",
        "av>=10.0.0",
        "rich>=12.5.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "micstream=micstream.main:main",
        ],
    },
)
