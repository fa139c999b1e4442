"""micstream - streaming microphone capture and compression."""

__version__ = "0.1.0"
