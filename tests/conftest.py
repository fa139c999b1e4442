"""Pytest configuration and fixtures for micstream tests."""

import pytest
import tempfile
import logging
import time
from typing import List, Optional
from unittest.mock import Mock, patch

import numpy as np
from pubsub import pub

from micstream.config import MicStreamConfig
from micstream.encoding.base import AbstractEncoder
from micstream.errors import EncoderError, TeardownFault
from micstream.models.audio import AudioFrameBlock, PcmBlock


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without audio hardware")
    config.addinivalue_line("markers", "integration: tests wiring several components together")
    config.addinivalue_line("markers", "slow: tests that take more than a second")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop listeners left behind by a previous test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def test_config():
    """Built-in configuration with a short worker poll interval."""
    config = MicStreamConfig()
    config.set('encoding.strategy', 'software')
    config.set('bridge.poll_interval_seconds', 0.01)
    return config


class FakeCaptureStream:
    """Stands in for CaptureStream; tests push blocks by hand."""

    def __init__(self, channels: int = 1, sample_rate: int = 44100, device_name: str = "fake mic"):
        self.channels = channels
        self.sample_rate = sample_rate
        self.device_name = device_name
        self.callback = None
        self.error_callback = None
        self.started = False
        self.start_error: Optional[Exception] = None
        self.fail_on_start: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.close_calls = 0
        self.sequence = 0

    def start(self, callback, error_callback=None):
        if self.start_error:
            raise self.start_error
        self.callback = callback
        self.error_callback = error_callback
        self.started = True
        if self.fail_on_start:
            error_callback(self.fail_on_start)

    def deliver(self, *channels) -> AudioFrameBlock:
        block = AudioFrameBlock(channels=tuple(channels), sequence_number=self.sequence)
        self.sequence += 1
        self.callback(block)
        return block

    def deliver_silence(self, frames: int = 128) -> AudioFrameBlock:
        return self.deliver(*[np.zeros(frames, dtype=np.float32)] * self.channels)

    def fail(self, error: Exception) -> None:
        self.error_callback(error)

    def close(self):
        self.close_calls += 1
        if self.close_error:
            raise TeardownFault([self.close_error])


class FakeAudioDevice:
    """Stands in for AudioDevice."""

    def __init__(self, stream: Optional[FakeCaptureStream] = None, error: Optional[Exception] = None):
        self.stream = stream or FakeCaptureStream()
        self.error = error
        self.request_count = 0

    def request_access(self):
        self.request_count += 1
        if self.error:
            raise self.error
        return self.stream


class RecordingEncoder(AbstractEncoder):
    """Encoder that records its calls and returns one tagged chunk per block."""

    strategy = "software"

    def __init__(self, sample_rate: int = 44100, channels: int = 1, fail_on=()):
        super().__init__(sample_rate, channels)
        self.fail_on = set(fail_on)
        self.encoded: List[PcmBlock] = []
        self.finalize_calls = 0
        self.close_calls = 0

    @property
    def mime_type(self) -> str:
        return "audio/mpeg"

    def open(self) -> None:
        pass

    def encode(self, pcm: PcmBlock) -> bytes:
        if pcm.sequence_number in self.fail_on:
            raise EncoderError(f"cannot encode block {pcm.sequence_number}")
        self.encoded.append(pcm)
        return f"[{pcm.sequence_number}]".encode()

    def finalize(self) -> bytes:
        self.finalize_calls += 1
        return b"[end]"

    def close(self) -> None:
        self.close_calls += 1


class SlowEncoder(RecordingEncoder):
    """RecordingEncoder that takes a while per block so the bridge backs up."""

    def __init__(self, *args, delay: float = 0.02, **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = delay

    def encode(self, pcm: PcmBlock) -> bytes:
        time.sleep(self.delay)
        return super().encode(pcm)


@pytest.fixture
def fake_stream():
    return FakeCaptureStream()


@pytest.fixture
def fake_device(fake_stream):
    return FakeAudioDevice(fake_stream)


@pytest.fixture
def recording_encoder():
    return RecordingEncoder()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_pyaudio_instance.get_host_api_count.return_value = 1
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            "index": 0,
            "name": "Test Microphone",
            "maxInputChannels": 2,
            "defaultSampleRate": 48000.0,
        }
        mock_pyaudio_instance.open.return_value = mock_stream

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
