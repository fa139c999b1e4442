"""Capture device access over PyAudio with callback-driven block delivery."""

import pyaudio
import logging
import threading
from datetime import datetime
from typing import Optional, Callable, Dict, Any, List
from ..errors import DeviceUnavailable, TeardownFault, UnsupportedPlatform
from ..models.audio import AudioFrameBlock


logger = logging.getLogger(__name__)


class CaptureStream:
    """An opened input stream granted by ``AudioDevice.request_access``.

    PortAudio invokes the stream callback on its own real-time thread; each
    buffer becomes one AudioFrameBlock handed to the block callback.
    """

    def __init__(
        self,
        pyaudio_instance: pyaudio.PyAudio,
        channels: int,
        sample_rate: int,
        frames_per_buffer: int = 1024,
        device_index: Optional[int] = None,
        device_name: str = "default",
    ):
        self.pyaudio_instance = pyaudio_instance
        self.channels = channels
        self.sample_rate = sample_rate
        self.frames_per_buffer = frames_per_buffer
        self.device_index = device_index
        self.device_name = device_name

        self.stream: Optional[pyaudio.Stream] = None
        self._block_callback: Optional[Callable[[AudioFrameBlock], None]] = None
        self._error_callback: Optional[Callable[[BaseException], None]] = None
        self._close_lock = threading.Lock()
        self.closed = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_blocks = 0
        self.overflow_count = 0

    def _open(self) -> None:
        self.stream = self.pyaudio_instance.open(
            format=pyaudio.paFloat32,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.device_index,
            frames_per_buffer=self.frames_per_buffer,
            stream_callback=self._on_buffer,
            start=False,
        )
        logger.info(f"Audio stream opened on '{self.device_name}': {self.sample_rate}Hz, "
                    f"{self.channels}ch, {self.frames_per_buffer} frames/buffer")

    def start(self, callback: Callable[[AudioFrameBlock], None],
              error_callback: Optional[Callable[[BaseException], None]] = None) -> None:
        """Begin delivering blocks to ``callback``."""
        if self.closed or self.stream is None:
            raise RuntimeError("Capture stream is closed")
        self._block_callback = callback
        self._error_callback = error_callback
        self.start_time = datetime.now()
        self.stream.start_stream()
        logger.info("Audio stream started")

    def _on_buffer(self, in_data, frame_count, time_info, status):
        """PortAudio stream callback."""
        if status & pyaudio.paInputOverflow:
            self.overflow_count += 1
            logger.debug("Input overflow reported by PortAudio")

        try:
            block = AudioFrameBlock.from_interleaved(
                in_data, self.channels, sequence_number=self.total_blocks
            )
            self.total_blocks += 1
            if self._block_callback:
                self._block_callback(block)
        except Exception as e:
            logger.error(f"Capture callback failed: {e}")
            if self._error_callback:
                self._error_callback(e)
            return (None, pyaudio.paAbort)

        return (None, pyaudio.paContinue)

    def close(self) -> None:
        """Stop the stream and release PortAudio. Every step is attempted."""
        with self._close_lock:
            if self.closed:
                return
            self.closed = True

        faults: List[BaseException] = []
        if self.stream is not None:
            for step in (self.stream.stop_stream, self.stream.close):
                try:
                    step()
                except Exception as e:
                    logger.warning(f"Stream release step {step.__name__} failed: {e}")
                    faults.append(e)
            self.stream = None

        try:
            self.pyaudio_instance.terminate()
        except Exception as e:
            logger.warning(f"PyAudio terminate failed: {e}")
            faults.append(e)

        logger.info(f"Audio stream closed. Total blocks: {self.total_blocks}, "
                    f"overflows: {self.overflow_count}")
        if faults:
            raise TeardownFault(faults)

    def get_capture_stats(self) -> Dict[str, Any]:
        """Get capture statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return {
            "device_name": self.device_name,
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "duration_seconds": duration,
            "total_blocks": self.total_blocks,
            "overflow_count": self.overflow_count,
            "closed": self.closed,
        }


class AudioDevice:
    """Grants access to an input device as a CaptureStream."""

    def __init__(
        self,
        device_index: Optional[int] = None,
        sample_rate: Optional[int] = None,
        channels: Optional[int] = None,
        frames_per_buffer: int = 1024,
    ):
        """Initialize the device collaborator.

        Args:
            device_index: PortAudio device index, None for the default input
            sample_rate: Requested rate, None for the device default
            channels: Requested channels, None for up to two device channels
            frames_per_buffer: Samples per channel in each delivered block
        """
        self.device_index = device_index
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_per_buffer = frames_per_buffer

    def request_access(self) -> CaptureStream:
        """Open the input device.

        Raises:
            UnsupportedPlatform: PortAudio is unusable or has no host API
            DeviceUnavailable: no usable input device, or opening was refused
        """
        try:
            pyaudio_instance = pyaudio.PyAudio()
        except Exception as e:
            raise UnsupportedPlatform(f"PortAudio could not be initialized: {e}") from e

        try:
            if pyaudio_instance.get_host_api_count() == 0:
                raise UnsupportedPlatform("PortAudio reports no host audio API")

            try:
                if self.device_index is not None:
                    info = pyaudio_instance.get_device_info_by_index(self.device_index)
                else:
                    info = pyaudio_instance.get_default_input_device_info()
            except (IOError, OSError, ValueError) as e:
                raise DeviceUnavailable(f"No input device available: {e}") from e

            max_channels = int(info.get("maxInputChannels", 0))
            if max_channels < 1:
                raise DeviceUnavailable(f"Device '{info.get('name')}' has no input channels")

            channels = min(self.channels or 2, max_channels)
            sample_rate = int(self.sample_rate or info.get("defaultSampleRate", 44100))

            stream = CaptureStream(
                pyaudio_instance,
                channels=channels,
                sample_rate=sample_rate,
                frames_per_buffer=self.frames_per_buffer,
                device_index=self.device_index,
                device_name=str(info.get("name", "default")),
            )
            try:
                stream._open()
            except (IOError, OSError, ValueError) as e:
                raise DeviceUnavailable(f"Could not open input stream: {e}") from e
            return stream

        except Exception:
            pyaudio_instance.terminate()
            raise
