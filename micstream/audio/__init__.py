"""Audio capture and processing module."""

from .capture import AudioDevice, CaptureStream
from .bridge import CaptureBridge
from .audio_pub import AudioPublisher
from .assembler import OutputAssembler
from .framer import to_pcm16, frame_block

__all__ = [
    'AudioDevice',
    'CaptureStream',
    'CaptureBridge',
    'AudioPublisher',
    'OutputAssembler',
    'to_pcm16',
    'frame_block',
]
