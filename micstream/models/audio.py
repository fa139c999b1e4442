"""Audio-related data models."""

import time
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class AudioFrameBlock:
    """One delivery of normalized float samples, one buffer per channel."""
    channels: Tuple[np.ndarray, ...]
    sequence_number: int = 0
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if len(self.channels) == 0:
            raise ValueError("AudioFrameBlock needs at least one channel")

        buffers = []
        for buf in self.channels:
            arr = np.array(buf, dtype=np.float32, copy=True).reshape(-1)
            arr.setflags(write=False)
            buffers.append(arr)

        lengths = {len(buf) for buf in buffers}
        if len(lengths) != 1:
            raise ValueError(f"All channels must have equal length, got {sorted(lengths)}")

        object.__setattr__(self, "channels", tuple(buffers))

    @classmethod
    def from_interleaved(cls, data: bytes, channels: int,
                         sequence_number: int = 0) -> "AudioFrameBlock":
        """Build a block from an interleaved float32 buffer (PortAudio layout)."""
        samples = np.frombuffer(data, dtype=np.float32)
        if channels < 1 or len(samples) % channels:
            raise ValueError(f"Buffer of {len(samples)} samples does not split into {channels} channels")
        frames = samples.reshape(-1, channels)
        return cls(
            channels=tuple(frames[:, i] for i in range(channels)),
            sequence_number=sequence_number,
        )

    @property
    def channel_count(self) -> int:
        return len(self.channels)

    @property
    def frame_count(self) -> int:
        return len(self.channels[0])


@dataclass(frozen=True)
class PcmBlock:
    """Signed 16-bit samples per channel, derived from an AudioFrameBlock."""
    channels: Tuple[np.ndarray, ...]
    sequence_number: int = 0

    @property
    def channel_count(self) -> int:
        return len(self.channels)

    @property
    def frame_count(self) -> int:
        return len(self.channels[0]) if self.channels else 0

    def interleaved(self) -> bytes:
        """Little-endian interleaved int16 bytes, the layout encoders consume."""
        stacked = np.stack(self.channels, axis=1).astype('<i2', copy=False)
        return stacked.tobytes()


@dataclass
class BridgeStats:
    """Capture bridge statistics."""
    connected: bool
    delivered: int
    dropped: int
    pending: int
    max_pending: int
