"""Float-to-PCM16 conversion and channel mapping for encoder input."""

import logging

import numpy as np

from ..models.audio import AudioFrameBlock, PcmBlock

logger = logging.getLogger(__name__)


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Convert normalized float samples to signed 16-bit integers.

    NaN samples become 0.0 and the rest are clamped to [-1.0, 1.0].
    Negative values scale by 32768 and non-negative values by 32767, then
    round half up, so -1.0 maps to -32768, 1.0 to 32767 and 0.0 to 0.
    """
    finite = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0, posinf=1.0, neginf=-1.0)
    clipped = np.clip(finite, -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.floor(scaled + 0.5).astype(np.int16)


def frame_block(block: AudioFrameBlock, out_channels: int) -> PcmBlock:
    """Map a captured block onto ``out_channels`` PCM channels.

    Mono takes channel 0. Stereo takes channel 0 as left and channel 1 as
    right, reusing channel 0 when the source has a single channel. Source
    channels beyond the first two are not encoded.
    """
    if out_channels not in (1, 2):
        raise ValueError(f"Encoder channel count must be 1 or 2, got {out_channels}")

    left = to_pcm16(block.channels[0])
    if out_channels == 1:
        return PcmBlock(channels=(left,), sequence_number=block.sequence_number)

    if block.channel_count > 1:
        right = to_pcm16(block.channels[1])
    else:
        right = left
    return PcmBlock(channels=(left, right), sequence_number=block.sequence_number)
