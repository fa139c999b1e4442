"""In-process MP3 encoding of converted PCM blocks."""

import logging
from typing import Optional

import lameenc

from ..errors import EncoderError, EncoderInitFailure
from ..models.audio import PcmBlock
from .base import AbstractEncoder

logger = logging.getLogger(__name__)

# Input rates accepted by LAME
LAME_SAMPLE_RATES = (8000, 11025, 12000, 16000, 22050, 24000, 32000, 44100, 48000)


class Mp3Encoder(AbstractEncoder):
    """Software PCM strategy backed by lameenc."""

    strategy = "software"

    def __init__(self, sample_rate: int, channels: int,
                 bitrate_kbps: int = 128, quality: int = 2):
        super().__init__(sample_rate, channels)
        self.bitrate_kbps = bitrate_kbps
        self.quality = quality
        self._encoder: Optional[lameenc.Encoder] = None
        self._finalized = False

    @property
    def mime_type(self) -> str:
        return "audio/mpeg"

    def open(self) -> None:
        if self.channels not in (1, 2):
            raise EncoderInitFailure(f"MP3 supports 1 or 2 channels, got {self.channels}")
        if self.sample_rate not in LAME_SAMPLE_RATES:
            raise EncoderInitFailure(f"MP3 does not support {self.sample_rate}Hz input")

        try:
            encoder = lameenc.Encoder()
            encoder.set_bit_rate(self.bitrate_kbps)
            encoder.set_in_sample_rate(self.sample_rate)
            encoder.set_channels(self.channels)
            encoder.set_quality(self.quality)
        except Exception as e:
            raise EncoderInitFailure(f"Could not configure MP3 encoder: {e}") from e

        self._encoder = encoder
        logger.info(f"MP3 encoder ready: {self.sample_rate}Hz, {self.channels}ch, "
                    f"{self.bitrate_kbps}kbps, quality {self.quality}")

    def encode(self, pcm: PcmBlock) -> bytes:
        if self._encoder is None or self._finalized:
            raise EncoderError("MP3 encoder is not open")
        if pcm.channel_count != self.channels:
            raise EncoderError(f"Expected {self.channels} channels, got {pcm.channel_count}")
        return bytes(self._encoder.encode(pcm.interleaved()))

    def finalize(self) -> bytes:
        if self._encoder is None:
            raise EncoderError("MP3 encoder is not open")
        if self._finalized:
            raise EncoderError("MP3 encoder already finalized")
        self._finalized = True
        return bytes(self._encoder.flush())

    def close(self) -> None:
        self._encoder = None
