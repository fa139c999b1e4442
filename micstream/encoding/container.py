"""Container encoding through PyAV.

PCM blocks become s16 ``av.AudioFrame``s, the codec context resamples them
to what the codec needs, and muxed packets are written to a non-seekable
sink so the container comes out as a forward-only byte stream. The container
type is negotiated once per session against what the linked FFmpeg build can
mux and encode.
"""

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import List, Optional, Sequence, Set, Tuple

import av
import numpy as np
from av.codec import Codec
from av.error import FFmpegError
from av.format import ContainerFormat as AvContainerFormat

from ..errors import EncoderError, EncoderInitFailure
from ..models.audio import PcmBlock
from .base import AbstractEncoder

logger = logging.getLogger(__name__)

FALLBACK_MIME_TYPE = "application/octet-stream"
FALLBACK_MUXER = "matroska"
FALLBACK_CODEC = "pcm_s16le"
OPUS_SAMPLE_RATE = 48000


@dataclass(frozen=True)
class ContainerFormat:
    """How a MIME tag maps onto a muxer and candidate audio encoders."""
    mime_type: str
    muxer: str
    codecs: Tuple[str, ...]


CONTAINER_FORMATS = {
    "audio/webm;codecs=opus": ContainerFormat("audio/webm;codecs=opus", "webm", ("libopus",)),
    "audio/webm": ContainerFormat("audio/webm", "webm", ("libopus", "libvorbis")),
    "audio/ogg;codecs=opus": ContainerFormat("audio/ogg;codecs=opus", "ogg", ("libopus",)),
    "audio/ogg": ContainerFormat("audio/ogg", "ogg", ("libvorbis", "libopus", "flac")),
}


@dataclass
class CodecCapabilities:
    """Muxers and audio encoders offered by the linked FFmpeg libraries."""
    muxers: Set[str] = field(default_factory=set)
    encoders: Set[str] = field(default_factory=set)

    @property
    def available(self) -> bool:
        return bool(self.muxers)

    def resolve(self, mime_type: str) -> Optional[Tuple[str, str]]:
        """Return (muxer, codec) for a MIME tag, or None if unsupported."""
        fmt = CONTAINER_FORMATS.get(mime_type.lower())
        if fmt is None or fmt.muxer not in self.muxers:
            return None
        for codec in fmt.codecs:
            if codec in self.encoders:
                return fmt.muxer, codec
        return None

    @property
    def fallback(self) -> Optional[Tuple[str, str]]:
        if FALLBACK_MUXER in self.muxers and FALLBACK_CODEC in self.encoders:
            return FALLBACK_MUXER, FALLBACK_CODEC
        return None


def has_muxer(name: str) -> bool:
    try:
        return bool(AvContainerFormat(name, "w").is_output)
    except ValueError:
        return False


def has_encoder(name: str) -> bool:
    try:
        codec = Codec(name, "w")
    except ValueError:
        return False
    return codec.type == "audio"


def probe_capabilities() -> CodecCapabilities:
    """Ask PyAV which of the known muxers and audio encoders it can use."""
    muxers = {fmt.muxer for fmt in CONTAINER_FORMATS.values()} | {FALLBACK_MUXER}
    codecs = {c for fmt in CONTAINER_FORMATS.values() for c in fmt.codecs} | {FALLBACK_CODEC}

    caps = CodecCapabilities(
        muxers={name for name in muxers if has_muxer(name)},
        encoders={name for name in codecs if has_encoder(name)},
    )
    logger.debug(f"PyAV muxers: {sorted(caps.muxers)}, audio encoders: {sorted(caps.encoders)}")
    return caps


def probe_supported_types(preferences: Sequence[str], capabilities: CodecCapabilities) -> List[str]:
    """Filter ``preferences`` down to the tags that can be produced."""
    return [mime for mime in preferences if capabilities.resolve(mime) is not None]


def negotiate_mime_type(preferences: Sequence[str], supported: Sequence[str]) -> str:
    """First preferred tag that is supported, else the untyped fallback."""
    supported_set = {s.lower() for s in supported}
    for mime in preferences:
        if mime.lower() in supported_set:
            return mime
    return FALLBACK_MIME_TYPE


class ChunkSink:
    """Write-only file object for PyAV; no ``seek`` keeps the muxer in streaming mode."""

    def __init__(self):
        self._chunks: List[bytes] = []

    def write(self, data) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


class ContainerEncoder(AbstractEncoder):
    """Delegated container strategy: libavformat muxes, we collect what it writes."""

    strategy = "container"

    def __init__(
        self,
        sample_rate: int,
        channels: int,
        mime_type: str,
        muxer: str,
        codec: str,
        bitrate_kbps: Optional[int] = 128,
    ):
        super().__init__(sample_rate, channels)
        self._mime_type = mime_type
        self.muxer = muxer
        self.codec = codec
        self.bitrate_kbps = bitrate_kbps

        self._sink = ChunkSink()
        self._container = None
        self._stream = None
        self._samples_written = 0
        self._finalized = False

    @property
    def mime_type(self) -> str:
        return self._mime_type

    @property
    def layout(self) -> str:
        return "stereo" if self.channels == 2 else "mono"

    @property
    def output_rate(self) -> int:
        return OPUS_SAMPLE_RATE if "opus" in self.codec else self.sample_rate

    def open(self) -> None:
        if self.channels not in (1, 2):
            raise EncoderInitFailure(f"Container encoding supports 1 or 2 channels, got {self.channels}")

        try:
            container = av.open(self._sink, mode="w", format=self.muxer)
        except (FFmpegError, ValueError, OSError) as e:
            raise EncoderInitFailure(f"Could not open {self.muxer} muxer: {e}") from e

        try:
            stream = container.add_stream(self.codec, rate=self.output_rate)
            stream.codec_context.layout = self.layout
            if self.bitrate_kbps and not self.codec.startswith(("pcm_", "flac")):
                stream.codec_context.bit_rate = self.bitrate_kbps * 1000
            stream.time_base = Fraction(1, self.output_rate)
        except (FFmpegError, ValueError, TypeError) as e:
            container.close()
            raise EncoderInitFailure(f"Could not add {self.codec} stream: {e}") from e

        self._container = container
        self._stream = stream
        logger.info(f"Container encoder ready ({self._mime_type}, muxer={self.muxer}, "
                    f"codec={self.codec}, {self.sample_rate}Hz -> {self.output_rate}Hz)")

    def encode(self, pcm: PcmBlock) -> bytes:
        if self._container is None or self._finalized:
            raise EncoderError("Container encoder is not open")
        if pcm.channel_count != self.channels:
            raise EncoderError(f"Expected {self.channels} channels, got {pcm.channel_count}")

        samples = np.frombuffer(pcm.interleaved(), dtype=np.int16).reshape(1, -1)
        frame = av.AudioFrame.from_ndarray(samples, format="s16", layout=self.layout)
        frame.sample_rate = self.sample_rate
        frame.time_base = Fraction(1, self.sample_rate)
        frame.pts = self._samples_written
        self._samples_written += pcm.frame_count

        try:
            for packet in self._stream.encode(frame):
                self._container.mux(packet)
        except FFmpegError as e:
            raise EncoderError(f"{self.codec} rejected block {pcm.sequence_number}: {e}") from e
        return self._sink.drain()

    def finalize(self) -> bytes:
        if self._container is None:
            raise EncoderError("Container encoder is not open")
        if self._finalized:
            raise EncoderError("Container encoder already finalized")
        self._finalized = True

        try:
            for packet in self._stream.encode():
                self._container.mux(packet)
            self._container.close()
        except FFmpegError as e:
            raise EncoderError(f"Could not finish {self.muxer} container: {e}") from e
        self._container = None

        logger.debug(f"Container finalized after {self._samples_written} samples")
        return self._sink.drain()

    def close(self) -> None:
        container, self._container = self._container, None
        if container is None:
            return
        try:
            container.close()
        except FFmpegError as e:
            logger.debug(f"Closing unfinished container failed: {e}")
