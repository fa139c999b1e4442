"""Encoding strategy selection.

``auto`` prefers the delegated container strategy when PyAV can produce one
of the preferred container types, and falls back to in-process MP3 encoding
otherwise.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import DEFAULT_MIME_PREFERENCES, MicStreamConfig
from ..errors import EncoderInitFailure
from .base import AbstractEncoder
from .container import (
    FALLBACK_MIME_TYPE,
    CodecCapabilities,
    ContainerEncoder,
    negotiate_mime_type,
    probe_capabilities,
    probe_supported_types,
)
from .software import Mp3Encoder

logger = logging.getLogger(__name__)

STRATEGIES = ("auto", "container", "software")


@dataclass
class StrategyChoice:
    """Outcome of strategy negotiation for one session."""
    strategy: str
    mime_type: str
    muxer: Optional[str] = None
    codec: Optional[str] = None


def select_strategy(
    strategy: str = "auto",
    preferences: Sequence[str] = DEFAULT_MIME_PREFERENCES,
    capabilities: Optional[CodecCapabilities] = None,
) -> StrategyChoice:
    """Resolve the encoding strategy and container tag.

    Args:
        strategy: "auto", "container" or "software"
        preferences: Container MIME tags in preference order
        capabilities: Pre-probed codec capabilities, probed here if None
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown encoding strategy '{strategy}', expected one of {STRATEGIES}")

    if strategy == "software":
        return StrategyChoice(strategy="software", mime_type="audio/mpeg")

    if capabilities is None:
        capabilities = probe_capabilities()

    supported = probe_supported_types(preferences, capabilities)
    mime_type = negotiate_mime_type(preferences, supported)
    logger.info(f"Container types supported: {supported or 'none'}; negotiated {mime_type}")

    if mime_type != FALLBACK_MIME_TYPE:
        muxer, codec = capabilities.resolve(mime_type)
        return StrategyChoice(strategy="container", mime_type=mime_type, muxer=muxer, codec=codec)

    if strategy == "auto":
        logger.info("No preferred container type available, using software MP3 encoding")
        return StrategyChoice(strategy="software", mime_type="audio/mpeg")

    if capabilities.fallback is None:
        raise EncoderInitFailure("Container strategy requested but no container muxer is available")
    muxer, codec = capabilities.fallback
    return StrategyChoice(strategy="container", mime_type=FALLBACK_MIME_TYPE, muxer=muxer, codec=codec)


def create_encoder(choice: StrategyChoice, sample_rate: int, channels: int,
                   config: Optional[MicStreamConfig] = None) -> AbstractEncoder:
    """Build and open the encoder for a negotiated strategy.

    Raises:
        EncoderInitFailure: if the encoder cannot be constructed or opened
    """
    config = config or MicStreamConfig()
    bitrate = config.get('encoding.bitrate_kbps', 128)

    try:
        if choice.strategy == "software":
            encoder = Mp3Encoder(
                sample_rate=sample_rate,
                channels=channels,
                bitrate_kbps=bitrate,
                quality=config.get('encoding.quality', 2),
            )
        else:
            encoder = ContainerEncoder(
                sample_rate=sample_rate,
                channels=channels,
                mime_type=choice.mime_type,
                muxer=choice.muxer,
                codec=choice.codec,
                bitrate_kbps=bitrate,
            )
        encoder.open()
    except EncoderInitFailure:
        raise
    except Exception as e:
        raise EncoderInitFailure(f"Could not create {choice.strategy} encoder: {e}") from e

    return encoder
