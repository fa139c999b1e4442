"""Streaming encoder adapters."""

from .base import AbstractEncoder
from .software import Mp3Encoder
from .container import (
    ContainerEncoder,
    CodecCapabilities,
    probe_capabilities,
    probe_supported_types,
    negotiate_mime_type,
)
from .factory import StrategyChoice, select_strategy, create_encoder

__all__ = [
    "AbstractEncoder",
    "Mp3Encoder",
    "ContainerEncoder",
    "CodecCapabilities",
    "probe_capabilities",
    "probe_supported_types",
    "negotiate_mime_type",
    "StrategyChoice",
    "select_strategy",
    "create_encoder",
]
