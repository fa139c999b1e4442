"""Data models for the micstream application."""

from .audio import AudioFrameBlock, PcmBlock, BridgeStats
from .session import Session, SessionState
from .artifact import EncodedArtifact

__all__ = [
    "AudioFrameBlock",
    "PcmBlock",
    "BridgeStats",
    "Session",
    "SessionState",
    "EncodedArtifact",
]
