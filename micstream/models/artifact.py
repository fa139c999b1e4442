"""Encoded artifact model."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class EncodedArtifact:
    """The immutable result of one recording session."""
    data: bytes
    mime_type: str
    session_id: str = ""
    sample_rate: int = 0
    channels: int = 0
    chunk_count: int = 0
    block_count: int = 0
    fault_count: int = 0
    dropped_count: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        """File extension matching the container tag."""
        mime = self.mime_type.lower()
        if "ogg" in mime:
            return "ogg"
        if "webm" in mime:
            return "webm"
        if "mpeg" in mime or "mp3" in mime:
            return "mp3"
        return "bin"
