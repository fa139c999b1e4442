"""Session-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class SessionState(Enum):
    """Lifecycle state of the recording session."""
    IDLE = "idle"
    REQUESTING_ACCESS = "requesting_access"
    CAPTURING = "capturing"
    STOPPING = "stopping"


@dataclass
class Session:
    """The capture+encode lifecycle unit owned by the session controller."""
    session_id: str
    state: SessionState = SessionState.REQUESTING_ACCESS
    stream: Optional[Any] = None
    channels: int = 1           # channels handed to the encoder
    source_channels: int = 1    # channels delivered by the device
    sample_rate: int = 0
    strategy: Optional[str] = None
    mime_type: Optional[str] = None
    assembler: Optional[Any] = None
    blocks_received: int = 0
    blocks_encoded: int = 0
    fault_count: int = 0
    blocks_dropped: int = 0
    started_at: datetime = field(default_factory=datetime.now)
