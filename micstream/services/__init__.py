"""Session control and pub/sub publishers."""

from .publishers import ArtifactPublisher, StatusPublisher
from .session_controller import SessionController, new_session_id

__all__ = ["SessionController", "StatusPublisher", "ArtifactPublisher", "new_session_id"]
