"""Status and artifact publishers for pub/sub delivery to UI and export."""

import logging
from typing import Callable
from pubsub import pub
from ..models.artifact import EncodedArtifact

logger = logging.getLogger(__name__)


class StatusPublisher:
    """Publishes status messages using pubsub.pub."""

    def __init__(self, topic: str = "recording.status"):
        """Initialize status publisher.

        Args:
            topic: Pub/sub topic name for status text
        """
        self.topic = topic
        logger.info(f"StatusPublisher initialized with topic: {topic}")

    def publish_status(self, text: str) -> None:
        """Publish a status message to the pub/sub topic.

        Args:
            text: Human readable status line
        """
        pub.sendMessage(self.topic, text=text)

    def get_callback(self) -> Callable[[str], None]:
        return self.publish_status


class ArtifactPublisher:
    """Publishes finished recordings using pubsub.pub."""

    def __init__(self, topic: str = "recording.artifact"):
        """Initialize artifact publisher.

        Args:
            topic: Pub/sub topic name for finished artifacts
        """
        self.topic = topic
        logger.info(f"ArtifactPublisher initialized with topic: {topic}")

    def publish_artifact(self, artifact: EncodedArtifact) -> None:
        """Publish a finished artifact to the pub/sub topic.

        Args:
            artifact: EncodedArtifact produced by a session
        """
        pub.sendMessage(self.topic, artifact=artifact)
        logger.debug(f"Published artifact: {artifact.session_id} ({artifact.size_bytes} bytes)")

    def get_callback(self) -> Callable[[EncodedArtifact], None]:
        return self.publish_artifact
