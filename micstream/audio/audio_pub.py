"""Audio publisher module for pub/sub block delivery."""

import logging
from pubsub import pub
from ..models.audio import AudioFrameBlock

logger = logging.getLogger(__name__)


class AudioPublisher:
    """Publishes captured blocks using pubsub.pub from the capture thread."""

    def __init__(self, topic: str = "audio.blocks"):
        """Initialize audio publisher.

        Args:
            topic: Pub/sub topic name for captured blocks
        """
        self.topic = topic
        self.published = 0
        logger.info(f"AudioPublisher initialized with topic: {topic}")

    def publish_audio_block(self, block: AudioFrameBlock) -> None:
        """Publish a captured block to the pub/sub topic.

        Args:
            block: AudioFrameBlock to publish
        """
        pub.sendMessage(self.topic, block=block)
        self.published += 1
