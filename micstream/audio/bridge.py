"""Ordered hand-off of captured blocks from the real-time thread to the encode worker."""

import logging
import threading
from collections import deque
from typing import Optional

from pubsub import pub

from ..errors import CaptureError
from ..models.audio import AudioFrameBlock, BridgeStats

logger = logging.getLogger(__name__)


class CaptureBridge:
    """Queue between the capture callback and the single consumer.

    The producer side never blocks: blocks are appended under a lock and the
    consumer is notified. With ``max_pending == 0`` the queue is unbounded;
    otherwise the oldest pending block is dropped to make room.
    """

    def __init__(self, topic: str = "audio.blocks", max_pending: int = 0):
        """Initialize capture bridge.

        Args:
            topic: Pub/sub topic the capture publisher sends blocks on
            max_pending: Maximum queued blocks, 0 for unbounded
        """
        if max_pending < 0:
            raise ValueError("max_pending must be >= 0")

        self.topic = topic
        self.max_pending = max_pending

        self._pending = deque()
        self._cond = threading.Condition(threading.Lock())
        self._connected = False
        self._failure: Optional[BaseException] = None

        self.delivered = 0
        self.dropped = 0

        policy = f"bounded ({max_pending}, drop oldest)" if max_pending else "unbounded"
        logger.info(f"CaptureBridge initialized on topic '{topic}', {policy}")

    def connect(self) -> None:
        """Start admitting blocks published on the topic."""
        with self._cond:
            if self._connected:
                return
            self._connected = True
            self._failure = None
        pub.subscribe(self._on_audio_block, self.topic)
        logger.debug(f"CaptureBridge subscribed to '{self.topic}'")

    def disconnect(self) -> None:
        """Stop admitting blocks. No block is accepted once this returns."""
        with self._cond:
            if not self._connected:
                return
            self._connected = False
            self._cond.notify_all()
        pub.unsubscribe(self._on_audio_block, self.topic)
        logger.info(f"CaptureBridge disconnected: {self.delivered} delivered, "
                    f"{self.dropped} dropped, {len(self._pending)} pending")

    @property
    def connected(self) -> bool:
        with self._cond:
            return self._connected

    def _on_audio_block(self, block: AudioFrameBlock) -> None:
        """Pub/sub listener, runs on the capture thread."""
        self.put(block)

    def put(self, block: AudioFrameBlock) -> bool:
        """Queue a block. Returns False if the bridge is disconnected."""
        with self._cond:
            if not self._connected:
                return False
            if self.max_pending and len(self._pending) >= self.max_pending:
                dropped = self._pending.popleft()
                self.dropped += 1
                logger.debug(f"Bridge full, dropped block {dropped.sequence_number}")
            self._pending.append(block)
            self.delivered += 1
            self._cond.notify()
            return True

    def report_error(self, error: BaseException) -> None:
        """Record a delivery failure from the capture source."""
        with self._cond:
            if self._failure is None:
                self._failure = error
            self._cond.notify_all()
        logger.error(f"Capture delivery failed: {error}")

    def get(self, timeout: Optional[float] = None) -> Optional[AudioFrameBlock]:
        """Take the next block in delivery order.

        Returns None on timeout or once the bridge is disconnected and empty.
        Raises CaptureError after pending blocks are drained if the source
        reported a delivery failure.
        """
        with self._cond:
            if not self._pending and self._failure is None and self._connected:
                self._cond.wait(timeout)

            if self._pending:
                return self._pending.popleft()
            if self._failure is not None:
                raise CaptureError(str(self._failure)) from self._failure
            return None

    def is_drained(self) -> bool:
        """True when disconnected and nothing is left to consume."""
        with self._cond:
            return not self._connected and not self._pending

    def get_stats(self) -> BridgeStats:
        """Get bridge statistics."""
        with self._cond:
            return BridgeStats(
                connected=self._connected,
                delivered=self.delivered,
                dropped=self.dropped,
                pending=len(self._pending),
                max_pending=self.max_pending,
            )
