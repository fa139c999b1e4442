"""Unit tests for CaptureBridge and AudioPublisher."""

import threading
import time

import pytest
import numpy as np

from micstream.audio.audio_pub import AudioPublisher
from micstream.audio.bridge import CaptureBridge
from micstream.errors import CaptureError
from micstream.models.audio import AudioFrameBlock


def make_block(sequence_number: int) -> AudioFrameBlock:
    return AudioFrameBlock(channels=(np.zeros(8, dtype=np.float32),), sequence_number=sequence_number)


@pytest.mark.unit
class TestCaptureBridge:
    """Test cases for CaptureBridge."""

    def test_initialization(self):
        bridge = CaptureBridge()

        assert bridge.topic == "audio.blocks"
        assert bridge.max_pending == 0
        assert bridge.connected is False

    def test_negative_bound_rejected(self):
        with pytest.raises(ValueError):
            CaptureBridge(max_pending=-1)

    def test_put_before_connect_is_rejected(self):
        bridge = CaptureBridge()

        assert bridge.put(make_block(0)) is False
        assert bridge.get_stats().delivered == 0

    def test_delivery_order_is_preserved(self):
        bridge = CaptureBridge()
        bridge.connect()
        for i in range(50):
            bridge.put(make_block(i))

        received = [bridge.get(timeout=0.1).sequence_number for _ in range(50)]

        assert received == list(range(50))

    def test_published_blocks_reach_bridge(self):
        bridge = CaptureBridge(topic="capture_test")
        bridge.connect()
        publisher = AudioPublisher("capture_test")

        publisher.publish_audio_block(make_block(0))
        publisher.publish_audio_block(make_block(1))

        assert bridge.get(timeout=0.1).sequence_number == 0
        assert bridge.get(timeout=0.1).sequence_number == 1

    def test_no_block_admitted_after_disconnect(self):
        bridge = CaptureBridge(topic="capture_test")
        bridge.connect()
        publisher = AudioPublisher("capture_test")
        publisher.publish_audio_block(make_block(0))

        bridge.disconnect()
        publisher.publish_audio_block(make_block(1))
        accepted = bridge.put(make_block(2))

        assert accepted is False
        assert bridge.get(timeout=0.1).sequence_number == 0
        assert bridge.get(timeout=0.1) is None
        assert bridge.is_drained()

    def test_get_times_out_with_none(self):
        bridge = CaptureBridge()
        bridge.connect()

        start = time.time()
        assert bridge.get(timeout=0.05) is None
        assert time.time() - start >= 0.04
        assert not bridge.is_drained()

    def test_disconnect_wakes_waiting_consumer(self):
        bridge = CaptureBridge()
        bridge.connect()
        results = []

        consumer = threading.Thread(target=lambda: results.append(bridge.get(timeout=5.0)))
        consumer.start()
        time.sleep(0.05)
        bridge.disconnect()
        consumer.join(timeout=1.0)

        assert not consumer.is_alive()
        assert results == [None]

    def test_unbounded_keeps_every_block(self):
        bridge = CaptureBridge(max_pending=0)
        bridge.connect()
        for i in range(1000):
            bridge.put(make_block(i))

        stats = bridge.get_stats()
        assert stats.pending == 1000
        assert stats.dropped == 0

    def test_bounded_drops_oldest(self):
        bridge = CaptureBridge(max_pending=3)
        bridge.connect()
        for i in range(5):
            bridge.put(make_block(i))

        stats = bridge.get_stats()
        assert stats.pending == 3
        assert stats.dropped == 2
        assert stats.delivered == 5
        assert [bridge.get(timeout=0.1).sequence_number for _ in range(3)] == [2, 3, 4]

    def test_error_raised_after_pending_blocks(self):
        bridge = CaptureBridge()
        bridge.connect()
        bridge.put(make_block(0))
        bridge.report_error(RuntimeError("device unplugged"))

        assert bridge.get(timeout=0.1).sequence_number == 0
        with pytest.raises(CaptureError, match="device unplugged"):
            bridge.get(timeout=0.1)

    def test_slow_consumer_loses_nothing_when_unbounded(self):
        bridge = CaptureBridge()
        bridge.connect()
        received = []

        def consume():
            while True:
                block = bridge.get(timeout=0.01)
                if block is None:
                    if bridge.is_drained():
                        break
                    continue
                time.sleep(0.001)
                received.append(block.sequence_number)

        consumer = threading.Thread(target=consume)
        consumer.start()
        for i in range(100):
            bridge.put(make_block(i))
        bridge.disconnect()
        consumer.join(timeout=5.0)

        assert received == list(range(100))
