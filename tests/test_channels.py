"""Tests for publishers, the transform broadcaster and the transform buffer."""

import logging

import numpy as np
import pytest

from slamviz.geometry import SE3
from slamviz.viewer import (
    Publisher,
    TransformBroadcaster,
    TransformBuffer,
    se3_to_transform,
)


class TestPublisher:
    """Test suite for Publisher."""

    def test_subscription_count(self):
        """Subscribing and unsubscribing update the count."""
        pub = Publisher("/test")
        assert pub.subscription_count == 0

        first = pub.subscribe(lambda msg: None)
        second = pub.subscribe(lambda msg: None)
        assert pub.subscription_count == 2

        first.unsubscribe()
        first.unsubscribe()
        assert pub.subscription_count == 1
        assert second.topic == "/test"

    def test_publish_delivers_to_all(self):
        """Every subscriber receives every message."""
        pub = Publisher("/test")
        a, b = [], []
        pub.subscribe(a.append)
        pub.subscribe(b.append)

        pub.publish(1)
        pub.publish(2)

        assert a == [1, 2]
        assert b == [1, 2]
        assert pub.num_published == 2

    def test_failing_subscriber_is_isolated(self, caplog):
        """One failing subscriber does not block the others."""
        pub = Publisher("/test")
        received = []

        def broken(msg):
            raise RuntimeError("boom")

        pub.subscribe(broken)
        pub.subscribe(received.append)

        with caplog.at_level(logging.ERROR):
            pub.publish("msg")

        assert received == ["msg"]
        assert "Subscriber on /test failed" in caplog.text


@pytest.fixture
def buffer() -> TransformBuffer:
    broadcaster = TransformBroadcaster()
    buffer = TransformBuffer()
    buffer.attach(broadcaster)

    T_world_odom = SE3.from_translation(5.0, 0.0, 0.0)
    T_odom_imu = SE3.from_rvec_tvec(np.array([0.0, 0.0, np.pi / 2]), np.array([1.0, 0.0, 0.0]))
    T_imu_lidar = SE3.from_translation(0.0, 0.0, 0.2)

    broadcaster.send_transform(se3_to_transform("world", "odom", 1.0, T_world_odom))
    broadcaster.send_transform(se3_to_transform("odom", "imu", 1.0, T_odom_imu))
    broadcaster.send_transform(se3_to_transform("imu", "lidar", 1.0, T_imu_lidar))
    broadcaster.send_transform(se3_to_transform("map", "other", 1.0, SE3.identity()))
    return buffer


class TestTransformBuffer:
    """Test suite for TransformBuffer."""

    def test_chained_lookup(self, buffer: TransformBuffer):
        """world <- odom <- imu <- lidar resolves to the composed transform."""
        T_world_lidar = buffer.lookup("world", "lidar")

        # lidar origin: (0,0,0.2) in imu -> rotated 90deg about z, +1 x -> +5 x
        np.testing.assert_allclose(T_world_lidar.translation, [6.0, 0.0, 0.2], atol=1e-9)

    def test_inverse_lookup(self, buffer: TransformBuffer):
        """lookup(a, b) is the inverse of lookup(b, a)."""
        T_lidar_world = buffer.lookup("lidar", "world")
        T_world_lidar = buffer.lookup("world", "lidar")
        assert (T_lidar_world @ T_world_lidar).is_close(SE3.identity(), atol=1e-9)

    def test_sibling_lookup(self, buffer: TransformBuffer):
        """Frames on different branches resolve through their common ancestor."""
        assert buffer.lookup("odom", "odom").is_close(SE3.identity())
        T_odom_lidar = buffer.lookup("odom", "lidar")
        np.testing.assert_allclose(T_odom_lidar.translation, [1.0, 0.0, 0.2], atol=1e-9)

    def test_unknown_or_disconnected(self, buffer: TransformBuffer):
        """Unknown frames and separate trees raise LookupError."""
        with pytest.raises(LookupError, match="Unknown frame"):
            buffer.lookup("world", "camera")
        with pytest.raises(LookupError, match="not connected"):
            buffer.lookup("world", "other")

    def test_latest_value_and_stamp(self, buffer: TransformBuffer):
        """A newer relation replaces the previous one for the same child."""
        buffer.set_transform(se3_to_transform("world", "odom", 2.0, SE3.identity()))

        assert buffer.stamp_of("odom") == 2.0
        np.testing.assert_allclose(
            buffer.lookup("world", "imu").translation, [1.0, 0.0, 0.0], atol=1e-9
        )
        assert {"world", "odom", "imu", "lidar", "map", "other"} <= buffer.frames()
