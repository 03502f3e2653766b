"""Tests for TrajectoryManager."""

import logging
import threading

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from slamviz.geometry import SE3
from slamviz.viewer import TrajectoryManager


def _pose(seed: int) -> SE3:
    rng = np.random.default_rng(seed)
    return SE3(
        rotation=Rotation.from_rotvec(rng.uniform(-1.0, 1.0, 3)).as_matrix(),
        translation=rng.uniform(-10.0, 10.0, 3),
    )


@pytest.fixture
def trajectory() -> TrajectoryManager:
    return TrajectoryManager()


class TestTrajectoryManager:
    """Test suite for TrajectoryManager."""

    def test_initial_anchor_is_identity(self, trajectory: TrajectoryManager):
        """Before any correction, odometry equals world."""
        assert trajectory.get_T_world_odom().is_close(SE3.identity())
        T = _pose(0)
        assert trajectory.odom2world(T).is_close(T)

    def test_translation_anchor(self, trajectory: TrajectoryManager):
        """add_odom(1.0, I); update_anchor(1.0, Translate(5,0,0))."""
        trajectory.add_odom(1.0, SE3.identity())
        trajectory.update_anchor(1.0, SE3.from_translation(5.0, 0.0, 0.0))

        expected = SE3.from_translation(5.0, 0.0, 0.0)
        assert trajectory.get_T_world_odom().is_close(expected)
        assert trajectory.odom2world(SE3.identity()).is_close(expected)

    def test_anchored_sample_maps_to_corrected_pose(
        self, trajectory: TrajectoryManager
    ):
        """After update_anchor(t, T), the odometry pose at t maps onto T."""
        odom = {0.1 * i: _pose(i) for i in range(1, 30)}
        stamps = sorted(odom)

        for i, stamp in enumerate(stamps):
            trajectory.add_odom(stamp, odom[stamp])
            if i % 7 == 6:
                anchor_stamp = stamps[i - 3]
                T_world_imu = _pose(100 + i)
                trajectory.update_anchor(anchor_stamp, T_world_imu)

                assert trajectory.odom2world(odom[anchor_stamp]).is_close(
                    T_world_imu, atol=1e-9
                )

    def test_anchor_applies_to_later_samples(self, trajectory: TrajectoryManager):
        """Samples after the anchor keep their odometry-relative motion."""
        trajectory.add_odom(1.0, SE3.identity())
        trajectory.update_anchor(1.0, SE3.from_translation(5.0, 0.0, 0.0))

        T_odom_later = SE3.from_translation(1.0, 2.0, 0.0)
        trajectory.add_odom(2.0, T_odom_later)

        np.testing.assert_allclose(
            trajectory.odom2world(T_odom_later).translation, [6.0, 2.0, 0.0]
        )

    def test_nearest_sample_is_used(self, trajectory: TrajectoryManager):
        """The odometry sample closest in time is anchored."""
        trajectory.add_odom(1.0, SE3.from_translation(1.0, 0.0, 0.0))
        trajectory.add_odom(2.0, SE3.from_translation(2.0, 0.0, 0.0))
        trajectory.add_odom(3.0, SE3.from_translation(3.0, 0.0, 0.0))

        trajectory.update_anchor(2.05, SE3.from_translation(10.0, 0.0, 0.0))

        # Sample at t=2.0 (x=2) maps to x=10
        np.testing.assert_allclose(
            trajectory.get_T_world_odom().translation, [8.0, 0.0, 0.0]
        )

    def test_older_samples_released(self, trajectory: TrajectoryManager):
        """Samples before the anchored one are dropped, the rest kept."""
        for i in range(5):
            trajectory.add_odom(float(i), SE3.identity())

        trajectory.update_anchor(2.0, SE3.identity())

        assert len(trajectory) == 3
        assert trajectory.latest_stamp == 4.0

    def test_out_of_order_samples(self, trajectory: TrajectoryManager):
        """A late sample is inserted in time order."""
        trajectory.add_odom(1.0, SE3.from_translation(1.0, 0.0, 0.0))
        trajectory.add_odom(3.0, SE3.from_translation(3.0, 0.0, 0.0))
        trajectory.add_odom(2.0, SE3.from_translation(2.0, 0.0, 0.0))

        trajectory.update_anchor(2.0, SE3.identity())

        np.testing.assert_allclose(
            trajectory.get_T_world_odom().translation, [-2.0, 0.0, 0.0]
        )
        assert trajectory.latest_stamp == 3.0

    def test_anchor_without_odometry(self, trajectory: TrajectoryManager, caplog):
        """With no history the anchor is left unchanged."""
        with caplog.at_level(logging.WARNING):
            trajectory.update_anchor(1.0, SE3.from_translation(5.0, 0.0, 0.0))

        assert trajectory.get_T_world_odom().is_close(SE3.identity())
        assert "No odometry recorded" in caplog.text

    def test_stamp_mismatch_warning(self, caplog):
        """A distant anchor stamp is applied but logged."""
        trajectory = TrajectoryManager(stamp_tolerance=0.1)
        trajectory.add_odom(1.0, SE3.identity())

        with caplog.at_level(logging.WARNING):
            trajectory.update_anchor(2.0, SE3.from_translation(1.0, 0.0, 0.0))

        assert "away from nearest odometry stamp" in caplog.text
        np.testing.assert_allclose(
            trajectory.get_T_world_odom().translation, [1.0, 0.0, 0.0]
        )

    def test_odom2world_points(self, trajectory: TrajectoryManager):
        """Point arrays are transformed by the anchor."""
        trajectory.add_odom(0.0, SE3.identity())
        trajectory.update_anchor(0.0, SE3.from_translation(0.0, 0.0, 1.0))

        points = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        np.testing.assert_allclose(
            trajectory.odom2world(points), [[1.0, 0.0, 1.0], [0.0, 1.0, 1.0]]
        )

    def test_locked_groups_operations(self, trajectory: TrajectoryManager):
        """locked() is reentrant and excludes other threads."""
        entered = threading.Event()

        def anchor_from_other_thread():
            trajectory.update_anchor(0.0, SE3.from_translation(9.0, 0.0, 0.0))
            entered.set()

        with trajectory.locked() as locked:
            locked.add_odom(0.0, SE3.identity())
            worker = threading.Thread(target=anchor_from_other_thread)
            worker.start()
            assert not entered.wait(0.05)
            assert locked.get_T_world_odom().is_close(SE3.identity())

        worker.join(timeout=1.0)
        assert entered.is_set()
        assert trajectory.get_T_world_odom().is_close(
            SE3.from_translation(9.0, 0.0, 0.0)
        )
