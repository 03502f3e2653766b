"""Trajectory anchoring: odometry-frame poses to world-frame poses.

The odometry front-end integrates poses at sensor rate in a continuous but
drifting "odom" frame. The global-mapping back-end occasionally reports the
optimized world pose of a past odometry frame. TrajectoryManager keeps the
raw odometry history and a single correction T_world_odom derived from the
latest back-end report, so every new odometry sample can be expressed in the
world frame immediately:

    T_world_imu = T_world_odom @ T_odom_imu

The back-end never has to catch up with the front-end, and the front-end never
waits for the back-end.
"""

from __future__ import annotations

import bisect
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import overload

import numpy as np

from ..geometry import SE3

logger = logging.getLogger(__name__)


class TrajectoryManager:
    """Odometry history plus the world-odom anchor.

    All operations are guarded by one reentrant lock. Use ``locked()`` to
    group several operations into one consistent snapshot.
    """

    def __init__(self, stamp_tolerance: float = 0.1) -> None:
        """Initialize an empty trajectory.

        Args:
            stamp_tolerance: Max difference (s) between an anchor stamp and the
                nearest odometry stamp before a warning is logged
        """
        self._stamp_tolerance = stamp_tolerance
        self._lock = threading.RLock()

        self._odom_stamps: list[float] = []
        self._T_odom_imu: list[SE3] = []
        self._T_world_odom = SE3.identity()

    @contextmanager
    def locked(self) -> Iterator[TrajectoryManager]:
        """Hold the trajectory lock across several calls."""
        with self._lock:
            yield self

    def add_odom(self, stamp: float, T_odom_imu: SE3) -> None:
        """Record a raw odometry pose.

        Args:
            stamp: Timestamp in seconds
            T_odom_imu: IMU pose in the odometry frame
        """
        with self._lock:
            if not self._odom_stamps or stamp >= self._odom_stamps[-1]:
                self._odom_stamps.append(stamp)
                self._T_odom_imu.append(T_odom_imu)
                return

            index = bisect.bisect_right(self._odom_stamps, stamp)
            self._odom_stamps.insert(index, stamp)
            self._T_odom_imu.insert(index, T_odom_imu)

    def get_T_world_odom(self) -> SE3:
        """Return the current odometry-to-world correction."""
        with self._lock:
            return self._T_world_odom

    @overload
    def odom2world(self, pose: SE3) -> SE3: ...

    @overload
    def odom2world(self, pose: np.ndarray) -> np.ndarray: ...

    def odom2world(self, pose: SE3 | np.ndarray) -> SE3 | np.ndarray:
        """Express an odometry-frame pose (or points) in the world frame."""
        with self._lock:
            T_world_odom = self._T_world_odom

        if isinstance(pose, SE3):
            return T_world_odom @ pose
        return T_world_odom.transform_points(pose)

    def update_anchor(self, stamp: float, T_world_imu: SE3) -> None:
        """Re-anchor the odometry frame to a back-end corrected pose.

        The odometry sample nearest to ``stamp`` is mapped exactly onto
        ``T_world_imu``. Samples older than that one are released.

        Args:
            stamp: Timestamp (s) of the corrected odometry frame
            T_world_imu: Optimized world pose of that frame
        """
        with self._lock:
            if not self._odom_stamps:
                logger.warning(
                    "No odometry recorded before anchor update at t=%.6f", stamp
                )
                return

            index = self._nearest_index(stamp)
            diff = abs(self._odom_stamps[index] - stamp)
            if diff > self._stamp_tolerance:
                logger.warning(
                    "Anchor stamp %.6f is %.3fs away from nearest odometry stamp",
                    stamp,
                    diff,
                )

            self._T_world_odom = T_world_imu @ self._T_odom_imu[index].inverse()

            del self._odom_stamps[:index]
            del self._T_odom_imu[:index]

    def _nearest_index(self, stamp: float) -> int:
        index = bisect.bisect_left(self._odom_stamps, stamp)
        if index == 0:
            return 0
        if index == len(self._odom_stamps):
            return index - 1

        before = self._odom_stamps[index - 1]
        after = self._odom_stamps[index]
        return index if after - stamp < stamp - before else index - 1

    def __len__(self) -> int:
        """Number of retained odometry samples."""
        with self._lock:
            return len(self._odom_stamps)

    @property
    def latest_stamp(self) -> float | None:
        with self._lock:
            return self._odom_stamps[-1] if self._odom_stamps else None
