"""Read-only snapshots delivered by the odometry front-end and mapping back-end.

The viewer never mutates these. Both are shared with the producer, so the
point arrays are made read-only on construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from ..geometry import SE3


class FrameID(Enum):
    """Physical frame the point cloud of an EstimationFrame is expressed in."""

    LIDAR = "LIDAR"
    IMU = "IMU"
    WORLD = "WORLD"


def _readonly_points(points: np.ndarray) -> np.ndarray:
    points = np.asarray(points, dtype=np.float64)
    if points.size == 0:
        points = points.reshape(0, 3)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"Points must be Nx3, got {points.shape}")
    points = points.view()
    points.flags.writeable = False
    return points


@dataclass(frozen=True)
class EstimationFrame:
    """One odometry estimate produced by the front-end.

    Attributes:
        stamp: Timestamp in seconds
        frame_id: Frame the point cloud is expressed in
        T_world_imu: Odometry pose of the IMU (drifting, odometry-continuous)
        T_lidar_imu: LiDAR-IMU extrinsic
        points: (N, 3) point cloud in ``frame_id``
        id: Sequential frame counter of the front-end
    """

    stamp: float
    frame_id: FrameID
    T_world_imu: SE3
    T_lidar_imu: SE3
    points: np.ndarray
    id: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", _readonly_points(self.points))

    @property
    def num_points(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class SubMap:
    """A locally consistent point-cloud segment built by the mapping back-end.

    Attributes:
        id: Submap index assigned by the back-end
        T_world_origin: World pose of the submap origin (optimized)
        T_origin_endpoint_R: Origin to the last odometry frame of the submap
        stamp_endpoint_R: Timestamp (s) of that last odometry frame
        points: (N, 3) points in the submap origin frame
    """

    id: int
    T_world_origin: SE3
    T_origin_endpoint_R: SE3
    stamp_endpoint_R: float
    points: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", _readonly_points(self.points))

    @property
    def T_world_endpoint_R(self) -> SE3:
        """World pose of the last odometry frame that contributed to the submap."""
        return self.T_world_origin @ self.T_origin_endpoint_R

    @property
    def num_points(self) -> int:
        return len(self.points)
