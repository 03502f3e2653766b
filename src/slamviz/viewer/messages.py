"""Output message types published by the viewer.

These mirror the usual robotics message layouts (header + payload) closely
enough for a bridge to forward them, without depending on any middleware.
Quaternions are stored as (x, y, z, w).
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..geometry import SE3

# Packed xyz, little-endian float32
POINT_DTYPE = np.dtype([("x", "<f4"), ("y", "<f4"), ("z", "<f4")])


@dataclass
class Header:
    """Timestamp (s) and frame name of a message."""

    stamp: float
    frame_id: str


@dataclass
class PointCloud:
    """Point cloud in a packed binary layout.

    Attributes:
        header: Stamp and frame the points are expressed in
        width: Number of points
        point_step: Bytes per point
        data: Packed point buffer (``width * point_step`` bytes)
    """

    header: Header
    width: int
    point_step: int = POINT_DTYPE.itemsize
    data: bytes = b""

    @property
    def points(self) -> np.ndarray:
        """Decode the buffer into an (N, 3) float32 array."""
        packed = np.frombuffer(self.data, dtype=POINT_DTYPE, count=self.width)
        return np.stack([packed["x"], packed["y"], packed["z"]], axis=1)

    def __len__(self) -> int:
        return self.width


@dataclass
class TransformStamped:
    """Relation between two named frames: T_{header.frame_id}_{child_frame_id}."""

    header: Header
    child_frame_id: str
    translation: np.ndarray  # (3,)
    rotation: np.ndarray  # (4,) quaternion x, y, z, w

    def to_se3(self) -> SE3:
        qx, qy, qz, qw = self.rotation
        return SE3.from_quaternion(qx, qy, qz, qw, self.translation)


@dataclass
class PoseStamped:
    """Pose of a body in ``header.frame_id``."""

    header: Header
    position: np.ndarray  # (3,)
    orientation: np.ndarray  # (4,) quaternion x, y, z, w


@dataclass
class Odometry:
    """Pose of ``child_frame_id`` in ``header.frame_id``.

    Velocities are not estimated by the viewer, so only the pose is carried.
    """

    header: Header
    child_frame_id: str
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(
        default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0])
    )


def points_to_pointcloud(frame_id: str, stamp: float, points: np.ndarray) -> PointCloud:
    """Pack an (N, 3) point array into a PointCloud message."""
    points = np.asarray(points)
    if points.size == 0:
        points = points.reshape(0, 3)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"Points must be Nx3, got {points.shape}")

    packed = np.empty(len(points), dtype=POINT_DTYPE)
    packed["x"] = points[:, 0]
    packed["y"] = points[:, 1]
    packed["z"] = points[:, 2]

    return PointCloud(
        header=Header(stamp=stamp, frame_id=frame_id),
        width=len(points),
        data=packed.tobytes(),
    )


def se3_to_transform(
    parent_frame_id: str, child_frame_id: str, stamp: float, T_parent_child: SE3
) -> TransformStamped:
    return TransformStamped(
        header=Header(stamp=stamp, frame_id=parent_frame_id),
        child_frame_id=child_frame_id,
        translation=T_parent_child.translation.copy(),
        rotation=T_parent_child.quaternion,
    )


def se3_to_pose(frame_id: str, stamp: float, T_frame_body: SE3) -> PoseStamped:
    return PoseStamped(
        header=Header(stamp=stamp, frame_id=frame_id),
        position=T_frame_body.translation.copy(),
        orientation=T_frame_body.quaternion,
    )


def se3_to_odometry(
    frame_id: str, child_frame_id: str, stamp: float, T_frame_child: SE3
) -> Odometry:
    return Odometry(
        header=Header(stamp=stamp, frame_id=frame_id),
        child_frame_id=child_frame_id,
        position=T_frame_child.translation.copy(),
        orientation=T_frame_child.quaternion,
    )
