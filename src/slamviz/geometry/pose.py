"""SE(3) pose representation for rigid body transformations."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np
from scipy.spatial.transform import Rotation


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation) in SE(3).

    Naming follows T_target_source: ``T_world_imu`` maps points expressed in
    the IMU frame into the world frame:

        p_world = R @ p_imu + t

    Attributes:
        rotation: 3x3 orthonormal rotation matrix (det = +1)
        translation: 3D translation vector
    """

    rotation: np.ndarray  # 3x3 rotation matrix
    translation: np.ndarray  # (3,) translation vector

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.translation = np.asarray(self.translation, dtype=np.float64).flatten()

        if self.rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(
                f"Translation must be (3,), got {self.translation.shape}"
            )

    @classmethod
    def identity(cls) -> SE3:
        """Create identity transformation (no rotation, no translation)."""
        return cls(rotation=np.eye(3), translation=np.zeros(3))

    @classmethod
    def from_translation(cls, x: float, y: float, z: float) -> SE3:
        """Create a pure translation."""
        return cls(rotation=np.eye(3), translation=np.array([x, y, z]))

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> SE3:
        """Create SE3 from 4x4 homogeneous transformation matrix.

        Args:
            T: 4x4 transformation matrix of the form:
               [[R  t]
                [0  1]]

        Returns:
            SE3 transformation
        """
        T = np.asarray(T)
        if T.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {T.shape}")

        return cls(rotation=T[:3, :3], translation=T[:3, 3])

    @classmethod
    def from_rvec_tvec(cls, rvec: np.ndarray, tvec: np.ndarray) -> SE3:
        """Create SE3 from a Rodrigues (axis * angle) vector and translation.

        Extrinsic calibration tools commonly report the LiDAR-IMU
        extrinsic in this form.
        """
        R, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).flatten())
        return cls(rotation=R, translation=np.asarray(tvec).flatten())

    @classmethod
    def from_quaternion(
        cls,
        qx: float,
        qy: float,
        qz: float,
        qw: float,
        translation: np.ndarray,
    ) -> SE3:
        """Create SE3 from an (x, y, z, w) quaternion and translation.

        The quaternion is normalized before conversion.
        """
        R = Rotation.from_quat([qx, qy, qz, qw]).as_matrix()
        return cls(rotation=R, translation=np.asarray(translation).flatten())

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 homogeneous transformation matrix."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def to_rvec_tvec(self) -> tuple[np.ndarray, np.ndarray]:
        """Convert to Rodrigues vector and translation."""
        rvec, _ = cv2.Rodrigues(self.rotation)
        return rvec.flatten(), self.translation.copy()

    @property
    def quaternion(self) -> np.ndarray:
        """Rotation as a unit quaternion (x, y, z, w)."""
        return Rotation.from_matrix(self.rotation).as_quat()

    def copy(self) -> SE3:
        """Return a deep copy that shares no arrays with this pose."""
        return SE3(rotation=self.rotation.copy(), translation=self.translation.copy())

    def inverse(self) -> SE3:
        """Compute the inverse transformation T^{-1}.

        For T = [R, t], the inverse is [R^T, -R^T @ t].
        """
        R_inv = self.rotation.T
        t_inv = -R_inv @ self.translation
        return SE3(rotation=R_inv, translation=t_inv)

    def compose(self, other: SE3) -> SE3:
        """Compose with another transformation: self @ other.

        Frames chain left to right, e.g.
        ``T_world_odom.compose(T_odom_imu)`` gives ``T_world_imu``.
        """
        R = self.rotation @ other.rotation
        t = self.rotation @ other.translation + self.translation
        return SE3(rotation=R, translation=t)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Transform an Nx3 array of points from the source to the target frame.

        Args:
            points: Nx3 array of 3D points (a single (3,) point is accepted)

        Returns:
            Nx3 array of transformed points
        """
        points = np.asarray(points)
        if points.ndim == 1:
            points = points.reshape(1, 3)

        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {points.shape}")

        return points @ self.rotation.T + self.translation

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """Transform a single 3D point."""
        point = np.asarray(point, dtype=np.float64).flatten()
        return self.rotation @ point + self.translation

    def is_close(self, other: SE3, atol: float = 1e-9) -> bool:
        """Return True if both rotation and translation match within atol."""
        return bool(
            np.allclose(self.rotation, other.rotation, atol=atol)
            and np.allclose(self.translation, other.translation, atol=atol)
        )

    @property
    def position(self) -> np.ndarray:
        """Return origin of the source frame expressed in the target frame."""
        return self.translation.copy()

    def __repr__(self) -> str:
        """Return string representation."""
        pos = self.position
        return f"SE3(position=[{pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f}])"

    def __matmul__(self, other: SE3) -> SE3:
        """Allow ``T_a_c = T_a_b @ T_b_c``."""
        return self.compose(other)
