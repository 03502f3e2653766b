"""Tests for the SE3 pose type."""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from slamviz.geometry import SE3


def _pose(rotvec, translation) -> SE3:
    return SE3(
        rotation=Rotation.from_rotvec(rotvec).as_matrix(),
        translation=np.asarray(translation, dtype=np.float64),
    )


class TestSE3:
    """Test suite for SE3."""

    def test_identity(self):
        """Identity leaves points unchanged."""
        points = np.array([[1.0, 2.0, 3.0], [-1.0, 0.5, 0.0]])
        np.testing.assert_array_equal(SE3.identity().transform_points(points), points)

    def test_invalid_shapes(self):
        """Wrong rotation/translation shapes are rejected."""
        with pytest.raises(ValueError, match="Rotation must be 3x3"):
            SE3(rotation=np.eye(2), translation=np.zeros(3))
        with pytest.raises(ValueError, match="Translation must be"):
            SE3(rotation=np.eye(3), translation=np.zeros(4))
        with pytest.raises(ValueError, match="Transform must be 4x4"):
            SE3.from_matrix(np.eye(3))

    def test_inverse_composes_to_identity(self):
        """T @ T^-1 is the identity."""
        T = _pose([0.1, -0.3, 0.7], [1.0, 2.0, -0.5])
        assert (T @ T.inverse()).is_close(SE3.identity())
        assert (T.inverse() @ T).is_close(SE3.identity())

    def test_compose_chains_frames(self):
        """T_a_b @ T_b_c maps points from c to a."""
        T_a_b = _pose([0.0, 0.0, np.pi / 2], [1.0, 0.0, 0.0])
        T_b_c = SE3.from_translation(1.0, 0.0, 0.0)

        p_c = np.array([0.0, 0.0, 0.0])
        p_a = (T_a_b @ T_b_c).transform_point(p_c)

        np.testing.assert_allclose(p_a, [1.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(
            p_a, T_a_b.transform_point(T_b_c.transform_point(p_c)), atol=1e-12
        )

    def test_transform_points_shapes(self):
        """A single point is promoted to 1x3; other shapes are rejected."""
        T = SE3.from_translation(1.0, 2.0, 3.0)
        assert T.transform_points(np.zeros(3)).shape == (1, 3)
        assert T.transform_points(np.empty((0, 3))).shape == (0, 3)
        with pytest.raises(ValueError, match="Points must be Nx3"):
            T.transform_points(np.zeros((4, 2)))

    def test_matrix_round_trip(self):
        """to_matrix / from_matrix preserve the pose."""
        T = _pose([0.2, 0.1, -0.4], [3.0, -1.0, 2.0])
        assert SE3.from_matrix(T.to_matrix()).is_close(T)

    def test_quaternion(self):
        """Quaternions are (x, y, z, w) and describe the same rotation."""
        np.testing.assert_allclose(SE3.identity().quaternion, [0.0, 0.0, 0.0, 1.0])

        T = _pose([0.0, 0.0, np.pi / 2], [0.0, 0.0, 0.0])
        qx, qy, qz, qw = T.quaternion
        back = SE3.from_quaternion(qx, qy, qz, qw, T.translation)
        assert back.is_close(T)

    def test_rvec_tvec(self):
        """Rodrigues vectors convert both ways."""
        T = SE3.from_rvec_tvec(np.array([0.0, 0.0, np.pi / 2]), np.array([1.0, 2.0, 3.0]))
        np.testing.assert_allclose(T.transform_point([1.0, 0.0, 0.0]), [1.0, 3.0, 3.0], atol=1e-9)

        rvec, tvec = T.to_rvec_tvec()
        np.testing.assert_allclose(rvec, [0.0, 0.0, np.pi / 2], atol=1e-9)
        np.testing.assert_allclose(tvec, [1.0, 2.0, 3.0])

    def test_copy_is_independent(self):
        """copy() shares no arrays with the original."""
        T = SE3.from_translation(1.0, 0.0, 0.0)
        T_copy = T.copy()
        T.translation[0] = 5.0
        assert T_copy.translation[0] == 1.0
