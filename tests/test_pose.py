import numpy as np
import pytest

from camrig.core.pose import RigidPose


def _random_pose(rng: np.random.Generator) -> RigidPose:
    return RigidPose.from_rotvec(rng.normal(size=3), rng.normal(size=3))


def test_inverse_and_composition():
    rng = np.random.default_rng(0)
    T_a_b = _random_pose(rng)
    T_b_c = _random_pose(rng)
    assert (T_a_b @ T_a_b.inverse()).is_close(RigidPose.identity())

    p_c = rng.normal(size=(10, 3))
    p_a = (T_a_b @ T_b_c).transform(p_c)
    np.testing.assert_allclose(p_a, T_a_b.transform(T_b_c.transform(p_c)), atol=1e-12)


def test_transform_single_point_and_matrix():
    T = RigidPose.from_rotvec(np.array([0.0, 0.0, np.pi / 2]), np.array([1.0, 2.0, 3.0]))
    np.testing.assert_allclose(T.transform(np.array([1.0, 0.0, 0.0])), [1.0, 3.0, 3.0], atol=1e-12)
    M = T.as_matrix()
    assert M.shape == (4, 4)
    assert RigidPose.from_matrix(M).is_close(T)


def test_quaternion_and_rotvec():
    T = RigidPose.from_quaternion(np.array([0.0, 0.0, np.sin(np.pi / 4), np.cos(np.pi / 4)]))
    np.testing.assert_allclose(T.as_rotvec(), [0.0, 0.0, np.pi / 2], atol=1e-12)


def test_dict_roundtrip_and_validation():
    T = _random_pose(np.random.default_rng(3))
    assert RigidPose.from_dict(T.to_dict()).is_close(T, atol=0.0)
    with pytest.raises(ValueError):
        RigidPose(R=np.eye(2), t=np.zeros(3))
    with pytest.raises(ValueError):
        RigidPose(R=np.eye(3), t=np.array([0.0, np.nan, 0.0]))
