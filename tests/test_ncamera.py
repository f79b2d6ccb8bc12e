from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from camrig.api.ncamera import load_cameras_from_dir, num_of_cameras, project_batch_with_ids, save_cameras_to_dir
from camrig.config import CalibrationFormatError
from camrig.core.measurements import KeyframeState, LandmarkMap
from camrig.core.pinhole import PinholeCamera
from camrig.core.pose import RigidPose


def _rig() -> list[PinholeCamera]:
    base = PinholeCamera.create_test_camera()
    front = PinholeCamera(base.intrinsics, RigidPose.identity())
    # Looks along body -z (rotated 180 deg about body y).
    back = PinholeCamera(base.intrinsics, RigidPose.from_rotvec(np.array([0.0, np.pi, 0.0]), np.array([0.0, 0.0, -0.1])))
    return [front, back]


def _map() -> LandmarkMap:
    positions = np.array(
        [
            [0.0, 0.0, 5.0],
            [0.0, 0.0, -5.0],
            [1.0, 0.5, 4.0],
            [0.2, -0.1, -3.0],
            [100.0, 0.0, 1.0],
        ]
    )
    return LandmarkMap(ids=np.array([7, 3, 42, 9, 1]), positions=positions)


def test_project_batch_with_ids_groups_by_keyframe_and_camera():
    states = [
        KeyframeState(timestamp=0.0, T_w_b=RigidPose.identity()),
        KeyframeState(timestamp=1.0, T_w_b=RigidPose(R=np.eye(3), t=np.array([0.0, 0.0, 4.5]))),
    ]
    out = project_batch_with_ids(states, _rig(), _map())

    assert [kf.timestamp for kf in out] == [0.0, 1.0]
    assert all(len(kf) == 2 for kf in out)

    front0, back0 = out[0].cam_measurements
    assert front0.global_ids.tolist() == [7, 42]
    assert back0.global_ids.tolist() == [3, 9]
    np.testing.assert_allclose(front0.uv[0], [320.0, 240.0])
    assert np.all(front0.track_ids == -1)

    # Body moved to z=4.5: landmark 7 is 0.5 m ahead; 42 falls left of the back image.
    front1, back1 = out[1].cam_measurements
    assert front1.global_ids.tolist() == [7]
    assert back1.global_ids.tolist() == [3, 9]
    assert out[1].num_observations() == 3


def test_project_matches_manual_transform():
    rng = np.random.default_rng(0)
    cams = _rig()
    lm = LandmarkMap(ids=np.arange(300), positions=rng.uniform(-10.0, 10.0, size=(300, 3)))
    T_w_b = RigidPose.from_rotvec(np.array([0.1, -0.2, 0.05]), np.array([0.3, 0.0, -0.2]))
    (kf,) = project_batch_with_ids([KeyframeState(timestamp=2.0, T_w_b=T_w_b)], cams, lm)
    for cam, meas in zip(cams, kf.cam_measurements):
        p_c = cam.T_b_c.inverse().transform(T_w_b.inverse().transform(lm.positions))
        uv, visible = cam.project_batch(p_c)
        assert meas.global_ids.tolist() == lm.ids[visible].tolist()
        np.testing.assert_allclose(meas.uv, uv[visible], atol=1e-9)


def test_empty_inputs():
    assert project_batch_with_ids([], _rig(), _map()) == []
    (kf,) = project_batch_with_ids([KeyframeState(timestamp=0.0, T_w_b=RigidPose.identity())], [], _map())
    assert kf.cam_measurements == []


def test_rig_dir_roundtrip(tmp_path: Path) -> None:
    cams = _rig()
    save_cameras_to_dir(tmp_path / "rig", cams)
    (tmp_path / "rig" / "cam5").mkdir()  # not consecutive, ignored
    assert num_of_cameras(tmp_path / "rig") == 2

    loaded = load_cameras_from_dir(tmp_path / "rig")
    assert len(loaded) == 2
    for a, b in zip(cams, loaded):
        assert a.intrinsics == b.intrinsics
        assert a.T_b_c.is_close(b.T_b_c, atol=1e-12)


def test_rig_dir_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        num_of_cameras(tmp_path / "missing")
    assert num_of_cameras(tmp_path) == 0
    with pytest.raises(CalibrationFormatError):
        load_cameras_from_dir(tmp_path)
    (tmp_path / "cam0").mkdir()
    with pytest.raises(FileNotFoundError):
        load_cameras_from_dir(tmp_path)
