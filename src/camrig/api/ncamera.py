from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from camrig.api.camera_io import load_camera, save_camera
from camrig.config import CalibrationFormatError, cam_dir_name
from camrig.core.measurements import KeyframeMeasurements, KeyframeState, LandmarkMap
from camrig.core.pinhole import PinholeCamera

LOGGER = logging.getLogger(__name__)


def project_batch_with_ids(
    states: Sequence[KeyframeState],
    cameras: Sequence[PinholeCamera],
    landmark_map: LandmarkMap,
) -> list[KeyframeMeasurements]:
    """
    Project every map landmark into every camera of the rig at every keyframe.

    Returns one KeyframeMeasurements per state (same order), each holding one
    CamMeasurements per camera (rig order). Within a camera, observations keep
    the map's landmark order.
    """
    out: list[KeyframeMeasurements] = []
    for state in states:
        cam_meas = []
        for cam in cameras:
            T_c_w = (state.T_w_b @ cam.T_b_c).inverse()
            points_cam = landmark_map.points_in_frame(T_c_w)
            cam_meas.append(cam.project_batch_with_ids(points_cam, landmark_map.ids))
        out.append(KeyframeMeasurements(timestamp=float(state.timestamp), cam_measurements=cam_meas))
    return out


def num_of_cameras(rig_dir: Path) -> int:
    """Count the consecutive cam0, cam1, ... subdirectories of `rig_dir`."""
    rig_dir = Path(rig_dir)
    if not rig_dir.is_dir():
        raise FileNotFoundError(f"Missing {rig_dir}")
    n = 0
    while (rig_dir / cam_dir_name(n)).is_dir():
        n += 1
    return n


def load_cameras_from_dir(rig_dir: Path) -> list[PinholeCamera]:
    rig_dir = Path(rig_dir)
    n = num_of_cameras(rig_dir)
    if n == 0:
        raise CalibrationFormatError(f"{rig_dir} contains no {cam_dir_name(0)} directory")
    cameras = [load_camera(rig_dir / cam_dir_name(i)) for i in range(n)]
    LOGGER.info("loaded %d cameras from %s", n, rig_dir)
    return cameras


def save_cameras_to_dir(rig_dir: Path, cameras: Sequence[PinholeCamera]) -> None:
    rig_dir = Path(rig_dir)
    rig_dir.mkdir(parents=True, exist_ok=True)
    for i, cam in enumerate(cameras):
        save_camera(rig_dir / cam_dir_name(i), cam)
