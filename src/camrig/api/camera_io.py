from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np

from camrig.config import (
    GEO_FILENAME,
    GEO_SCHEMA,
    POSE_SCHEMA,
    T_B_C_FILENAME,
    CalibrationFormatError,
    CameraConfigError,
)
from camrig.core.pinhole import PinholeCamera, PinholeIntrinsics
from camrig.core.pose import RigidPose


def _to_float_matrix(x: Any, shape: tuple[int, ...]) -> np.ndarray:
    try:
        x = np.asarray(x, dtype=np.float64).reshape(shape)
    except (TypeError, ValueError) as e:
        raise CalibrationFormatError(f"expected an array of shape {shape}") from e
    if not np.all(np.isfinite(x)):
        raise CalibrationFormatError("non-finite values")
    return x


def _read_json(path: Path, schema: str) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CalibrationFormatError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict) or data.get("schema_version") != schema:
        raise CalibrationFormatError(f"{path} schema_version must be {schema}")
    return data


def save_camera_to_files(geo_path: Path, pose_path: Path, camera: PinholeCamera) -> None:
    """
    Write the camera geometry and its body-to-camera extrinsics:

      geometry: {"schema_version": ..., "params": [fx, fy, cx, cy, w, h]}
      pose:     {"schema_version": ..., "R": 3x3, "t": 3}

    w and h are stored as floats like the other parameters.
    """
    geo_path = Path(geo_path)
    pose_path = Path(pose_path)
    geo_path.parent.mkdir(parents=True, exist_ok=True)
    pose_path.parent.mkdir(parents=True, exist_ok=True)

    geo = {"schema_version": GEO_SCHEMA, "params": camera.intrinsics.as_list()}
    geo_path.write_text(json.dumps(geo, indent=2), encoding="utf-8")

    pose: dict[str, Any] = {"schema_version": POSE_SCHEMA}
    pose.update(camera.T_b_c.to_dict())
    pose_path.write_text(json.dumps(pose, indent=2), encoding="utf-8")


def load_camera_from_files(geo_path: Path, pose_path: Path) -> PinholeCamera:
    geo = _read_json(geo_path, GEO_SCHEMA)
    params = geo.get("params")
    if not isinstance(params, list) or len(params) != 6:
        raise CalibrationFormatError(f"{geo_path} params must be [fx, fy, cx, cy, w, h]")
    params_arr = _to_float_matrix(params, (6,))
    w, h = float(params_arr[4]), float(params_arr[5])
    if not (w.is_integer() and h.is_integer()):
        raise CalibrationFormatError(f"{geo_path} image size must be integral, got {(w, h)}")

    pose = _read_json(pose_path, POSE_SCHEMA)
    for k in ("R", "t"):
        if k not in pose:
            raise CalibrationFormatError(f"{pose_path} missing key: {k}")
    T_b_c = RigidPose(R=_to_float_matrix(pose["R"], (3, 3)), t=_to_float_matrix(pose["t"], (3,)))

    try:
        intrinsics = PinholeIntrinsics.from_list(params_arr.tolist())
        return PinholeCamera(intrinsics, T_b_c)
    except CameraConfigError as e:
        raise CalibrationFormatError(f"{geo_path} invalid intrinsics: {e}") from e


def save_camera(cam_dir: Path, camera: PinholeCamera) -> None:
    cam_dir = Path(cam_dir)
    save_camera_to_files(cam_dir / GEO_FILENAME, cam_dir / T_B_C_FILENAME, camera)


def load_camera(cam_dir: Path) -> PinholeCamera:
    cam_dir = Path(cam_dir)
    return load_camera_from_files(cam_dir / GEO_FILENAME, cam_dir / T_B_C_FILENAME)
