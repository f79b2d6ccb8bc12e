from __future__ import annotations

import math

GEO_FILENAME = "cam_geo.json"
T_B_C_FILENAME = "T_b_c.json"
CAM_DIR_PREFIX = "cam"

GEO_SCHEMA = "camrig.pinhole_geometry.v0"
POSE_SCHEMA = "camrig.pose.v0"

DEFAULT_DEPTH_RANGE = (-1.0, math.inf)
DEFAULT_DIST_RANGE = (-1.0, math.inf)
DEFAULT_Z_MARGIN = 0.05
UNASSIGNED_TRACK_ID = -1


class CameraConfigError(ValueError):
    """Raised when a camera is configured with invalid parameters (a caller bug)."""


class CalibrationFormatError(ValueError):
    """Raised when calibration files or a rig directory cannot be parsed."""


def cam_dir_name(index: int) -> str:
    return f"{CAM_DIR_PREFIX}{int(index)}"


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise CameraConfigError(msg)
