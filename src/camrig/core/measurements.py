from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from camrig.config import UNASSIGNED_TRACK_ID
from camrig.core.pose import RigidPose


def as_ids(ids: np.ndarray) -> np.ndarray:
    """Landmark ids as int64; refuses non-integer input and values int64 cannot hold."""
    ids = np.asarray(ids).reshape(-1)
    if ids.size == 0:
        return ids.astype(np.int64)
    if not np.issubdtype(ids.dtype, np.integer):
        raise ValueError(f"ids must be integers, got dtype {ids.dtype}")
    if ids.dtype == np.uint64 and int(ids.max()) > np.iinfo(np.int64).max:
        raise ValueError("ids must fit in int64")
    return ids.astype(np.int64)


@dataclass
class CamMeasurements:
    """
    Pixel observations of one camera at one keyframe.

    Row i pairs uv[i] with the landmark global_ids[i]; track_ids are filled in
    later by data association and stay UNASSIGNED_TRACK_ID until then.
    """

    uv: np.ndarray = field(default_factory=lambda: np.zeros((0, 2), dtype=np.float64))  # (M,2)
    global_ids: np.ndarray = field(default_factory=lambda: np.zeros((0,), dtype=np.int64))  # (M,)
    track_ids: np.ndarray | None = None  # (M,), unassigned when omitted

    def __post_init__(self) -> None:
        self.set_measurements(self.uv, self.global_ids, self.track_ids)

    @classmethod
    def empty(cls) -> "CamMeasurements":
        return cls()

    def set_measurements(self, uv: np.ndarray, global_ids: np.ndarray, track_ids: np.ndarray | None = None) -> None:
        uv = np.asarray(uv, dtype=np.float64).reshape(-1, 2)
        global_ids = as_ids(global_ids)
        if track_ids is None:
            track_ids = np.full(global_ids.shape, UNASSIGNED_TRACK_ID, dtype=np.int32)
        track_ids = np.asarray(track_ids, dtype=np.int32).reshape(-1)
        if not (uv.shape[0] == global_ids.shape[0] == track_ids.shape[0]):
            raise ValueError("uv, global_ids and track_ids must have the same length")
        self.uv = uv
        self.global_ids = global_ids
        self.track_ids = track_ids

    def __len__(self) -> int:
        return int(self.global_ids.shape[0])


@dataclass(frozen=True)
class KeyframeState:
    timestamp: float
    T_w_b: RigidPose


@dataclass(frozen=True)
class LandmarkMap:
    """Landmark positions in the world frame, one row per global id."""

    ids: np.ndarray  # (N,)
    positions: np.ndarray  # (N,3)

    def __post_init__(self) -> None:
        ids = as_ids(self.ids)
        positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
        if ids.shape[0] != positions.shape[0]:
            raise ValueError("ids and positions must have the same length")
        object.__setattr__(self, "ids", ids)
        object.__setattr__(self, "positions", positions)

    def __len__(self) -> int:
        return int(self.ids.shape[0])

    def points_in_frame(self, T_c_w: RigidPose) -> np.ndarray:
        return T_c_w.transform(self.positions)


@dataclass
class KeyframeMeasurements:
    timestamp: float
    cam_measurements: list[CamMeasurements]  # rig order

    def __len__(self) -> int:
        return len(self.cam_measurements)

    def num_observations(self) -> int:
        return sum(len(m) for m in self.cam_measurements)
