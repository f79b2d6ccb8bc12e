from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class RigidPose:
    """
    Rigid-body transform T_a_b mapping points from frame b into frame a:

      p_a = R p_b + t

    Composition follows the frame names: T_a_b @ T_b_c -> T_a_c.
    """

    R: np.ndarray  # (3,3)
    t: np.ndarray  # (3,)

    def __post_init__(self) -> None:
        R = np.array(self.R, dtype=np.float64)
        t = np.array(self.t, dtype=np.float64)
        if R.shape != (3, 3):
            raise ValueError(f"R must be (3,3), got {R.shape}")
        t = t.reshape(-1)
        if t.shape != (3,):
            raise ValueError(f"t must have 3 elements, got {t.shape}")
        if not (np.all(np.isfinite(R)) and np.all(np.isfinite(t))):
            raise ValueError("non-finite values")
        R.setflags(write=False)
        t.setflags(write=False)
        object.__setattr__(self, "R", R)
        object.__setattr__(self, "t", t)

    @classmethod
    def identity(cls) -> "RigidPose":
        return cls(R=np.eye(3, dtype=np.float64), t=np.zeros((3,), dtype=np.float64))

    @classmethod
    def from_rotvec(cls, rotvec: np.ndarray, t: np.ndarray | None = None) -> "RigidPose":
        from scipy.spatial.transform import Rotation as Rot  # type: ignore

        rotvec = np.asarray(rotvec, dtype=np.float64).reshape(3)
        if t is None:
            t = np.zeros((3,), dtype=np.float64)
        return cls(R=Rot.from_rotvec(rotvec).as_matrix(), t=t)

    @classmethod
    def from_quaternion(cls, quat_xyzw: np.ndarray, t: np.ndarray | None = None) -> "RigidPose":
        """Quaternion in scalar-last (x, y, z, w) order."""
        from scipy.spatial.transform import Rotation as Rot  # type: ignore

        quat_xyzw = np.asarray(quat_xyzw, dtype=np.float64).reshape(4)
        if t is None:
            t = np.zeros((3,), dtype=np.float64)
        return cls(R=Rot.from_quat(quat_xyzw).as_matrix(), t=t)

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> "RigidPose":
        T = np.asarray(T, dtype=np.float64).reshape(4, 4)
        return cls(R=T[:3, :3], t=T[:3, 3])

    def as_matrix(self) -> np.ndarray:
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.R
        T[:3, 3] = self.t
        return T

    def as_rotvec(self) -> np.ndarray:
        from scipy.spatial.transform import Rotation as Rot  # type: ignore

        return Rot.from_matrix(self.R).as_rotvec()

    def inverse(self) -> "RigidPose":
        R_inv = self.R.T
        return RigidPose(R=R_inv, t=-(R_inv @ self.t))

    def __matmul__(self, other: "RigidPose") -> "RigidPose":
        if not isinstance(other, RigidPose):
            return NotImplemented
        return RigidPose(R=self.R @ other.R, t=self.R @ other.t + self.t)

    def transform(self, points: np.ndarray) -> np.ndarray:
        """Apply the transform to a (3,) point or an (N,3) batch."""
        points = np.asarray(points, dtype=np.float64)
        if points.shape[-1] != 3:
            raise ValueError("points must have shape (3,) or (N,3)")
        return points @ self.R.T + self.t

    def is_close(self, other: "RigidPose", atol: float = 1e-9) -> bool:
        return bool(np.allclose(self.R, other.R, atol=atol) and np.allclose(self.t, other.t, atol=atol))

    def to_dict(self) -> dict[str, Any]:
        return {"R": self.R.tolist(), "t": self.t.tolist()}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "RigidPose":
        return cls(R=np.asarray(d["R"], dtype=np.float64), t=np.asarray(d["t"], dtype=np.float64))
