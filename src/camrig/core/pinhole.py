from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from camrig.config import (
    DEFAULT_DEPTH_RANGE,
    DEFAULT_DIST_RANGE,
    DEFAULT_Z_MARGIN,
    _require,
)
from camrig.core.measurements import CamMeasurements
from camrig.core.pose import RigidPose

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PinholeIntrinsics:
    fx: float
    fy: float
    cx: float
    cy: float
    w: int
    h: int

    def validate(self) -> None:
        values = (self.fx, self.fy, self.cx, self.cy, self.w, self.h)
        _require(all(math.isfinite(float(v)) for v in values), "intrinsics must be finite")
        _require(float(self.fx) > 0.0 and float(self.fy) > 0.0, "focal lengths must be > 0")
        _require(float(self.w).is_integer() and float(self.h).is_integer(), "image size must be integral")
        _require(int(self.w) > 0 and int(self.h) > 0, "image size must be > 0")

    def normalized(self) -> "PinholeIntrinsics":
        """Validated copy with float parameters and int image size."""
        self.validate()
        return PinholeIntrinsics(
            fx=float(self.fx), fy=float(self.fy), cx=float(self.cx), cy=float(self.cy), w=int(self.w), h=int(self.h)
        )

    def K(self) -> np.ndarray:
        return np.array(
            [[float(self.fx), 0.0, float(self.cx)], [0.0, float(self.fy), float(self.cy)], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )

    def K_inv(self) -> np.ndarray:
        fx, fy = float(self.fx), float(self.fy)
        return np.array(
            [[1.0 / fx, 0.0, -float(self.cx) / fx], [0.0, 1.0 / fy, -float(self.cy) / fy], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )

    def as_list(self) -> list[float]:
        return [float(self.fx), float(self.fy), float(self.cx), float(self.cy), float(self.w), float(self.h)]

    @classmethod
    def from_list(cls, params: Sequence[float]) -> "PinholeIntrinsics":
        _require(len(params) == 6, "expected [fx, fy, cx, cy, w, h]")
        fx, fy, cx, cy, w, h = (float(p) for p in params)
        _require(w.is_integer() and h.is_integer(), "image size must be integral")
        return cls(fx=fx, fy=fy, cx=cx, cy=cy, w=int(w), h=int(h))


class PinholeCamera:
    """
    Ideal pinhole camera rigidly mounted on a body.

    Points are expressed in the camera frame (x right, y down, z forward);
    T_b_c maps camera-frame points into the body frame. A camera is configured
    once (constructor and set_* methods) and is read-only afterwards, so
    projection calls from several threads are safe as long as nobody calls a
    setter concurrently.
    """

    def __init__(
        self,
        intrinsics: PinholeIntrinsics,
        T_b_c: RigidPose | None = None,
        *,
        depth_range: tuple[float, float] | None = None,
        dist_range: tuple[float, float] | None = None,
        margin_ratio: float = 0.0,
    ) -> None:
        self._intrinsics = intrinsics.normalized()
        self._T_b_c = RigidPose.identity() if T_b_c is None else T_b_c
        self._min_depth, self._max_depth = DEFAULT_DEPTH_RANGE
        self._min_dist, self._max_dist = DEFAULT_DIST_RANGE
        self._margin_ratio = 0.0
        self._w_margin = 0.0
        self._h_margin = 0.0
        self._bearings: np.ndarray | None = None  # (w*h,3)
        self._update_K()

        if depth_range is not None:
            self.set_depth_range(*depth_range)
        if dist_range is not None:
            self.set_dist_range(*dist_range)
        self.set_margin(margin_ratio)

    @classmethod
    def from_params(cls, geo_params: Sequence[float], T_b_c: RigidPose | None = None) -> "PinholeCamera":
        """Build from the flat [fx, fy, cx, cy, w, h] parameter list."""
        return cls(PinholeIntrinsics.from_list(geo_params), T_b_c)

    @classmethod
    def create_test_camera(cls) -> "PinholeCamera":
        return cls(PinholeIntrinsics(fx=400.0, fy=400.0, cx=320.0, cy=240.0, w=640, h=480), RigidPose.identity())

    def __repr__(self) -> str:
        i = self._intrinsics
        return (
            f"PinholeCamera(fx={i.fx}, fy={i.fy}, cx={i.cx}, cy={i.cy}, w={i.w}, h={i.h}, "
            f"T_b_c=(R={self._T_b_c.R.tolist()}, t={self._T_b_c.t.tolist()}))"
        )

    def _update_K(self) -> None:
        K = self._intrinsics.K()
        K_inv = self._intrinsics.K_inv()
        K.setflags(write=False)
        K_inv.setflags(write=False)
        self._K = K
        self._K_inv = K_inv

    # accessors

    @property
    def intrinsics(self) -> PinholeIntrinsics:
        return self._intrinsics

    @property
    def fx(self) -> float:
        return self._intrinsics.fx

    @property
    def fy(self) -> float:
        return self._intrinsics.fy

    @property
    def cx(self) -> float:
        return self._intrinsics.cx

    @property
    def cy(self) -> float:
        return self._intrinsics.cy

    @property
    def w(self) -> int:
        return self._intrinsics.w

    @property
    def h(self) -> int:
        return self._intrinsics.h

    @property
    def K(self) -> np.ndarray:
        return self._K.copy()

    @property
    def K_inv(self) -> np.ndarray:
        return self._K_inv.copy()

    @property
    def T_b_c(self) -> RigidPose:
        return self._T_b_c

    @property
    def margins(self) -> tuple[float, float]:
        return self._w_margin, self._h_margin

    @property
    def depth_range(self) -> tuple[float, float]:
        return self._min_depth, self._max_depth

    @property
    def dist_range(self) -> tuple[float, float]:
        return self._min_dist, self._max_dist

    # configuration

    def set_intrinsics(self, intrinsics: PinholeIntrinsics) -> None:
        self._intrinsics = intrinsics.normalized()
        self._update_K()
        self.set_margin(self._margin_ratio)
        if self._bearings is not None:
            self._bearings = None
            LOGGER.warning("intrinsics changed; bearing vectors dropped, call compute_bearing_vectors()")

    def set_depth_range(self, min_z: float, max_z: float) -> None:
        _require(float(min_z) < float(max_z), f"depth range needs min < max, got ({min_z}, {max_z})")
        self._min_depth = float(min_z)
        self._max_depth = float(max_z)

    def set_dist_range(self, min_dist: float, max_dist: float) -> None:
        _require(float(min_dist) < float(max_dist), f"distance range needs min < max, got ({min_dist}, {max_dist})")
        self._min_dist = float(min_dist)
        self._max_dist = float(max_dist)

    def set_margin(self, ratio: float) -> None:
        """
        Shrink the valid image region by ratio*w (left and right) and ratio*h
        (top and bottom). Ratios >= 0.5 leave no valid pixel.
        """
        _require(float(ratio) >= 0.0, f"margin ratio must be >= 0, got {ratio}")
        self._margin_ratio = float(ratio)
        self._w_margin = self.w * self._margin_ratio
        self._h_margin = self.h * self._margin_ratio

    # validity gates (single point/pixel or batch along the last axis)

    def is_inside_image(self, uv: np.ndarray) -> np.ndarray:
        uv = np.asarray(uv, dtype=np.float64)
        x = uv[..., 0]
        y = uv[..., 1]
        return (
            (x > self._w_margin)
            & (x < float(self.w) - self._w_margin)
            & (y > self._h_margin)
            & (y < float(self.h) - self._h_margin)
        )

    def is_depth_valid(self, points_cam: np.ndarray, z_margin: float = DEFAULT_Z_MARGIN) -> np.ndarray:
        # z_margin and min_depth are both lower bounds; both must pass.
        z = np.asarray(points_cam, dtype=np.float64)[..., 2]
        return (z > z_margin) & (z < self._max_depth) & (z > self._min_depth)

    def is_distance_valid(self, points_cam: np.ndarray) -> np.ndarray:
        dist = np.linalg.norm(np.asarray(points_cam, dtype=np.float64), axis=-1)
        return (dist < self._max_dist) & (dist > self._min_dist)

    def pixel_coord_to_flat_idx(self, x: int, y: int) -> int:
        return int(y) * self.w + int(x)

    # projection

    def _project_rows(self, points_cam: np.ndarray, uv_out: np.ndarray) -> None:
        K = self._K
        X = points_cam[:, 0]
        Y = points_cam[:, 1]
        Z = points_cam[:, 2]
        with np.errstate(divide="ignore", invalid="ignore"):
            u_h = K[0, 0] * X + K[0, 1] * Y + K[0, 2] * Z
            v_h = K[1, 0] * X + K[1, 1] * Y + K[1, 2] * Z
            w_h = K[2, 0] * X + K[2, 1] * Y + K[2, 2] * Z
            uv_out[:, 0] = u_h / w_h
            uv_out[:, 1] = v_h / w_h

    def project_batch(
        self,
        points_cam: np.ndarray,
        uv_out: np.ndarray | None = None,
        visible_out: np.ndarray | None = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Project camera-frame points (N,3) to pixels (N,2).

        Pixels are written for every point, including invisible ones (they may
        be non-finite when z == 0); `visible` holds the depth and image-bounds
        verdict per point. Preallocated `uv_out` / `visible_out` must already
        have shapes (N,2) / (N,) and are filled in place.
        """
        points_cam = np.asarray(points_cam, dtype=np.float64)
        assert points_cam.ndim == 2 and points_cam.shape[1] == 3, f"points must be (N,3), got {points_cam.shape}"
        n = points_cam.shape[0]
        if uv_out is None:
            uv_out = np.empty((n, 2), dtype=np.float64)
        assert uv_out.shape == (n, 2), f"uv_out must be {(n, 2)}, got {uv_out.shape}"
        if visible_out is None:
            visible_out = np.empty((n,), dtype=bool)
        assert visible_out.shape == (n,), f"visible_out must be {(n,)}, got {visible_out.shape}"

        self._project_rows(points_cam, uv_out)
        visible_out[:] = self.is_depth_valid(points_cam) & self.is_inside_image(uv_out)
        return uv_out, visible_out

    def project(self, point_cam: np.ndarray) -> tuple[np.ndarray, bool]:
        uv, visible = self.project_batch(np.asarray(point_cam, dtype=np.float64).reshape(1, 3))
        return uv[0], bool(visible[0])

    def project_batch_with_ids(self, points_cam: np.ndarray, ids: np.ndarray) -> CamMeasurements:
        """
        Project points and keep the visible ones, paired with their ids.

        Input order is preserved and track ids are left unassigned. Ids are
        expected to be unique within the batch.
        """
        points_cam = np.asarray(points_cam, dtype=np.float64)
        ids = np.asarray(ids).reshape(-1)
        assert ids.shape[0] == points_cam.shape[0], "ids and points must have the same length"
        uv, visible = self.project_batch(points_cam)
        return CamMeasurements(uv=uv[visible], global_ids=ids[visible])

    # backprojection

    def _backproject_rows(self, uv: np.ndarray, rays_out: np.ndarray) -> None:
        # Written element-wise so a pixel's ray does not depend on batch size.
        K_inv = self._K_inv
        x = uv[:, 0:1]
        y = uv[:, 1:2]
        rays_out[:] = x * K_inv[:, 0] + y * K_inv[:, 1] + K_inv[:, 2]

    def backproject_batch(self, uv: np.ndarray, rays_out: np.ndarray | None = None) -> np.ndarray:
        """
        Backproject pixels (N,2) to rays K^-1 [u, v, 1] of shape (N,3).

        Rays are not normalized.
        """
        uv = np.asarray(uv, dtype=np.float64)
        assert uv.ndim == 2 and uv.shape[1] == 2, f"pixels must be (N,2), got {uv.shape}"
        n = uv.shape[0]
        if rays_out is None:
            rays_out = np.empty((n, 3), dtype=np.float64)
        assert rays_out.shape == (n, 3), f"rays_out must be {(n, 3)}, got {rays_out.shape}"
        self._backproject_rows(uv, rays_out)
        return rays_out

    def backproject(self, uv: np.ndarray) -> np.ndarray:
        return self.backproject_batch(np.asarray(uv, dtype=np.float64).reshape(1, 2))[0]

    # bearing cache

    def compute_bearing_vectors(self) -> None:
        """Backproject every integer pixel; row y*w + x holds pixel (x, y)."""
        w, h = self.w, self.h
        yy, xx = np.meshgrid(np.arange(h, dtype=np.float64), np.arange(w, dtype=np.float64), indexing="ij")
        uv = np.stack([xx.reshape(-1), yy.reshape(-1)], axis=1)
        bearings = self.backproject_batch(uv)
        bearings.setflags(write=False)
        self._bearings = bearings
        LOGGER.debug("computed %d bearing vectors for a %dx%d image", bearings.shape[0], w, h)

    @property
    def bearing_vectors_computed(self) -> bool:
        return self._bearings is not None

    def get_bearing_at_pixel(self, x: int, y: int) -> np.ndarray:
        assert self._bearings is not None, "bearing vectors not computed"
        assert 0 <= int(x) < self.w and 0 <= int(y) < self.h, f"pixel ({x}, {y}) outside the image"
        return self._bearings[self.pixel_coord_to_flat_idx(x, y)].copy()

    def num_bearings(self) -> int:
        assert self._bearings is not None, "bearing vectors not computed"
        return int(self._bearings.shape[0])

    def bearing_map(self) -> np.ndarray:
        """Read-only (H,W,3) view of the bearing cache."""
        assert self._bearings is not None, "bearing vectors not computed"
        return self._bearings.reshape(self.h, self.w, 3)
