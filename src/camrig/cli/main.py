from __future__ import annotations

import argparse
import logging
from pathlib import Path

import numpy as np

from camrig.api.ncamera import load_cameras_from_dir, project_batch_with_ids, save_cameras_to_dir
from camrig.config import CalibrationFormatError
from camrig.core.measurements import KeyframeState, LandmarkMap
from camrig.core.pinhole import PinholeCamera
from camrig.core.pose import RigidPose


def _test_rig(n: int, baseline_m: float) -> list[PinholeCamera]:
    base = PinholeCamera.create_test_camera()
    cams = []
    for i in range(n):
        T_b_c = RigidPose(R=np.eye(3, dtype=np.float64), t=np.array([i * baseline_m, 0.0, 0.0], dtype=np.float64))
        cams.append(PinholeCamera(base.intrinsics, T_b_c))
    return cams


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="camrig")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    mk = sub.add_parser("make-test-rig", help="Write a rig of identical test cameras spaced along the body x axis.")
    mk.add_argument("--out", type=Path, required=True)
    mk.add_argument("--cameras", type=int, default=2)
    mk.add_argument("--baseline-m", type=float, default=0.1, help="Spacing between consecutive cameras (m).")

    desc = sub.add_parser("describe-rig", help="Print intrinsics and extrinsics of every camera in a rig.")
    desc.add_argument("rig_dir", type=Path)

    proj = sub.add_parser(
        "project-points",
        help="Project world points (N,3 .npy) through every camera with the body at the origin.",
    )
    proj.add_argument("rig_dir", type=Path)
    proj.add_argument("--points", type=Path, required=True)
    proj.add_argument("--margin", type=float, default=0.0, help="Image margin ratio applied to every camera.")

    args = parser.parse_args(argv)
    if args.cmd == "project-points" and args.margin < 0:
        parser.error("--margin must be >= 0")
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.cmd == "make-test-rig":
        if args.cameras < 1:
            parser.error("--cameras must be >= 1")
        save_cameras_to_dir(args.out, _test_rig(args.cameras, args.baseline_m))
        print(f"Wrote {args.cameras} cameras to {args.out}")
        return 0

    try:
        cams = load_cameras_from_dir(args.rig_dir)
    except (FileNotFoundError, CalibrationFormatError) as e:
        print(f"Cannot load rig: {e}")
        return 1

    if args.cmd == "describe-rig":
        for i, cam in enumerate(cams):
            print(f"cam{i}: {cam!r}")
        return 0

    if args.cmd == "project-points":
        try:
            points = np.asarray(np.load(args.points), dtype=np.float64).reshape(-1, 3)
        except (OSError, ValueError) as e:
            print(f"Cannot read points: {e}")
            return 1
        for cam in cams:
            cam.set_margin(args.margin)
        landmarks = LandmarkMap(ids=np.arange(points.shape[0]), positions=points)
        state = KeyframeState(timestamp=0.0, T_w_b=RigidPose.identity())
        (kf_meas,) = project_batch_with_ids([state], cams, landmarks)
        for i, meas in enumerate(kf_meas.cam_measurements):
            print(f"cam{i}: {len(meas)}/{len(landmarks)} visible")
        return 0

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
