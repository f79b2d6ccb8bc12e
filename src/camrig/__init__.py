from camrig import config
from camrig.api import load_camera, load_cameras_from_dir, num_of_cameras, project_batch_with_ids, save_camera
from camrig.core.measurements import CamMeasurements, KeyframeMeasurements, KeyframeState, LandmarkMap
from camrig.core.pinhole import PinholeCamera, PinholeIntrinsics
from camrig.core.pose import RigidPose

__all__ = [
    "config",
    "CamMeasurements",
    "KeyframeMeasurements",
    "KeyframeState",
    "LandmarkMap",
    "PinholeCamera",
    "PinholeIntrinsics",
    "RigidPose",
    "load_camera",
    "load_cameras_from_dir",
    "num_of_cameras",
    "project_batch_with_ids",
    "save_camera",
]
