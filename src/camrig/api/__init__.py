from camrig.api.camera_io import load_camera, load_camera_from_files, save_camera, save_camera_to_files
from camrig.api.ncamera import load_cameras_from_dir, num_of_cameras, project_batch_with_ids, save_cameras_to_dir

__all__ = [
    "load_camera",
    "load_camera_from_files",
    "save_camera",
    "save_camera_to_files",
    "load_cameras_from_dir",
    "num_of_cameras",
    "project_batch_with_ids",
    "save_cameras_to_dir",
]
