import pytest

from camrig.config import CalibrationFormatError, CameraConfigError, _require, cam_dir_name


def test_cam_dir_name():
    assert cam_dir_name(0) == "cam0"
    assert cam_dir_name(12) == "cam12"


def test_require_raises_config_error():
    _require(True, "unused")
    with pytest.raises(CameraConfigError, match="bad"):
        _require(False, "bad")


def test_error_classes_are_distinct():
    assert not issubclass(CameraConfigError, CalibrationFormatError)
    assert not issubclass(CalibrationFormatError, CameraConfigError)
    assert issubclass(CalibrationFormatError, ValueError)
