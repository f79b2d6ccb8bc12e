from __future__ import annotations


def test_public_api_exports() -> None:
    import camrig as cr

    assert hasattr(cr, "PinholeCamera")
    assert hasattr(cr, "PinholeIntrinsics")
    assert hasattr(cr, "RigidPose")
    assert hasattr(cr, "project_batch_with_ids")
    assert hasattr(cr, "load_cameras_from_dir")
    assert hasattr(cr, "num_of_cameras")
