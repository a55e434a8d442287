# clipvault/routers/cameras.py
from fastapi import APIRouter, Depends
from clipvault.dependencies import get_camera_directory
from clipvault.schemas.camera import CameraOut
from clipvault.services.camera_directory import CameraDirectory

router = APIRouter()


@router.get("/cams", response_model=dict[str, CameraOut], summary="Registered cameras")
async def list_cameras(directory: CameraDirectory = Depends(get_camera_directory)):
    """Served from the camera directory cache (refreshed at most daily, or on a miss)."""
    cameras = await directory.load()
    return {cam_id: CameraOut(key=cam_id, name=cam.name) for cam_id, cam in cameras.items()}
