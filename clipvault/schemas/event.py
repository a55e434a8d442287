# clipvault/schemas/event.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from clipvault.schemas.camera import CameraOut


class EventOut(BaseModel):
    key: str
    camera_id: str
    timestamp: datetime
    filename: str
    duration: float
    metadata: list[tuple[str, str]]
    camera: Optional[CameraOut] = None     # None when the camera is no longer registered


class EventPageOut(BaseModel):
    results: list[EventOut]
    cursor: Optional[str] = None
