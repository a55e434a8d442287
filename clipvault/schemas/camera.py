# clipvault/schemas/camera.py
from pydantic import BaseModel


class CameraOut(BaseModel):
    key: str
    name: str
