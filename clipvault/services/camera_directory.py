# clipvault/services/camera_directory.py
"""
Camera directory: camera id → display metadata.

The cameras table is the authoritative (slow) source; this module keeps a
process-wide copy for CAMERA_CACHE_TTL_SECONDS (24h). There is no active
invalidation: a lookup that misses the cache reloads the whole table, so a
newly provisioned camera shows up on first use. Concurrent refreshes are
harmless reads of the same source, last writer wins.
"""

import asyncio
import time
from typing import Callable, Optional

from clipvault.config import settings
from clipvault.database import SessionLocal
from clipvault.models.camera import Camera
from clipvault.services.records import CameraRecord
from clipvault.utils.logger import get_logger

logger = get_logger(__name__)


class CameraNotFoundError(LookupError):
    """Raised when an operation is scoped to a camera the directory doesn't know."""


class CameraRepository:
    """Reads the provisioned cameras table."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def _load_all(self) -> dict:
        db = self.session_factory()
        try:
            cameras = {}
            for row in db.query(Camera).order_by(Camera.id).all():
                cam = CameraRecord(name=row.name, auth_token=row.auth_token)
                cam.set_key(row.id)
                cameras[row.id] = cam
            return cameras
        finally:
            db.close()

    async def load_all(self) -> dict:
        return await asyncio.to_thread(self._load_all)


class CameraDirectory:
    def __init__(self, source, ttl_seconds: float = settings.CAMERA_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.source = source
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._cameras: Optional[dict] = None
        self._loaded_at = 0.0

    def _is_fresh(self) -> bool:
        return self._cameras is not None and (self.clock() - self._loaded_at) < self.ttl_seconds

    async def refresh_all(self) -> dict:
        """Reload every camera from the source and replace the cached map."""
        cameras = await self.source.load_all()
        self._cameras = cameras
        self._loaded_at = self.clock()
        logger.debug(f"[CAMS] Loaded {len(cameras)} cameras")
        return dict(cameras)

    async def load(self) -> dict:
        """All cameras, from cache while it is fresh."""
        if self._is_fresh():
            return dict(self._cameras)
        return await self.refresh_all()

    async def get(self, camera_id: str) -> Optional[CameraRecord]:
        """One camera, or None. A miss forces a reload before giving up."""
        cameras = await self.load()
        if camera_id in cameras:
            return cameras[camera_id]
        cameras = await self.refresh_all()
        return cameras.get(camera_id)
