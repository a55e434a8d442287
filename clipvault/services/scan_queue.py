# clipvault/services/scan_queue.py
"""
Scan queue: fire-and-forget scan requests.

Uploaders ping /newfile after each clip; scanAll fans out one request per
camera. Each request becomes a background task running Reconciler.scan for a
single camera. Callers never wait, and failures only reach the log.
"""

import asyncio

from clipvault.services.camera_directory import CameraDirectory
from clipvault.services.reconciler import Reconciler
from clipvault.utils.logger import get_logger

logger = get_logger(__name__)


class ScanQueue:
    def __init__(self, reconciler: Reconciler, cameras: CameraDirectory):
        self.reconciler = reconciler
        self.cameras = cameras
        self._pending: set = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def _run(self, camera_id: str):
        try:
            added = await self.reconciler.scan(camera_id)
            logger.info(f"[QUEUE] Scan of {camera_id} finished: {added} new events")
        except Exception as e:
            logger.error(f"[QUEUE] Scan of {camera_id} failed: {e}", exc_info=True)

    def enqueue(self, camera_id: str) -> asyncio.Task:
        """Schedule a scan of one camera and return immediately."""
        logger.info(f"[QUEUE] Requesting scan of {camera_id}")
        task = asyncio.create_task(self._run(camera_id), name=f"scan-{camera_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def enqueue_all(self) -> list:
        """Schedule a scan for every known camera."""
        cameras = await self.cameras.load()
        for camera_id in sorted(cameras):
            self.enqueue(camera_id)
        return sorted(cameras)

    async def drain(self):
        """Wait for every scan scheduled so far (shutdown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
