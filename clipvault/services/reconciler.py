# clipvault/services/reconciler.py
"""
Reconciler: indexes newly uploaded clips (the "scan" batch job).

Lists the object store (whole bucket, or one camera's folder), classifies
every completed recording and inserts the ones the catalog doesn't have yet.
Re-running a scan over an unchanged store inserts nothing.

Prerequisites (camera directory + already-indexed identities) load while the
listing starts; the first completed recording waits for both.
"""

import asyncio
from datetime import tzinfo
from typing import Optional

from clipvault.config import settings
from clipvault.services.asset_classifier import COMPLETED_RECORDING_TYPE, classify_recording
from clipvault.services.camera_directory import CameraDirectory, CameraNotFoundError
from clipvault.services.catalog_index import CatalogIndex
from clipvault.services.object_store import ObjectStore
from clipvault.utils.logger import get_logger
from clipvault.utils.task_group import ErrGroup
from clipvault.utils.time_parser import resolve_timezone

logger = get_logger(__name__)


def chunked(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


class Reconciler:
    def __init__(self, store: ObjectStore, catalog: CatalogIndex, cameras: CameraDirectory,
                 tz: Optional[tzinfo] = None, batch_size: int = settings.CATALOG_BATCH_SIZE):
        self.store = store
        self.catalog = catalog
        self.cameras = cameras
        self.tz = tz or resolve_timezone(settings.LOCAL_TIMEZONE)
        self.batch_size = batch_size

    async def _load_cameras(self, camera_id: Optional[str]) -> dict:
        cameras = await self.cameras.load()
        if camera_id and camera_id not in cameras:
            # Cache may predate the camera's provisioning
            cameras = await self.cameras.refresh_all()
            if camera_id not in cameras:
                raise CameraNotFoundError(f"Requested camera {camera_id!r} not found in {sorted(cameras)}")
        return cameras

    async def scan(self, camera_id: Optional[str] = None) -> int:
        """Index every new completed recording. Returns the number of events added."""
        scope = camera_id or "all cameras"
        cameras_task = asyncio.create_task(self._load_cameras(camera_id))
        keys_task = asyncio.create_task(self.catalog.existing_identities(camera_id))
        prereqs = None
        staged = []
        seen = set()

        try:
            logger.debug(f"[SCAN] Listing store for {scope}")
            async for entry in self.store.list(prefix=f"{camera_id}/" if camera_id else None):
                if entry.content_type != COMPLETED_RECORDING_TYPE:
                    continue
                if prereqs is None:
                    prereqs = await asyncio.gather(cameras_task, keys_task)
                cameras, existing = prereqs

                event = classify_recording(entry, cameras, self.tz)
                if event is None:
                    continue
                if event.identity in existing or event.identity in seen:
                    continue
                seen.add(event.identity)
                logger.debug(f"[SCAN] Adding {event.identity} @ {event.timestamp.isoformat()}")
                staged.append(event)

            if prereqs is None:
                # Nothing to classify, but prerequisite failures still count
                await asyncio.gather(cameras_task, keys_task)
        finally:
            for task in (cameras_task, keys_task):
                if not task.done():
                    task.cancel()
                elif not task.cancelled():
                    # Consume a prerequisite failure masked by a listing error
                    task.exception()

        logger.debug(f"[SCAN] Completed listing of {scope}: {len(staged)} new events")
        await self.flush(staged)
        if staged:
            logger.info(f"[SCAN] Indexed {len(staged)} events for {scope}")
        return len(staged)

    async def flush(self, events: list):
        """Commit events in independent, concurrent batches. First failure wins; no rollback."""
        group = ErrGroup(name="scan-flush")
        for batch in chunked(events, self.batch_size):
            group.go(self.catalog.batch_upsert, batch)
            logger.debug(f"[SCAN] Storing batch of {len(batch)} events")
        try:
            await group.wait()
        except Exception as e:
            logger.error(f"[SCAN] Error storing events: {e}")
            raise
