# clipvault/services/retention_sweeper.py
"""
Retention sweeper: the "expunge" batch job.

Every event captured RETENTION_DAYS ago or earlier is removed together with
every rendition stored for it (jpg thumbnail, mp4 clip, avi original).

Failure policy:
  blob delete fails   → logged, the sweep carries on (missing renditions are normal)
  catalog delete fails → the sweep fails with that error, after in-flight tasks finish
"""

from datetime import datetime, timedelta
from typing import Optional

from clipvault.config import settings
from clipvault.services.asset_classifier import asset_names
from clipvault.services.catalog_index import CatalogIndex
from clipvault.services.object_store import ObjectStore
from clipvault.services.records import EventRecord
from clipvault.utils.logger import get_logger
from clipvault.utils.task_group import ErrGroup
from clipvault.utils.time_parser import utcnow

logger = get_logger(__name__)


class RetentionSweeper:
    def __init__(self, store: ObjectStore, catalog: CatalogIndex,
                 horizon: timedelta = timedelta(days=settings.RETENTION_DAYS),
                 page_size: int = settings.EXPUNGE_PAGE_SIZE,
                 concurrency: int = settings.DELETE_CONCURRENCY):
        self.store = store
        self.catalog = catalog
        self.horizon = horizon
        self.page_size = page_size
        self.concurrency = concurrency

    async def _expunge_one(self, event: EventRecord):
        logger.debug(f"[EXPUNGE] Expunging {event.identity}")
        for name in asset_names(event.camera_id, event.filename):
            try:
                await self.store.delete(name)
            except Exception as e:
                logger.warning(f"[EXPUNGE] Error deleting {name}: {e}")

        await self.catalog.delete(event.key or event.identity)

    async def expunge(self, now: Optional[datetime] = None) -> int:
        """Delete every expired event and its media. Returns the number of events expunged."""
        cutoff = (now or utcnow()) - self.horizon
        group = ErrGroup(limit=self.concurrency, name="expunge")
        expunging = 0
        cursor = None

        try:
            while True:
                page = await self.catalog.query(until=cutoff, newest_first=False,
                                                cursor=cursor, limit=self.page_size)
                for event in page.events:
                    expunging += 1
                    group.go(self._expunge_one, event)
                if not page.cursor:
                    break
                cursor = page.cursor
        except Exception as e:
            logger.error(f"[EXPUNGE] Error fetching events: {e}")
            # Let already-scheduled deletes finish before reporting
            try:
                await group.wait()
            except Exception as task_error:
                logger.error(f"[EXPUNGE] Error expunging events: {task_error}")
            raise

        logger.info(f"[EXPUNGE] Expunging {expunging} entries older than {cutoff.isoformat()}")
        try:
            await group.wait()
        except Exception as e:
            logger.error(f"[EXPUNGE] Error expunging events: {e}")
            raise
        return expunging
