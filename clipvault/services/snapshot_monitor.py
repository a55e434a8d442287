# clipvault/services/snapshot_monitor.py
"""
Snapshot monitor: the "scanSnaps" batch job.

Cameras upload a still every few minutes to <SNAPSHOT_PREFIX>/<camera>/.
Each run:
  1. lists the snapshot namespace and tracks the newest capture per camera
  2. deletes snapshots older than SNAPSHOT_MAX_AGE_SECONDS (bounded fan-out)
  3. reports cameras whose newest snapshot is older than SNAPSHOT_WARNING_AGE_SECONDS

Listing errors abort the run. Unparseable snapshots are skipped. Delete errors
fail the run once every delete has finished. Notification errors are only logged.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from clipvault.config import settings
from clipvault.services.alert_service import create_alerts
from clipvault.services.asset_classifier import classify_snapshot
from clipvault.services.camera_directory import CameraDirectory
from clipvault.services.notifier import Notifier
from clipvault.services.object_store import ObjectStore
from clipvault.utils.logger import get_logger
from clipvault.utils.task_group import ErrGroup
from clipvault.utils.time_parser import format_age, resolve_timezone, utcnow

logger = get_logger(__name__)

STALE_SUBJECT = "Camera Not Snapshotting"


@dataclass
class SnapshotReport:
    deleted: int = 0
    recents: dict = field(default_factory=dict)     # camera_id → newest capture
    stale: list = field(default_factory=list)       # camera ids, sorted
    notified: bool = False


def stale_cameras(recents: dict, now: datetime, warning_age: timedelta) -> list:
    """Cameras whose newest snapshot is older than warning_age."""
    return sorted(cam for cam, ts in recents.items() if now - ts > warning_age)


def render_stale_message(stale: list, recents: dict, names: dict, now: datetime) -> str:
    lines = ["The following cameras have not uploaded a snapshot recently:", ""]
    for cam in stale:
        label = f"{names[cam]} ({cam})" if names.get(cam) else cam
        last = recents[cam]
        lines.append(f"  {label}: last snapshot {last.isoformat()} ({format_age(last, now)} ago)")
    return "\n".join(lines) + "\n"


class SnapshotMonitor:
    def __init__(self, store: ObjectStore, cameras: CameraDirectory, notifier: Notifier,
                 alert_session_factory=None, tz: Optional[tzinfo] = None,
                 prefix: str = settings.SNAPSHOT_PREFIX,
                 max_age: timedelta = timedelta(seconds=settings.SNAPSHOT_MAX_AGE_SECONDS),
                 warning_age: timedelta = timedelta(seconds=settings.SNAPSHOT_WARNING_AGE_SECONDS),
                 concurrency: int = settings.DELETE_CONCURRENCY,
                 recipients: Optional[list] = None):
        self.store = store
        self.cameras = cameras
        self.notifier = notifier
        self.alert_session_factory = alert_session_factory
        self.tz = tz or resolve_timezone(settings.LOCAL_TIMEZONE)
        self.prefix = prefix.strip("/")
        self.max_age = max_age
        self.warning_age = warning_age
        self.concurrency = concurrency
        self.recipients = recipients if recipients is not None else settings.NOTIFY_RECIPIENT_LIST

    async def _delete(self, name: str, age: timedelta):
        logger.debug(f"[SNAPS] Deleting {name} ({age} old)")
        await self.store.delete(name)

    async def run(self, now: Optional[datetime] = None) -> SnapshotReport:
        now = now or utcnow()
        report = SnapshotReport()
        group = ErrGroup(limit=self.concurrency, name="snaps")

        # Listing / evaluating
        try:
            async for entry in self.store.list(prefix=self.prefix + "/"):
                info = classify_snapshot(entry, self.prefix, self.tz)
                if info is None:
                    continue
                newest = report.recents.get(info.camera_id)
                if newest is None or newest < info.captured:
                    report.recents[info.camera_id] = info.captured

                age = now - info.captured
                if age > self.max_age:
                    report.deleted += 1
                    group.go(self._delete, entry.name, age)
        except Exception as e:
            logger.error(f"[SNAPS] Error iterating snapshots: {e}")
            try:
                await group.wait()
            except Exception as task_error:
                logger.error(f"[SNAPS] Error deleting snapshots: {task_error}")
            raise

        logger.info(f"[SNAPS] Deleting {report.deleted} snapshots.")
        for cam, ts in sorted(report.recents.items()):
            logger.info(f"[SNAPS] Most recent {cam}: {ts.isoformat()} ({format_age(ts, now)} ago)")

        # Draining
        drain_error = None
        try:
            await group.wait()
        except Exception as e:
            logger.error(f"[SNAPS] Error deleting snapshots: {e}")
            drain_error = e

        # Notifying
        report.stale = stale_cameras(report.recents, now, self.warning_age)
        if report.stale:
            report.notified = await self._notify(report.stale, report.recents, now)

        if drain_error is not None:
            raise drain_error
        return report

    async def _camera_names(self) -> dict:
        try:
            cameras = await self.cameras.load()
        except Exception as e:
            logger.warning(f"[SNAPS] Camera directory unavailable, using ids: {e}")
            return {}
        return {cam_id: cam.name for cam_id, cam in cameras.items()}

    async def _notify(self, stale: list, recents: dict, now: datetime) -> bool:
        names = await self._camera_names()
        for cam in stale:
            if cam not in names:
                logger.warning(f"[SNAPS] Snapshots from unregistered camera {cam!r}")
        body = render_stale_message(stale, recents, names, now)

        sent = True
        try:
            logger.info(f"[SNAPS] Sending:\n{body}")
            await self.notifier.send(STALE_SUBJECT, body, self.recipients)
        except Exception as e:
            logger.error(f"[SNAPS] Failed to send stale camera notification: {e}")
            sent = False

        if self.alert_session_factory is not None:
            descriptions = {
                cam: f"No snapshot from {names.get(cam) or cam} since {recents[cam].isoformat()}"
                for cam in stale
            }
            try:
                await asyncio.to_thread(self._record_alerts, descriptions)
            except Exception as e:
                logger.error(f"[SNAPS] Failed to record stale camera alerts: {e}")
        return sent

    def _record_alerts(self, descriptions: dict):
        db = self.alert_session_factory()
        try:
            create_alerts(db, "stale_camera", descriptions)
        finally:
            db.close()
