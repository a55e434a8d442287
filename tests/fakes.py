# tests/fakes.py
"""In-memory stand-ins for the object store, catalog and camera source."""

import asyncio

from clipvault.services.catalog_index import BatchTooLargeError
from clipvault.services.object_store import ObjectEntry, ObjectStore
from clipvault.services.records import CameraRecord, EventPage


def camera(cam_id, name=None):
    cam = CameraRecord(name=name or cam_id.title())
    cam.set_key(cam_id)
    return cam


class FakeStore(ObjectStore):
    def __init__(self, entries=(), fail_delete=(), fail_list=None):
        self.entries = {e.name: e for e in entries}
        self.deleted = []
        self.fail_delete = set(fail_delete)
        self.fail_list = fail_list

    def add(self, name, content_type="video/mp4", **metadata):
        self.entries[name] = ObjectEntry(name=name, content_type=content_type, size=1, metadata=metadata)

    async def list(self, prefix=None):
        for name in sorted(self.entries):
            if prefix and not name.startswith(prefix):
                continue
            yield self.entries[name]
        if self.fail_list is not None:
            await asyncio.sleep(0)
            raise self.fail_list

    async def delete(self, name):
        if name in self.fail_delete:
            raise OSError(f"delete refused: {name}")
        self.deleted.append(name)
        return self.entries.pop(name, None) is not None


class FakeCatalog:
    def __init__(self, max_batch=500, fail_batches=()):
        self.events = {}
        self.batches = []
        self.max_batch = max_batch
        self.fail_batches = set(fail_batches)
        self.fail_delete = set()
        self.queries = 0
        self._cursors = {}

    async def existing_identities(self, camera_id=None):
        return {k for k, ev in self.events.items() if camera_id is None or ev.camera_id == camera_id}

    async def batch_upsert(self, events):
        events = list(events)
        if len(events) > self.max_batch:
            raise BatchTooLargeError(f"{len(events)} > {self.max_batch}")
        index = len(self.batches)
        self.batches.append(events)
        if index in self.fail_batches:
            raise RuntimeError(f"batch {index} rejected")
        for ev in events:
            ev.set_key(ev.identity)
            self.events[ev.identity] = ev

    async def delete(self, identity):
        if identity in self.fail_delete:
            raise RuntimeError(f"index delete failed for {identity}")
        return self.events.pop(identity, None) is not None

    async def query(self, camera_id=None, until=None, newest_first=True, cursor=None, limit=100):
        rows = sorted(self.events.values(), key=lambda e: (e.timestamp, e.identity), reverse=newest_first)
        if camera_id:
            rows = [e for e in rows if e.camera_id == camera_id]
        if until is not None:
            rows = [e for e in rows if e.timestamp <= until]
        if cursor:
            last = self._cursors[cursor]
            if newest_first:
                rows = [e for e in rows if (e.timestamp, e.identity) < last]
            else:
                rows = [e for e in rows if (e.timestamp, e.identity) > last]
        self.queries += 1
        page = rows[:limit]
        next_cursor = None
        if len(rows) > limit:
            next_cursor = f"c{len(self._cursors)}"
            self._cursors[next_cursor] = (page[-1].timestamp, page[-1].identity)
        return EventPage(events=page, cursor=next_cursor)


class FakeCameraSource:
    def __init__(self, *cam_ids):
        self.cameras = {c: camera(c) for c in cam_ids}
        self.loads = 0
        self.error = None

    async def load_all(self):
        self.loads += 1
        if self.error is not None:
            raise self.error
        return dict(self.cameras)
