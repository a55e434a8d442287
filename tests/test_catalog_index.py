# tests/test_catalog_index.py
"""Catalog index tests against a throwaway SQLite database."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from sqlalchemy.orm import sessionmaker
from clipvault.database import create_tables, make_engine
from clipvault.services.catalog_index import (
    BatchTooLargeError, CatalogIndex, InvalidCursorError, decode_cursor, encode_cursor,
)
from clipvault.services.camera_directory import CameraDirectory
from clipvault.services.reconciler import Reconciler
from clipvault.services.records import EventRecord
from fakes import FakeCameraSource, FakeStore

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def catalog(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    create_tables(bind=engine)
    yield CatalogIndex(sessionmaker(bind=engine), max_batch=5)
    engine.dispose()


def make_event(camera_id, minutes, **extra):
    ts = T0 + timedelta(minutes=minutes)
    return EventRecord(camera_id=camera_id, timestamp=ts, filename=ts.strftime("%Y%m%d%H%M%S"),
                       duration=3.5, metadata=sorted(extra.items()))


class TestCatalogIndex:
    @pytest.mark.asyncio
    async def test_upsert_and_identities(self, catalog):
        events = [make_event("basement", 0, zone="stairs"), make_event("garage", 1)]
        await catalog.batch_upsert(events)

        assert events[0].key == "basement/20240301120000"
        assert await catalog.existing_identities() == {"basement/20240301120000", "garage/20240301120100"}
        assert await catalog.existing_identities("garage") == {"garage/20240301120100"}

        page = await catalog.query(camera_id="basement")
        assert page.cursor is None
        [ev] = page.events
        assert ev.key == ev.identity
        assert ev.timestamp == T0
        assert ev.metadata == [("zone", "stairs")]

    @pytest.mark.asyncio
    async def test_existing_identity_is_left_untouched(self, catalog):
        await catalog.batch_upsert([make_event("garage", 0)])
        again = make_event("garage", 0, zone="drive")
        again.duration = 99.0
        await catalog.batch_upsert([again])

        [ev] = (await catalog.query()).events
        assert ev.duration == 3.5
        assert ev.metadata == []
        assert again.key == ev.key

    @pytest.mark.asyncio
    async def test_overlapping_scans_of_one_camera(self, catalog):
        store = FakeStore()
        store.add("garage/20170518205540.mp4", duration="5s")
        reconciler = Reconciler(store, catalog, CameraDirectory(FakeCameraSource("garage")),
                                tz=ZoneInfo("US/Pacific"), batch_size=5)

        await asyncio.gather(reconciler.scan("garage"), reconciler.scan("garage"))
        assert await catalog.existing_identities() == {"garage/20170518205540"}
        assert await reconciler.scan("garage") == 0

    @pytest.mark.asyncio
    async def test_batch_limit(self, catalog):
        with pytest.raises(BatchTooLargeError):
            await catalog.batch_upsert([make_event("garage", i) for i in range(6)])
        assert await catalog.existing_identities() == set()

    @pytest.mark.asyncio
    async def test_pagination_newest_first(self, catalog):
        await catalog.batch_upsert([make_event("garage", i) for i in range(5)])
        await catalog.batch_upsert([make_event("basement", i) for i in range(2)])

        seen, cursor = [], None
        while True:
            page = await catalog.query(cursor=cursor, limit=3)
            seen.extend(page.events)
            if not page.cursor:
                break
            cursor = page.cursor

        assert len(seen) == 7
        keys = [(e.timestamp, e.identity) for e in seen]
        assert keys == sorted(keys, reverse=True)
        assert len({e.identity for e in seen}) == 7

    @pytest.mark.asyncio
    async def test_until_is_inclusive_and_ascending(self, catalog):
        await catalog.batch_upsert([make_event("garage", i) for i in range(5)])
        page = await catalog.query(until=T0 + timedelta(minutes=2), newest_first=False)
        assert [e.timestamp for e in page.events] == [T0 + timedelta(minutes=i) for i in range(3)]

    @pytest.mark.asyncio
    async def test_cursor_bound_to_order(self, catalog):
        await catalog.batch_upsert([make_event("garage", i) for i in range(3)])
        page = await catalog.query(limit=1)
        with pytest.raises(InvalidCursorError):
            await catalog.query(cursor=page.cursor, newest_first=False)

    @pytest.mark.asyncio
    async def test_garbage_cursor(self, catalog):
        with pytest.raises(InvalidCursorError):
            await catalog.query(cursor="not-a-cursor")

    @pytest.mark.asyncio
    async def test_delete(self, catalog):
        await catalog.batch_upsert([make_event("garage", 0)])
        assert await catalog.delete("garage/20240301120000") is True
        assert await catalog.delete("garage/20240301120000") is False


def test_cursor_round_trip():
    token = encode_cursor(T0, "garage/20240301120000", newest_first=True)
    assert decode_cursor(token, newest_first=True) == (datetime(2024, 3, 1, 12, 0), "garage/20240301120000")
