# tests/test_retention_sweeper.py
"""Unit tests for the expunge batch job."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta, timezone
from clipvault.services.records import EventRecord
from clipvault.services.retention_sweeper import RetentionSweeper
from fakes import FakeCatalog, FakeStore

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
HORIZON = timedelta(days=30)


def seed(catalog, store, camera_id, filename, age):
    ev = EventRecord(camera_id=camera_id, timestamp=NOW - age, filename=filename, duration=5.0)
    ev.set_key(ev.identity)
    catalog.events[ev.identity] = ev
    for ext, ctype in (("jpg", "image/jpeg"), ("mp4", "video/mp4")):
        store.add(f"{camera_id}/{filename}.{ext}", ctype)
    return ev


def make_sweeper(store, catalog, page_size=500):
    return RetentionSweeper(store, catalog, horizon=HORIZON, page_size=page_size, concurrency=10)


class TestExpunge:
    @pytest.mark.asyncio
    async def test_expired_events_and_media_removed(self):
        store, catalog = FakeStore(), FakeCatalog()
        seed(catalog, store, "basement", "old", timedelta(days=31))
        seed(catalog, store, "garage", "fresh", timedelta(days=29))

        assert await make_sweeper(store, catalog).expunge(now=NOW) == 1
        assert list(catalog.events) == ["garage/fresh"]
        assert sorted(store.deleted) == ["basement/old.avi", "basement/old.jpg", "basement/old.mp4"]
        assert "garage/fresh.mp4" in store.entries

    @pytest.mark.asyncio
    async def test_boundary_is_inclusive(self):
        store, catalog = FakeStore(), FakeCatalog()
        seed(catalog, store, "basement", "edge", HORIZON)
        seed(catalog, store, "basement", "inside", HORIZON - timedelta(seconds=1))

        assert await make_sweeper(store, catalog).expunge(now=NOW) == 1
        assert list(catalog.events) == ["basement/inside"]

    @pytest.mark.asyncio
    async def test_pages_through_everything(self):
        store, catalog = FakeStore(), FakeCatalog()
        for i in range(25):
            seed(catalog, store, "garage", f"clip{i:02d}", timedelta(days=40, minutes=i))

        assert await make_sweeper(store, catalog, page_size=10).expunge(now=NOW) == 25
        assert catalog.events == {}
        assert catalog.queries == 3

    @pytest.mark.asyncio
    async def test_blob_failure_is_tolerated(self):
        store, catalog = FakeStore(fail_delete={"basement/old.mp4"}), FakeCatalog()
        seed(catalog, store, "basement", "old", timedelta(days=31))

        assert await make_sweeper(store, catalog).expunge(now=NOW) == 1
        assert catalog.events == {}
        assert "basement/old.jpg" in store.deleted

    @pytest.mark.asyncio
    async def test_catalog_delete_failure_is_fatal(self):
        store, catalog = FakeStore(), FakeCatalog()
        seed(catalog, store, "basement", "a", timedelta(days=31))
        seed(catalog, store, "basement", "b", timedelta(days=32))
        catalog.fail_delete.add("basement/a")

        with pytest.raises(RuntimeError, match="basement/a"):
            await make_sweeper(store, catalog).expunge(now=NOW)
        # The sibling still ran to completion
        assert "basement/b" not in catalog.events

    @pytest.mark.asyncio
    async def test_query_failure_is_fatal(self):
        store, catalog = FakeStore(), FakeCatalog()

        async def broken_query(**kwargs):
            raise ConnectionError("index offline")
        catalog.query = broken_query

        with pytest.raises(ConnectionError):
            await make_sweeper(store, catalog).expunge(now=NOW)

    @pytest.mark.asyncio
    async def test_nothing_expired(self):
        store, catalog = FakeStore(), FakeCatalog()
        seed(catalog, store, "garage", "fresh", timedelta(days=1))
        assert await make_sweeper(store, catalog).expunge(now=NOW) == 0
        assert store.deleted == []
