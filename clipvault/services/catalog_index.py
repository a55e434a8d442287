# clipvault/services/catalog_index.py
"""
Catalog index: the structured store of capture events.

Wraps the SQLAlchemy Event table with the operations the engine needs:
  existing_identities  keys-only scan (whole catalog or one camera)
  batch_upsert         write up to CATALOG_BATCH_SIZE events in one commit,
                       skipping identities that are already indexed
  query                time-ordered pages with an opaque resumable cursor
  delete               point delete by identity

Every call opens its own session and runs in a worker thread, so batch
commits issued concurrently by the reconciler don't share a connection.
"""

import asyncio
import base64
import binascii
import json
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.dialects import postgresql, sqlite

from clipvault.config import settings
from clipvault.database import SessionLocal
from clipvault.models.event import Event
from clipvault.services.records import EventPage, EventRecord
from clipvault.utils.logger import get_logger
from clipvault.utils.time_parser import as_utc, to_utc_naive, utcnow

logger = get_logger(__name__)

# INSERT ... ON CONFLICT DO NOTHING builders
_INSERT_BY_DIALECT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class InvalidCursorError(ValueError):
    """Raised when a pagination cursor can't be decoded."""


class BatchTooLargeError(ValueError):
    """Raised when a single upsert exceeds the catalog's batch limit."""


def encode_cursor(ts: datetime, identity: str, newest_first: bool) -> str:
    payload = {"ts": to_utc_naive(ts).isoformat(), "id": identity, "o": "desc" if newest_first else "asc"}
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")


def decode_cursor(token: str, newest_first: bool) -> tuple:
    """Returns (naive UTC timestamp, identity) of the last row of the previous page."""
    try:
        padded = token + "=" * (-len(token) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()).decode())
        ts = datetime.fromisoformat(payload["ts"])
        identity = str(payload["id"])
        order = payload["o"]
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
        raise InvalidCursorError(f"Malformed cursor: {token!r}") from e
    if order != ("desc" if newest_first else "asc"):
        raise InvalidCursorError("Cursor was issued for a different sort order")
    return to_utc_naive(ts), identity


def to_record(row: Event) -> EventRecord:
    record = EventRecord(
        camera_id=row.camera_id,
        timestamp=as_utc(row.timestamp),
        filename=row.filename,
        duration=row.duration,
        metadata=[(k, v) for k, v in (row.aux_metadata or [])],
    )
    record.set_key(row.id)
    return record


class CatalogIndex:
    def __init__(self, session_factory=SessionLocal, max_batch: int = settings.CATALOG_BATCH_SIZE):
        self.session_factory = session_factory
        self.max_batch = max_batch

    @contextmanager
    def _session(self):
        db = self.session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ── Identity scan ────────────────────────────────────────────────────────

    def _existing_identities(self, camera_id: Optional[str]) -> set:
        with self._session() as db:
            q = db.query(Event.id)
            if camera_id:
                q = q.filter(Event.camera_id == camera_id)
            return {row[0] for row in q.yield_per(1000)}

    async def existing_identities(self, camera_id: Optional[str] = None) -> set:
        """Identities already indexed, optionally limited to one camera."""
        keys = await asyncio.to_thread(self._existing_identities, camera_id)
        logger.debug(f"[CATALOG] Loaded {len(keys)} event keys" + (f" for {camera_id}" if camera_id else ""))
        return keys

    # ── Writes ───────────────────────────────────────────────────────────────

    def _insert_ignoring_duplicates(self, db):
        dialect = db.get_bind().dialect.name
        if dialect not in _INSERT_BY_DIALECT:
            raise NotImplementedError(f"Catalog writes not supported on {dialect!r}")
        return _INSERT_BY_DIALECT[dialect](Event.__table__).on_conflict_do_nothing(index_elements=["id"])

    def _batch_upsert(self, events: list):
        now = to_utc_naive(utcnow())
        rows = [{
            "id": ev.identity,
            "camera_id": ev.camera_id,
            "ts": to_utc_naive(ev.timestamp),
            "fn": ev.filename,
            "duration": ev.duration,
            "metadata": [[k, v] for k, v in ev.metadata],
            "created_at": now,
        } for ev in events]
        with self._session() as db:
            # Existing identities are left untouched: events are write-once
            db.execute(self._insert_ignoring_duplicates(db), rows)
            db.commit()
        for ev in events:
            ev.set_key(ev.identity)

    async def batch_upsert(self, events: Iterable[EventRecord]):
        """Write one batch in a single commit. The batch is all-or-nothing."""
        events = list(events)
        if len(events) > self.max_batch:
            raise BatchTooLargeError(f"{len(events)} events exceeds batch limit of {self.max_batch}")
        if not events:
            return
        await asyncio.to_thread(self._batch_upsert, events)

    def _delete(self, identity: str) -> bool:
        with self._session() as db:
            deleted = db.query(Event).filter(Event.id == identity).delete(synchronize_session=False)
            db.commit()
            return deleted > 0

    async def delete(self, identity: str) -> bool:
        """Delete one event. Returns False if it was already gone."""
        return await asyncio.to_thread(self._delete, identity)

    # ── Reads ────────────────────────────────────────────────────────────────

    def _query(self, camera_id, until, newest_first, cursor, limit) -> EventPage:
        with self._session() as db:
            q = db.query(Event)
            if camera_id:
                q = q.filter(Event.camera_id == camera_id)
            if until is not None:
                q = q.filter(Event.timestamp <= to_utc_naive(until))

            if cursor:
                c_ts, c_id = decode_cursor(cursor, newest_first)
                if newest_first:
                    q = q.filter(or_(Event.timestamp < c_ts, and_(Event.timestamp == c_ts, Event.id < c_id)))
                else:
                    q = q.filter(or_(Event.timestamp > c_ts, and_(Event.timestamp == c_ts, Event.id > c_id)))

            if newest_first:
                q = q.order_by(Event.timestamp.desc(), Event.id.desc())
            else:
                q = q.order_by(Event.timestamp.asc(), Event.id.asc())

            # One extra row tells us whether another page exists
            rows = q.limit(limit + 1).all()
            more = len(rows) > limit
            rows = rows[:limit]
            records = [to_record(r) for r in rows]

            next_cursor = None
            if more and rows:
                next_cursor = encode_cursor(rows[-1].timestamp, rows[-1].id, newest_first)
        return EventPage(events=records, cursor=next_cursor)

    async def query(self, camera_id: Optional[str] = None, until: Optional[datetime] = None,
                    newest_first: bool = True, cursor: Optional[str] = None,
                    limit: int = 100) -> EventPage:
        """
        One page of events.
        camera_id     restrict to one camera
        until         only events captured at or before this time
        newest_first  sort order; cursors are only valid for the order that issued them
        cursor        resume token from the previous page, None to start over
        """
        if limit <= 0:
            raise ValueError("limit must be positive")
        return await asyncio.to_thread(self._query, camera_id, until, newest_first, cursor, limit)
