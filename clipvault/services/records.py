# clipvault/services/records.py
"""
Plain records passed between the engine components.

These are detached from any SQLAlchemy session so they can be cached across
requests and handed to worker threads. Records that come out of persistence
implement Keyed: the store attaches the persistent key once, right after the
query or insert that produced it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class Keyed:
    """Mixin for records whose persistent key is assigned after a query/insert."""

    _key: Optional[str] = None

    @property
    def key(self) -> Optional[str]:
        return self._key

    def set_key(self, key: str) -> None:
        if self._key is not None and self._key != key:
            raise ValueError(f"{type(self).__name__} already keyed as {self._key!r}, refusing {key!r}")
        self._key = key


@dataclass
class CameraRecord(Keyed):
    name: str
    auth_token: Optional[str] = None

    @property
    def camera_id(self) -> Optional[str]:
        return self.key


@dataclass
class EventRecord(Keyed):
    camera_id: str
    timestamp: datetime          # timezone-aware
    filename: str                # object name stem, no extension
    duration: float              # seconds
    metadata: list = field(default_factory=list)   # [(key, value), ...]

    @property
    def identity(self) -> str:
        return f"{self.camera_id}/{self.filename}"


@dataclass
class EventPage:
    events: list
    cursor: Optional[str] = None     # None once the listing is exhausted
