# clipvault/models/event.py
"""
Capture event catalog table.
One row per indexed clip, keyed by "<camera_id>/<filename>".
camera_id is a plain lookup reference (no FK): events may outlive their camera.
Timestamps are stored as naive UTC.
"""

from sqlalchemy import Column, String, DateTime, Float, JSON, Index
from clipvault.database import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(String(300), primary_key=True)       # camera_id/filename
    camera_id = Column(String(100), nullable=False, index=True)
    timestamp = Column("ts", DateTime, nullable=False, index=True)
    filename = Column("fn", String(200), nullable=False)
    duration = Column(Float, nullable=False)         # seconds
    aux_metadata = Column("metadata", JSON, nullable=False, default=list)
    created_at = Column(DateTime)

    __table_args__ = (
        Index("ix_events_camera_ts", "camera_id", "ts"),
    )

    def __repr__(self):
        return f"<Event {self.id} ts={self.timestamp}>"
