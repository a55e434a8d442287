# clipvault/models/alert.py
"""
Alerts table: one row per operational alert raised by the engine.
Currently written by the snapshot monitor (alert_type="stale_camera").
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from clipvault.database import Base


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_type = Column(String(50), nullable=False, index=True)
    camera_id = Column(String(100), nullable=False)
    description = Column(Text)
    is_resolved = Column(Integer, default=0, nullable=False)
    triggered_at = Column(DateTime, nullable=False, index=True)
    resolved_at = Column(DateTime)

    def __repr__(self):
        return f"<Alert {self.id} type={self.alert_type} cam={self.camera_id} resolved={self.is_resolved}>"
