# clipvault/models/camera.py
"""
Camera registry table.
Rows are provisioned out-of-band (scripts/setup/init_db.py) and read through
the camera directory cache; nothing in the engine writes here.
"""

from sqlalchemy import Column, String, DateTime
from clipvault.database import Base


class Camera(Base):
    __tablename__ = "cameras"

    id = Column(String(100), primary_key=True)      # Also the object path segment
    name = Column(String(200), nullable=False)
    auth_token = Column(String(200))
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<Camera {self.id} name={self.name}>"
