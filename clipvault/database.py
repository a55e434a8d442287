# clipvault/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy. All models are auto-imported here so create_tables()
creates every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from clipvault.config import settings


def make_engine(url: str):
    """Build an engine; SQLite connections are shared with worker threads."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
    )


engine = make_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from clipvault.models.camera import Camera   # noqa
    from clipvault.models.event import Event     # noqa
    from clipvault.models.alert import Alert     # noqa

    Base.metadata.create_all(bind=bind or engine)
