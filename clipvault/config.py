# clipvault/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./clipvault.db"

    # ── Object store ──────────────────────────────────────────────────────
    OBJECT_STORE_BACKEND: str = "local"          # local | s3
    LOCAL_STORE_ROOT: str = "media"
    S3_BUCKET: str = "clipvault-media"
    S3_ENDPOINT_URL: Optional[str] = None        # Set for MinIO / non-AWS S3
    S3_REGION: Optional[str] = None

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None    # Set in .env to enable auth on API endpoints
    BATCH_AUTH: str = ""             # Shared secret sent by uploaders on /newfile

    # ── Capture time parsing ──────────────────────────────────────────────
    LOCAL_TIMEZONE: str = "US/Pacific"   # Zone of timestamps embedded in filenames

    # ── Reconciliation ────────────────────────────────────────────────────
    CATALOG_BATCH_SIZE: int = 500        # Hard limit of the catalog's batch put
    BATCH_DEADLINE_SECONDS: float = 540.0

    # ── Retention ─────────────────────────────────────────────────────────
    RETENTION_DAYS: int = 30
    EXPUNGE_PAGE_SIZE: int = 500
    DELETE_CONCURRENCY: int = 10

    # ── Snapshots ─────────────────────────────────────────────────────────
    SNAPSHOT_PREFIX: str = "__snaps"
    SNAPSHOT_MAX_AGE_SECONDS: int = 3600         # Delete snapshots older than 1h
    SNAPSHOT_WARNING_AGE_SECONDS: int = 1500     # Warn when a camera is silent 25m

    # ── Camera directory ──────────────────────────────────────────────────
    CAMERA_CACHE_TTL_SECONDS: int = 24 * 3600

    # ── Notifications ─────────────────────────────────────────────────────
    NOTIFY_WEBHOOK_URL: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 25
    NOTIFY_SENDER: str = "clipvault@localhost"
    NOTIFY_RECIPIENTS: str = ""                  # Comma separated

    @property
    def NOTIFY_RECIPIENT_LIST(self) -> list:
        return [r.strip() for r in self.NOTIFY_RECIPIENTS.split(",") if r.strip()]

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"            # Empty string disables the file handler

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
