# clipvault/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + object store reachability.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from clipvault.database import get_db
from clipvault.config import settings
from clipvault.dependencies import get_store
from clipvault.services.object_store import ObjectStore
from clipvault.utils.time_parser import utcnow

router = APIRouter()


@router.get("/health", summary="System health check")
async def health_check(db: Session = Depends(get_db), store: ObjectStore = Depends(get_store)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Object store reachability (lists under the snapshot prefix)
    """
    result = {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "object_store": "unknown",
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    # Check object store; pulling one entry is enough
    try:
        async for _ in store.list(prefix=settings.SNAPSHOT_PREFIX + "/"):
            break
        result["object_store"] = f"ok ({settings.OBJECT_STORE_BACKEND})"
    except Exception as e:
        result["object_store"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
