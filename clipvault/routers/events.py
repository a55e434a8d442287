# clipvault/routers/events.py
"""
Event catalog endpoints + upload trigger.
POST /newfile  uploader notification; queues a scan of that camera.
GET  /events  newest-first event pages with an opaque cursor.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response
from clipvault.config import settings
from clipvault.dependencies import get_camera_directory, get_catalog, get_scan_queue
from clipvault.schemas.camera import CameraOut
from clipvault.schemas.event import EventOut, EventPageOut
from clipvault.services.camera_directory import CameraDirectory
from clipvault.services.catalog_index import CatalogIndex, InvalidCursorError
from clipvault.services.scan_queue import ScanQueue
from clipvault.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

AUTH_HEADER = "x-clipvault-auth"


@router.post("/newfile", status_code=201, summary="Uploader notification: queue a scan")
async def new_file(cam: str, x_clipvault_auth: Optional[str] = Header(default=None, alias=AUTH_HEADER),
                   queue: ScanQueue = Depends(get_scan_queue)):
    """
    Called by uploaders after each clip lands in the store.
    Never waits for the scan; errors show up in the log only.
    """
    if not settings.BATCH_AUTH or x_clipvault_auth != settings.BATCH_AUTH:
        raise HTTPException(status_code=401, detail="auth fail")
    logger.debug(f"Notification for {cam}")
    queue.enqueue(cam)
    return Response(status_code=201)


@router.get("/events", response_model=EventPageOut, summary="List indexed events, newest first")
async def list_events(cam: Optional[str] = None, cursor: Optional[str] = None,
                      limit: int = Query(default=100, ge=1, le=500),
                      catalog: CatalogIndex = Depends(get_catalog),
                      directory: CameraDirectory = Depends(get_camera_directory)):
    """
    Optional `cam` filter, applied only to registered cameras (anything else
    gets the unfiltered feed). Pass the returned cursor back to get the next page.
    """
    try:
        cameras = await directory.load()
    except Exception as e:
        logger.warning(f"Can't load cameras: {e}")
        cameras = {}

    camera_id = cam if cam in cameras else None
    if cam and camera_id is None:
        logger.debug(f"Ignoring filter on unregistered camera {cam!r}")

    try:
        page = await catalog.query(camera_id=camera_id, cursor=cursor, limit=limit)
    except InvalidCursorError as e:
        raise HTTPException(status_code=400, detail=str(e))

    results = []
    for ev in page.events:
        cam_rec = cameras.get(ev.camera_id)
        results.append(EventOut(
            key=ev.key,
            camera_id=ev.camera_id,
            timestamp=ev.timestamp,
            filename=ev.filename,
            duration=ev.duration,
            metadata=ev.metadata,
            camera=CameraOut(key=cam_rec.key, name=cam_rec.name) if cam_rec else None,
        ))
    return EventPageOut(results=results, cursor=page.cursor)
