# clipvault/routers/batch.py
"""
Batch job endpoints, driven by cron or the task runner.
Every job answers 204 on success, or 500 with the first fatal error as detail.

GET|POST /batch/scan?subdir=<cam>  index new clips (all cameras when subdir is empty)
GET|POST /batch/scanAll            queue one scan per camera
GET|POST /batch/scanSnaps          prune snapshots, warn about silent cameras
GET|POST /batch/expunge            delete events and media past retention
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Response
from clipvault.config import settings
from clipvault.dependencies import get_reconciler, get_scan_queue, get_snapshot_monitor, get_sweeper
from clipvault.services.reconciler import Reconciler
from clipvault.services.retention_sweeper import RetentionSweeper
from clipvault.services.scan_queue import ScanQueue
from clipvault.services.snapshot_monitor import SnapshotMonitor
from clipvault.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


async def _run_job(name: str, job) -> Response:
    """Run a batch coroutine under the batch deadline and map the outcome to 204 / 500."""
    try:
        await asyncio.wait_for(job, timeout=settings.BATCH_DEADLINE_SECONDS)
    except asyncio.TimeoutError:
        logger.error(f"[BATCH] {name} exceeded {settings.BATCH_DEADLINE_SECONDS}s deadline")
        raise HTTPException(status_code=500, detail=f"{name} timed out")
    except Exception as e:
        logger.error(f"[BATCH] {name} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return Response(status_code=204)


@router.api_route("/batch/scan", methods=["GET", "POST"], status_code=204,
                  summary="Index newly uploaded clips")
async def batch_scan(subdir: str = "", reconciler: Reconciler = Depends(get_reconciler)):
    return await _run_job("scan", reconciler.scan(subdir or None))


@router.api_route("/batch/scanAll", methods=["GET", "POST"], status_code=204,
                  summary="Queue a scan for every camera")
async def batch_scan_all(queue: ScanQueue = Depends(get_scan_queue)):
    return await _run_job("scanAll", queue.enqueue_all())


@router.api_route("/batch/scanSnaps", methods=["GET", "POST"], status_code=204,
                  summary="Prune snapshots and report silent cameras")
async def batch_scan_snaps(monitor: SnapshotMonitor = Depends(get_snapshot_monitor)):
    return await _run_job("scanSnaps", monitor.run())


@router.api_route("/batch/expunge", methods=["GET", "POST"], status_code=204,
                  summary="Delete events past the retention horizon")
async def batch_expunge(sweeper: RetentionSweeper = Depends(get_sweeper)):
    return await _run_job("expunge", sweeper.expunge())
