# clipvault/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from clipvault.routers import alerts, batch, cameras, events, health
from clipvault.database import create_tables
from clipvault.dependencies import get_scan_queue
from clipvault.config import settings
from clipvault.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="clipvault",
    description="Camera media catalog: reconciliation, retention and snapshot monitoring.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (viewer pages on the same LAN call the API) ────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for read endpoints.
    Batch jobs and the uploader trigger are excluded: cron can't send keys and
    /newfile carries its own shared secret.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        open_paths = {"/api/v1/newfile", "/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if path in open_paths or path.startswith("/api/v1/batch/") or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(batch.router,   prefix="/api/v1", tags=["Batch jobs"])
app.include_router(events.router,  prefix="/api/v1", tags=["Events"])
app.include_router(cameras.router, prefix="/api/v1", tags=["Cameras"])
app.include_router(alerts.router,  prefix="/api/v1", tags=["Alerts"])
app.include_router(health.router,  prefix="/api/v1", tags=["Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("clipvault starting up...")
    create_tables()
    logger.info("Database tables ready")
    logger.info(f"Object store backend: {settings.OBJECT_STORE_BACKEND}")
    logger.info(f"Retention: {settings.RETENTION_DAYS} days | snapshot warning after "
                f"{settings.SNAPSHOT_WARNING_AGE_SECONDS}s")


@app.on_event("shutdown")
async def shutdown():
    # Only drain if something ever built the queue
    queue = get_scan_queue() if get_scan_queue.cache_info().currsize else None
    if queue and queue.pending:
        logger.info(f"Waiting for {queue.pending} queued scans...")
        await queue.drain()
    logger.info("clipvault shutting down...")
