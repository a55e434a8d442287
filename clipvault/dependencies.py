# clipvault/dependencies.py
"""
FastAPI dependencies wiring the engine components together.

Object store, catalog, camera directory and scan queue are process-wide
singletons (the camera directory cache must be shared to be useful).
Tests swap any of them through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends

from clipvault.database import SessionLocal
from clipvault.services.camera_directory import CameraDirectory, CameraRepository
from clipvault.services.catalog_index import CatalogIndex
from clipvault.services.notifier import Notifier, get_notifier
from clipvault.services.object_store import ObjectStore, get_object_store
from clipvault.services.reconciler import Reconciler
from clipvault.services.retention_sweeper import RetentionSweeper
from clipvault.services.scan_queue import ScanQueue
from clipvault.services.snapshot_monitor import SnapshotMonitor


@lru_cache(maxsize=None)
def get_store() -> ObjectStore:
    return get_object_store()


@lru_cache(maxsize=None)
def get_catalog() -> CatalogIndex:
    return CatalogIndex(SessionLocal)


@lru_cache(maxsize=None)
def get_camera_directory() -> CameraDirectory:
    return CameraDirectory(CameraRepository(SessionLocal))


def get_alert_notifier() -> Notifier:
    return get_notifier()


def get_reconciler(store: ObjectStore = Depends(get_store),
                   catalog: CatalogIndex = Depends(get_catalog),
                   cameras: CameraDirectory = Depends(get_camera_directory)) -> Reconciler:
    return Reconciler(store, catalog, cameras)


def get_sweeper(store: ObjectStore = Depends(get_store),
                catalog: CatalogIndex = Depends(get_catalog)) -> RetentionSweeper:
    return RetentionSweeper(store, catalog)


def get_snapshot_monitor(store: ObjectStore = Depends(get_store),
                         cameras: CameraDirectory = Depends(get_camera_directory),
                         notifier: Notifier = Depends(get_alert_notifier)) -> SnapshotMonitor:
    return SnapshotMonitor(store, cameras, notifier, alert_session_factory=SessionLocal)


@lru_cache(maxsize=None)
def get_scan_queue() -> ScanQueue:
    cameras = get_camera_directory()
    return ScanQueue(Reconciler(get_store(), get_catalog(), cameras), cameras)
