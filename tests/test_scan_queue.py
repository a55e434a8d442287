# tests/test_scan_queue.py
"""Scan queue tests: requests run in the background, failures stay in the log."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, MagicMock
from clipvault.services.camera_directory import CameraDirectory
from clipvault.services.scan_queue import ScanQueue
from fakes import FakeCameraSource


def make_queue(scan):
    reconciler = MagicMock(scan=scan)
    return ScanQueue(reconciler, CameraDirectory(FakeCameraSource("garage", "basement"))), reconciler


class TestScanQueue:
    @pytest.mark.asyncio
    async def test_enqueue_runs_in_background(self):
        queue, reconciler = make_queue(AsyncMock(return_value=2))
        queue.enqueue("garage")
        assert queue.pending == 1
        await queue.drain()
        assert queue.pending == 0
        reconciler.scan.assert_awaited_once_with("garage")

    @pytest.mark.asyncio
    async def test_enqueue_all(self):
        queue, reconciler = make_queue(AsyncMock(return_value=0))
        assert await queue.enqueue_all() == ["basement", "garage"]
        await queue.drain()
        assert sorted(c.args[0] for c in reconciler.scan.await_args_list) == ["basement", "garage"]

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self):
        queue, reconciler = make_queue(AsyncMock(side_effect=RuntimeError("store down")))
        task = queue.enqueue("garage")
        await queue.drain()
        assert task.exception() is None
