# clipvault/services/object_store.py
"""
Object store access: listing, deleting and re-tagging uploaded media.

Two backends:
  LocalObjectStore  a directory tree; each blob has a "<name>.meta.json" sidecar
                    holding its content type and string metadata
  S3ObjectStore     any S3-compatible bucket (AWS, MinIO) via boto3

Names are "/"-separated paths, e.g. "basement/20170518205540.mp4" or
"__snaps/basement/20170518205540.jpg". Objects are write-once; only their
metadata is ever updated.
"""

import asyncio
import json
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from clipvault.config import settings
from clipvault.utils.logger import get_logger
from clipvault.utils.retry import retry_linear

logger = get_logger(__name__)

SIDECAR_SUFFIX = ".meta.json"


@dataclass
class ObjectEntry:
    name: str
    content_type: str
    size: int
    metadata: dict = field(default_factory=dict)


class ObjectStore:
    """Interface shared by the backends."""

    def list(self, prefix: Optional[str] = None) -> AsyncIterator[ObjectEntry]:
        raise NotImplementedError

    async def delete(self, name: str) -> bool:
        """Delete one object. False if it did not exist; raises on other failures."""
        raise NotImplementedError

    async def put(self, name: str, data: bytes, content_type: str, metadata: Optional[dict] = None):
        raise NotImplementedError

    async def _read_attrs(self, name: str) -> tuple:
        """(content_type, metadata) of one object; FileNotFoundError if absent."""
        raise NotImplementedError

    async def _write_attrs(self, name: str, content_type: str, metadata: dict):
        raise NotImplementedError

    def _transient_errors(self) -> tuple:
        return ()

    async def update_metadata(self, name: str, metadata: dict):
        """Merge keys into an object's metadata. Retried with linear backoff."""
        async def _update():
            content_type, current = await self._read_attrs(name)
            current.update({str(k): str(v) for k, v in metadata.items()})
            await self._write_attrs(name, content_type, current)

        await retry_linear(_update, label=f"metadata update of {name}",
                           retry_on=self._transient_errors())


# ── Local filesystem backend ─────────────────────────────────────────────────

class LocalObjectStore(ObjectStore):
    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Object name escapes store root: {name!r}")
        return path

    def _sidecar(self, name: str) -> Path:
        return self._path(name + SIDECAR_SUFFIX)

    def _read_sidecar(self, name: str) -> dict:
        sidecar = self._sidecar(name)
        if not sidecar.exists():
            return {}
        try:
            return json.loads(sidecar.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"[STORE] Unreadable sidecar for {name}: {e}")
            return {}

    def _entry(self, path: Path) -> ObjectEntry:
        name = path.relative_to(self.root).as_posix()
        info = self._read_sidecar(name)
        content_type = info.get("content_type") or mimetypes.guess_type(name)[0] or "application/octet-stream"
        metadata = {str(k): str(v) for k, v in (info.get("metadata") or {}).items()}
        return ObjectEntry(name=name, content_type=content_type,
                           size=path.stat().st_size, metadata=metadata)

    def _scan(self, prefix: Optional[str]) -> list:
        entries = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for fn in sorted(filenames):
                if fn.endswith(SIDECAR_SUFFIX) or fn.startswith("."):
                    continue
                path = Path(dirpath) / fn
                name = path.relative_to(self.root).as_posix()
                if prefix and not name.startswith(prefix):
                    continue
                try:
                    entries.append(self._entry(path))
                except FileNotFoundError:
                    # Deleted between walk and stat
                    continue
        return entries

    async def list(self, prefix: Optional[str] = None) -> AsyncIterator[ObjectEntry]:
        for entry in await asyncio.to_thread(self._scan, prefix):
            yield entry

    def _delete(self, name: str) -> bool:
        path = self._path(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        self._sidecar(name).unlink(missing_ok=True)
        return True

    async def delete(self, name: str) -> bool:
        return await asyncio.to_thread(self._delete, name)

    def _write_sidecar(self, name: str, content_type: str, metadata: dict):
        sidecar = self._sidecar(name)
        tmp = sidecar.with_name(sidecar.name + ".tmp")
        tmp.write_text(json.dumps({"content_type": content_type, "metadata": metadata}), encoding="utf-8")
        os.replace(tmp, sidecar)

    def _put(self, name: str, data: bytes, content_type: str, metadata: dict):
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        self._write_sidecar(name, content_type, metadata)

    async def put(self, name: str, data: bytes, content_type: str, metadata: Optional[dict] = None):
        await asyncio.to_thread(self._put, name, data, content_type, dict(metadata or {}))

    async def _read_attrs(self, name: str) -> tuple:
        path = self._path(name)
        if not path.exists():
            raise FileNotFoundError(name)
        entry = await asyncio.to_thread(self._entry, path)
        return entry.content_type, entry.metadata

    async def _write_attrs(self, name: str, content_type: str, metadata: dict):
        await asyncio.to_thread(self._write_sidecar, name, content_type, metadata)

    def _transient_errors(self) -> tuple:
        # Missing objects won't reappear; only lock/permission style errors are worth a retry
        return (PermissionError, BlockingIOError, TimeoutError)


# ── S3 backend ───────────────────────────────────────────────────────────────

class S3ObjectStore(ObjectStore):
    def __init__(self, bucket: str, client=None, endpoint_url: Optional[str] = None,
                 region: Optional[str] = None):
        if client is None:
            client = boto3.client("s3", endpoint_url=endpoint_url, region_name=region)
        self.bucket = bucket
        self.client = client

    @staticmethod
    def _is_missing(exc) -> bool:
        code = str(getattr(exc, "response", {}).get("Error", {}).get("Code", ""))
        return code in ("404", "NoSuchKey", "NotFound")

    def _transient_errors(self) -> tuple:
        return (BotoCoreError, ClientError)

    async def list(self, prefix: Optional[str] = None) -> AsyncIterator[ObjectEntry]:
        kwargs = {"Bucket": self.bucket}
        if prefix:
            kwargs["Prefix"] = prefix
        pages = iter(self.client.get_paginator("list_objects_v2").paginate(**kwargs))

        while True:
            page = await asyncio.to_thread(next, pages, None)
            if page is None:
                break
            for item in page.get("Contents", []):
                key = item["Key"]
                # Listings carry neither content type nor user metadata
                try:
                    head = await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=key)
                except ClientError as e:
                    if self._is_missing(e):
                        logger.debug(f"[STORE] {key} vanished during listing")
                        continue
                    raise
                yield ObjectEntry(
                    name=key,
                    content_type=head.get("ContentType") or "application/octet-stream",
                    size=int(item.get("Size", head.get("ContentLength", 0))),
                    metadata=dict(head.get("Metadata") or {}),
                )

    async def delete(self, name: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=name)
        except ClientError as e:
            if self._is_missing(e):
                return False
            raise
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=name)
        return True

    async def put(self, name: str, data: bytes, content_type: str, metadata: Optional[dict] = None):
        await asyncio.to_thread(self.client.put_object, Bucket=self.bucket, Key=name, Body=data,
                                ContentType=content_type, Metadata=dict(metadata or {}))

    async def _read_attrs(self, name: str) -> tuple:
        try:
            head = await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=name)
        except ClientError as e:
            if self._is_missing(e):
                raise FileNotFoundError(name) from e
            raise
        return head.get("ContentType") or "application/octet-stream", dict(head.get("Metadata") or {})

    async def _write_attrs(self, name: str, content_type: str, metadata: dict):
        # S3 metadata is immutable; copy the object onto itself with new metadata
        await asyncio.to_thread(
            self.client.copy_object,
            Bucket=self.bucket,
            Key=name,
            CopySource={"Bucket": self.bucket, "Key": name},
            ContentType=content_type,
            Metadata=metadata,
            MetadataDirective="REPLACE",
        )


def get_object_store() -> ObjectStore:
    """Build the configured backend."""
    backend = settings.OBJECT_STORE_BACKEND.lower()
    if backend == "s3":
        logger.info(f"Object store: s3://{settings.S3_BUCKET}")
        return S3ObjectStore(settings.S3_BUCKET, endpoint_url=settings.S3_ENDPOINT_URL,
                             region=settings.S3_REGION)
    if backend == "local":
        logger.info(f"Object store: {os.path.abspath(settings.LOCAL_STORE_ROOT)}")
        return LocalObjectStore(settings.LOCAL_STORE_ROOT)
    raise ValueError(f"Unknown OBJECT_STORE_BACKEND: {settings.OBJECT_STORE_BACKEND!r}")
