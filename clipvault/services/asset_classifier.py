# clipvault/services/asset_classifier.py
"""
Turns object-store entries into catalog candidates.

Clips:      <camera_id>/<YYYYMMDDhhmmss>.<ext>
Snapshots:  <snapshot_prefix>/<camera_id>/<YYYYMMDDhhmmss>.<ext>

Reserved metadata keys (camera, captured, duration) drive classification;
everything else is carried on the event as auxiliary metadata.
Every rejection is logged and returns None; a bad object never fails a scan.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from clipvault.services.object_store import ObjectEntry
from clipvault.services.records import EventRecord
from clipvault.utils.logger import get_logger
from clipvault.utils.time_parser import parse_capture_time, parse_duration

logger = get_logger(__name__)

COMPLETED_RECORDING_TYPE = "video/mp4"
RESERVED_METADATA_KEYS = frozenset({"", "camera", "captured", "duration"})

# Every rendition the uploader/transcoder writes next to a clip
ASSET_EXTENSIONS = ("jpg", "mp4", "avi")


@dataclass
class SnapshotInfo:
    camera_id: str
    captured: datetime


def split_filename(segment: str) -> tuple:
    """'20170518205540.mp4' -> ('20170518205540', 'mp4')"""
    stem, _, ext = segment.partition(".")
    return stem, ext


def split_clip_path(name: str) -> Optional[tuple]:
    """'basement/20170518205540.mp4' -> ('basement', '20170518205540')"""
    parts = name.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    stem, _ = split_filename(parts[1])
    if not stem:
        return None
    return parts[0], stem


def asset_names(camera_id: str, filename: str) -> list:
    """Object names of every rendition an event may own."""
    return [f"{camera_id}/{filename}.{ext}" for ext in ASSET_EXTENSIONS]


def auxiliary_metadata(metadata: dict) -> list:
    """Non-reserved metadata as (key, value) pairs, sorted by key."""
    return sorted((k, v) for k, v in metadata.items() if k not in RESERVED_METADATA_KEYS)


def classify_recording(entry: ObjectEntry, cameras: dict, tz: tzinfo) -> Optional[EventRecord]:
    """
    Build the event for a completed recording, or None if the entry should be skipped.
    `cameras` is the camera directory map; unknown camera segments are skipped.
    """
    if entry.content_type != COMPLETED_RECORDING_TYPE:
        return None

    parsed = split_clip_path(entry.name)
    if parsed is None:
        logger.info(f"[CLASSIFY] Unexpected clip path: {entry.name}")
        return None
    camera_id, stem = parsed

    if camera_id not in cameras:
        logger.warning(f"[CLASSIFY] Unhandled camera {camera_id!r} from {entry.name}")
        return None

    captured = parse_capture_time(entry.metadata, stem, tz)
    if captured is None:
        logger.info(f"[CLASSIFY] Failed to parse capture time of {entry.name}")
        return None

    duration = parse_duration(entry.metadata.get("duration"))
    if duration is None:
        # Transcode not finished yet; a later scan picks it up
        logger.info(f"[CLASSIFY] No usable duration for {entry.name} "
                    f"({entry.metadata.get('duration')!r})")
        return None

    return EventRecord(
        camera_id=camera_id,
        timestamp=captured,
        filename=stem,
        duration=duration,
        metadata=auxiliary_metadata(entry.metadata),
    )


def classify_snapshot(entry: ObjectEntry, prefix: str, tz: tzinfo) -> Optional[SnapshotInfo]:
    """Camera and capture time of a snapshot under `prefix`, or None."""
    parts = entry.name.split("/")
    if len(parts) != 3 or parts[0] != prefix.strip("/") or not parts[1]:
        logger.info(f"[CLASSIFY] Unexpected snapshot path: {entry.name}")
        return None

    stem, _ = split_filename(parts[2])
    captured = parse_capture_time(entry.metadata, stem, tz)
    if captured is None:
        logger.info(f"[CLASSIFY] Failed to parse time in {entry.name}")
        return None
    return SnapshotInfo(camera_id=parts[1], captured=captured)
