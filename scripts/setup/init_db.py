# scripts/setup/init_db.py
"""
Initialize database: creates all tables and registers cameras.
Run once before first launch, or whenever a camera is added.
Usage:
  python scripts/setup/init_db.py
  python scripts/setup/init_db.py --camera basement:"Basement Door" --camera garage:Garage
"""

import argparse
import secrets
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlalchemy import inspect, text

from clipvault.database import SessionLocal, create_tables, engine
from clipvault.config import settings
from clipvault.models.camera import Camera
from clipvault.utils.time_parser import to_utc_naive, utcnow


def parse_camera(value: str) -> tuple:
    """'basement:Basement Door' -> ('basement', 'Basement Door')"""
    cam_id, _, name = value.partition(":")
    cam_id = cam_id.strip()
    if not cam_id or "/" in cam_id:
        raise argparse.ArgumentTypeError(f"Invalid camera id in {value!r}")
    return cam_id, (name.strip() or cam_id)


def register_cameras(cameras: list) -> list:
    """Insert or rename cameras. New cameras get a random auth token."""
    db = SessionLocal()
    added = []
    try:
        for cam_id, name in cameras:
            cam = db.get(Camera, cam_id)
            if cam is None:
                db.add(Camera(id=cam_id, name=name, auth_token=secrets.token_hex(16),
                              created_at=to_utc_naive(utcnow())))
                added.append(cam_id)
            else:
                cam.name = name
        db.commit()
    finally:
        db.close()
    return added


def main():
    parser = argparse.ArgumentParser(description="Create tables and register cameras")
    parser.add_argument("--camera", action="append", type=parse_camera, default=[],
                        help="id:Display Name (repeatable)")
    args = parser.parse_args()

    print("clipvault DB Initialization")
    print("=" * 40)
    print(f"Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("Database connection OK")
    except Exception as e:
        print(f"Cannot connect to database: {e}")
        sys.exit(1)

    print("\nCreating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   - {t}")

    if args.camera:
        added = register_cameras(args.camera)
        print(f"\nCameras registered: {len(args.camera)} ({len(added)} new)")
        for cam_id in added:
            print(f"   + {cam_id}")

    print("\nDatabase ready! Start the backend with:")
    print("   uvicorn clipvault.main:app --host 0.0.0.0 --port 8080")


if __name__ == "__main__":
    main()
