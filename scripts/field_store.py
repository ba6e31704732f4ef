"""
Inspect or reset the device-local store.

Usage:
    python scripts/field_store.py summary
    python scripts/field_store.py dpr [--limit N]
    python scripts/field_store.py reset-attendance

reset-attendance clears today's attendance record only; DPR history is never touched.
"""
import sys
import os
import argparse
import asyncio
import json

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fieldapp.config import settings
from fieldapp.db import Base, SessionLocal, engine
from fieldapp.services.attendance import ATTENDANCE_NAMESPACE, AttendanceEngine
from fieldapp.services.dpr import DPR_NAMESPACE, DprLog
from fieldapp.services.location import LocationAcquirer, ManualLocationProvider, StaticLocationPermission
from fieldapp.storage.sql_store import SqlRecordStore


def _attendance_engine() -> AttendanceEngine:
    # Read-only use: no location is ever requested from here
    locator = LocationAcquirer(ManualLocationProvider(None, None), StaticLocationPermission(False))
    return AttendanceEngine(SqlRecordStore(SessionLocal, ATTENDANCE_NAMESPACE), locator, settings.tz_default)


def show_summary() -> None:
    summary = asyncio.run(_attendance_engine().get_summary())
    print(json.dumps(summary.model_dump(mode="json"), indent=2))


def show_dprs(limit: int | None) -> None:
    entries = DprLog(SqlRecordStore(SessionLocal, DPR_NAMESPACE), settings.tz_default).list_all()
    if limit:
        entries = entries[-limit:]
    for entry in entries:
        photo = f" [photo: {entry.photo_ref}]" if entry.photo_ref else ""
        print(f"{entry.created_at.isoformat()}  {entry.id}  {entry.work_description}{photo}")
        if entry.remarks:
            print(f"    remarks: {entry.remarks}")
    print(f"{len(entries)} entries")


def reset_attendance() -> None:
    SqlRecordStore(SessionLocal, ATTENDANCE_NAMESPACE).clear()
    print("Attendance record cleared")


def main():
    parser = argparse.ArgumentParser(description="Inspect or reset the local field store")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("summary", help="Print today's attendance summary")
    dpr = sub.add_parser("dpr", help="List DPR entries in append order")
    dpr.add_argument("--limit", type=int, default=None, help="Show only the last N entries")
    sub.add_parser("reset-attendance", help="Clear today's attendance record")
    args = parser.parse_args()

    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    Base.metadata.create_all(bind=engine)

    if args.command == "summary":
        show_summary()
    elif args.command == "dpr":
        show_dprs(args.limit)
    elif args.command == "reset-attendance":
        reset_attendance()


if __name__ == "__main__":
    main()
