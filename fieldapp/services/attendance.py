"""
Attendance engine: the per-day punch in/out state machine.

States: NOT_PUNCHED -> PUNCHED_IN -> PUNCHED_OUT (terminal for the day).
Every public operation first discards a record left over from a previous local
day. A transition is persisted as one put of the whole record.
"""
import asyncio
from datetime import datetime
from typing import Callable, Optional

import structlog
from starlette.concurrency import run_in_threadpool

from ..errors import InvalidTransition
from ..schemas.attendance import (
    AttendanceRecord,
    AttendanceState,
    AttendanceSummary,
    LocationFix,
)
from ..storage.provider import RecordStore
from .location import LocationAcquirer
from .time_rules import (
    format_clock_time,
    format_coordinate,
    format_day,
    format_duration,
    local_day,
    utc_now,
)


logger = structlog.get_logger(__name__)

ATTENDANCE_NAMESPACE = "attendance"
RECORD_KEY = "today"


class AttendanceEngine:
    def __init__(
        self,
        store: RecordStore,
        locator: LocationAcquirer,
        timezone_str: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.locator = locator
        self.timezone_str = timezone_str
        self._clock = clock
        self._lock = asyncio.Lock()
        self._alive = True

    def close(self) -> None:
        """Mark the engine torn down; in-flight punches will not write."""
        self._alive = False

    @property
    def alive(self) -> bool:
        return self._alive

    def _load_today(self) -> Optional[AttendanceRecord]:
        today = local_day(self._clock(), self.timezone_str)
        raw = self.store.get(RECORD_KEY)
        if raw is None:
            return None
        record = AttendanceRecord.model_validate(raw)
        if record.day != today:
            logger.info("attendance_day_rollover", stale_day=record.day.isoformat(), today=today.isoformat())
            self.store.clear()
            return None
        return record

    def _save(self, record: AttendanceRecord) -> None:
        self.store.put(RECORD_KEY, record.model_dump(mode="python"))

    def _summarize(self, record: Optional[AttendanceRecord]) -> AttendanceSummary:
        tz = self.timezone_str
        if record is None:
            day = local_day(self._clock(), tz)
            return AttendanceSummary(state=AttendanceState.NOT_PUNCHED, day=day, day_display=format_day(day))

        summary = AttendanceSummary(
            state=record.state,
            day=record.day,
            day_display=format_day(record.day),
            punch_in_photo_ref=record.punch_in_photo_ref,
        )
        if record.punch_in_time is not None:
            summary.punch_in_time = record.punch_in_time
            summary.punch_in_time_display = format_clock_time(record.punch_in_time, tz)
        if record.punch_in_location is not None:
            summary.punch_in_location = record.punch_in_location
            summary.punch_in_latitude_display = format_coordinate(record.punch_in_location.latitude)
            summary.punch_in_longitude_display = format_coordinate(record.punch_in_location.longitude)
        if record.punch_out_time is not None:
            duration = record.punch_out_time - record.punch_in_time
            summary.punch_out_time = record.punch_out_time
            summary.punch_out_time_display = format_clock_time(record.punch_out_time, tz)
            summary.punch_out_location = record.punch_out_location
            summary.duration_seconds = int(duration.total_seconds())
            summary.duration_display = format_duration(duration)
        return summary

    async def get_summary(self) -> AttendanceSummary:
        record = await run_in_threadpool(self._load_today)
        return self._summarize(record)

    async def punch_in(self, photo_ref: Optional[str]) -> Optional[AttendanceSummary]:
        """
        Record punch-in with the photo captured by the caller.

        Returns None when the engine was closed while the location was being acquired.

        Raises:
            InvalidTransition: not in NOT_PUNCHED
            PermissionDenied, LocationUnavailable: no fix; state unchanged
            StorageFailure: the record could not be persisted; state unchanged
        """
        async with self._lock:
            record = await run_in_threadpool(self._load_today)
            state = record.state if record else AttendanceState.NOT_PUNCHED
            if state != AttendanceState.NOT_PUNCHED:
                raise InvalidTransition(f"Cannot punch in from {state.value}")

            fix = await self.locator.acquire()
            if not self._alive:
                logger.info("punch_in_discarded_engine_closed")
                return None

            now = self._clock()
            updated = AttendanceRecord(
                day=local_day(now, self.timezone_str),
                punch_in_time=now,
                punch_in_location=fix,
                punch_in_photo_ref=photo_ref,
            )
            await run_in_threadpool(self._save, updated)
            logger.info(
                "punch_in_recorded",
                day=updated.day.isoformat(),
                lat=fix.latitude,
                lng=fix.longitude,
                photo_ref=photo_ref,
            )
            return self._summarize(updated)

    async def punch_out(self) -> Optional[AttendanceSummary]:
        """
        Record punch-out; PUNCHED_OUT is terminal for the day.

        Returns None when the engine was closed while the location was being acquired.
        """
        async with self._lock:
            record = await run_in_threadpool(self._load_today)
            state = record.state if record else AttendanceState.NOT_PUNCHED
            if state != AttendanceState.PUNCHED_IN:
                raise InvalidTransition(f"Cannot punch out from {state.value}")

            fix: LocationFix = await self.locator.acquire()
            if not self._alive:
                logger.info("punch_out_discarded_engine_closed")
                return None

            now = self._clock()
            if now < record.punch_in_time:
                raise InvalidTransition("Device clock is earlier than the recorded punch-in")
            if local_day(now, self.timezone_str) != record.day:
                # The day ended while waiting for a fix; yesterday's record is not carried forward
                await run_in_threadpool(self.store.clear)
                raise InvalidTransition("The attendance day ended before punch-out was recorded")

            updated = record.model_copy(update={"punch_out_time": now, "punch_out_location": fix})
            updated = AttendanceRecord.model_validate(updated.model_dump())
            await run_in_threadpool(self._save, updated)
            logger.info(
                "punch_out_recorded",
                day=updated.day.isoformat(),
                lat=fix.latitude,
                lng=fix.longitude,
                duration_s=int((now - record.punch_in_time).total_seconds()),
            )
            return self._summarize(updated)
