import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from fieldapp.db import Base, build_engine, build_session_factory
from fieldapp.schemas.attendance import LocationFix
from fieldapp.services.attendance import ATTENDANCE_NAMESPACE, AttendanceEngine
from fieldapp.services.dpr import DPR_NAMESPACE, DprLog
from fieldapp.services.location import (
    LocationAcquirer,
    LocationProvider,
    StaticLocationPermission,
)
from fieldapp.storage.sql_store import SqlRecordStore


TZ = "Asia/Kolkata"
# 09:00 IST on Thursday, Jan 22, 2026
T0 = datetime(2026, 1, 22, 3, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeLocationProvider(LocationProvider):
    def __init__(self, current: Optional[LocationFix] = None, last: Optional[LocationFix] = None):
        self.current = current
        self.last = last
        self.current_error: Optional[Exception] = None
        self.delay_s = 0.0
        self.gate: Optional[asyncio.Event] = None
        self.started: Optional[asyncio.Event] = None
        self.current_calls = 0
        self.last_calls = 0

    async def current_location(self) -> Optional[LocationFix]:
        self.current_calls += 1
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        else:
            await asyncio.sleep(0)
        if self.current_error is not None:
            raise self.current_error
        return self.current

    async def last_known_location(self) -> Optional[LocationFix]:
        self.last_calls += 1
        return self.last


def make_fix(lat: float, lng: float, at: datetime = T0) -> LocationFix:
    return LocationFix(latitude=lat, longitude=lng, acquired_at=at)


@pytest.fixture()
def clock():
    return FakeClock(T0)


@pytest.fixture()
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'field_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def attendance_store(session_factory):
    return SqlRecordStore(session_factory, ATTENDANCE_NAMESPACE)


@pytest.fixture()
def dpr_store(session_factory):
    return SqlRecordStore(session_factory, DPR_NAMESPACE)


@pytest.fixture()
def provider():
    return FakeLocationProvider(current=make_fix(12.91, 77.61))


@pytest.fixture()
def permission():
    return StaticLocationPermission(True)


@pytest.fixture()
def locator(provider, permission):
    return LocationAcquirer(provider, permission, timeout_s=2.0)


@pytest.fixture()
def engine(attendance_store, locator, clock):
    return AttendanceEngine(attendance_store, locator, TZ, clock=clock)


@pytest.fixture()
def dpr_log(dpr_store, clock):
    return DprLog(dpr_store, TZ, clock=clock)
