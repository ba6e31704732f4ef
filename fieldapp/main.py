import os
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from .config import settings
from .db import Base, engine, SessionLocal
from .errors import FieldAppError
from .logging import setup_logging, RequestIdMiddleware
from .routes.attendance import router as attendance_router
from .routes.dpr import router as dpr_router
from .routes.errors import field_app_error_handler
from .routes.photos import router as photos_router
from .services.attendance import ATTENDANCE_NAMESPACE, AttendanceEngine
from .services.dpr import DPR_NAMESPACE, DprLog
from .services.location import (
    HttpLocationProvider,
    LocationAcquirer,
    LocationProvider,
    ManualLocationProvider,
    StaticLocationPermission,
)
from .storage.memory_store import InMemoryRecordStore
from .storage.photo_store import PhotoStore
from .storage.provider import RecordStore
from .storage.sql_store import SqlRecordStore


logger = structlog.get_logger(__name__)


def get_record_store(namespace: str) -> RecordStore:
    """
    Get record store based on configuration.
    Uses the SQLite file by default; the memory backend keeps nothing across restarts.
    """
    if settings.store_backend == "memory":
        return InMemoryRecordStore(namespace)
    return SqlRecordStore(SessionLocal, namespace)


def get_location_provider() -> LocationProvider:
    if settings.location_provider == "http":
        return HttpLocationProvider(settings.location_service_url, timeout_s=settings.location_timeout_s)
    return ManualLocationProvider(settings.manual_latitude, settings.manual_longitude)


def build_attendance_engine() -> AttendanceEngine:
    locator = LocationAcquirer(
        get_location_provider(),
        StaticLocationPermission(settings.location_permission_granted),
        timeout_s=settings.location_timeout_s,
    )
    return AttendanceEngine(get_record_store(ATTENDANCE_NAMESPACE), locator, settings.tz_default)


def create_app(
    attendance: Optional[AttendanceEngine] = None,
    dpr_log: Optional[DprLog] = None,
    photo_store: Optional[PhotoStore] = None,
) -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FieldAppError, field_app_error_handler)

    # Services
    uses_defaults = attendance is None or dpr_log is None
    app.state.attendance = attendance or build_attendance_engine()
    app.state.dpr_log = dpr_log or DprLog(get_record_store(DPR_NAMESPACE), settings.tz_default)
    app.state.photo_store = photo_store or PhotoStore(settings.photo_dir)

    # Routers
    app.include_router(attendance_router)
    app.include_router(dpr_router)
    app.include_router(photos_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.on_event("startup")
    def _startup():
        if not uses_defaults or settings.store_backend != "sql":
            return
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            logger.info("store_tables_ready", database_url=settings.database_url)

    @app.on_event("shutdown")
    def _shutdown():
        app.state.attendance.close()
        logger.info("attendance_engine_closed")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fieldapp.main:app", host=settings.host, port=settings.port)
