from fastapi import APIRouter, Depends, HTTPException, Request

from ..errors import EngineClosed
from ..schemas.attendance import AttendanceSummary, PunchInRequest
from ..services.attendance import AttendanceEngine
from ..storage.photo_store import PhotoStore


router = APIRouter(prefix="/attendance", tags=["attendance"])


def get_attendance(request: Request) -> AttendanceEngine:
    return request.app.state.attendance


def get_photo_store(request: Request) -> PhotoStore:
    return request.app.state.photo_store


def _require_alive(summary):
    if summary is None:
        raise EngineClosed("Service is shutting down")
    return summary


@router.get("", response_model=AttendanceSummary)
async def attendance_summary(engine: AttendanceEngine = Depends(get_attendance)):
    return await engine.get_summary()


@router.post("/punch-in", response_model=AttendanceSummary)
async def punch_in(
    payload: PunchInRequest,
    engine: AttendanceEngine = Depends(get_attendance),
    photos: PhotoStore = Depends(get_photo_store),
):
    # Photo capture happens before the engine is involved; it only records the reference
    if not photos.exists(payload.photo_ref):
        raise HTTPException(status_code=400, detail="Capture a photo before punching in")
    return _require_alive(await engine.punch_in(payload.photo_ref))


@router.post("/punch-out", response_model=AttendanceSummary)
async def punch_out(engine: AttendanceEngine = Depends(get_attendance)):
    return _require_alive(await engine.punch_out())
