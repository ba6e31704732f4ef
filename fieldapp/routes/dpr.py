from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from ..schemas.dpr import DprCreate, DprEntry
from ..services.dpr import DprLog
from ..storage.photo_store import PhotoStore


router = APIRouter(prefix="/dpr", tags=["dpr"])


def get_dpr_log(request: Request) -> DprLog:
    return request.app.state.dpr_log


def get_photo_store(request: Request) -> PhotoStore:
    return request.app.state.photo_store


@router.get("", response_model=List[DprEntry])
def list_dprs(dpr_log: DprLog = Depends(get_dpr_log)):
    return dpr_log.list_all()


@router.post("", response_model=DprEntry, status_code=201)
def create_dpr(
    payload: DprCreate,
    dpr_log: DprLog = Depends(get_dpr_log),
    photos: PhotoStore = Depends(get_photo_store),
):
    if not payload.work_description.strip():
        raise HTTPException(status_code=422, detail="Work description is required")
    if payload.photo_ref and not photos.exists(payload.photo_ref):
        raise HTTPException(status_code=400, detail=f"Unknown photo {payload.photo_ref}")
    return dpr_log.append(payload.work_description, payload.remarks, payload.photo_ref)
