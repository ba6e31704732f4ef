from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from ..schemas.photos import PhotoUploadResponse
from ..storage.photo_store import PHOTO_PREFIXES, PhotoStore


router = APIRouter(prefix="/photos", tags=["photos"])


def get_photo_store(request: Request) -> PhotoStore:
    return request.app.state.photo_store


@router.post("", response_model=PhotoUploadResponse, status_code=201)
async def upload_photo(
    file: UploadFile = File(...),
    kind: str = Query("attendance"),
    photos: PhotoStore = Depends(get_photo_store),
):
    """
    Receives a photo from the camera screen and returns the reference to
    pass to punch-in or a DPR entry.
    """
    if kind not in PHOTO_PREFIXES:
        raise HTTPException(status_code=400, detail=f"Unknown photo kind: {kind}")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Photo is empty")
    photo_ref = await run_in_threadpool(photos.save, content, kind)
    return PhotoUploadResponse(photo_ref=photo_ref)
