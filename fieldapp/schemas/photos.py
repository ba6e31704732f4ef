from pydantic import BaseModel


class PhotoUploadResponse(BaseModel):
    photo_ref: str
