from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class DprEntry(BaseModel):
    id: str
    created_at: datetime
    report_date: date
    work_description: str = Field(min_length=1)
    remarks: str = ""
    photo_ref: Optional[str] = None


class DprCreate(BaseModel):
    work_description: str
    remarks: str = ""
    photo_ref: Optional[str] = None
