from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator


class AttendanceState(str, Enum):
    NOT_PUNCHED = "NOT_PUNCHED"
    PUNCHED_IN = "PUNCHED_IN"
    PUNCHED_OUT = "PUNCHED_OUT"


class LocationFix(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    acquired_at: datetime
    accuracy_m: Optional[float] = None


class AttendanceRecord(BaseModel):
    """Today's attendance, persisted as one value so a transition is all-or-nothing"""
    day: date
    punch_in_time: Optional[datetime] = None
    punch_in_location: Optional[LocationFix] = None
    punch_in_photo_ref: Optional[str] = None
    punch_out_time: Optional[datetime] = None
    punch_out_location: Optional[LocationFix] = None

    @model_validator(mode="after")
    def _punch_out_needs_punch_in(self):
        if self.punch_out_time is not None:
            if self.punch_in_time is None:
                raise ValueError("punch_out_time requires punch_in_time")
            if self.punch_out_time < self.punch_in_time:
                raise ValueError("punch_out_time precedes punch_in_time")
        return self

    @property
    def state(self) -> AttendanceState:
        if self.punch_in_time is None:
            return AttendanceState.NOT_PUNCHED
        if self.punch_out_time is None:
            return AttendanceState.PUNCHED_IN
        return AttendanceState.PUNCHED_OUT


class AttendanceSummary(BaseModel):
    state: AttendanceState
    day: date
    day_display: str
    punch_in_time: Optional[datetime] = None
    punch_in_time_display: Optional[str] = None
    punch_in_location: Optional[LocationFix] = None
    punch_in_latitude_display: Optional[str] = None
    punch_in_longitude_display: Optional[str] = None
    punch_in_photo_ref: Optional[str] = None
    punch_out_time: Optional[datetime] = None
    punch_out_time_display: Optional[str] = None
    punch_out_location: Optional[LocationFix] = None
    duration_seconds: Optional[int] = None
    duration_display: Optional[str] = None

    @computed_field
    @property
    def can_punch_in(self) -> bool:
        return self.state == AttendanceState.NOT_PUNCHED

    @computed_field
    @property
    def can_punch_out(self) -> bool:
        return self.state == AttendanceState.PUNCHED_IN


class PunchInRequest(BaseModel):
    photo_ref: str = Field(min_length=1)
