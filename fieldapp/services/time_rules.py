"""
Time rules for the attendance day.
Day boundaries and display strings are in the device's local time zone.
"""
from datetime import date, datetime, timedelta
import pytz


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(pytz.UTC)


def utc_to_local(utc_datetime: datetime, timezone_str: str) -> datetime:
    """
    Convert UTC datetime to local timezone.

    Args:
        utc_datetime: UTC datetime (naive values are taken as UTC)
        timezone_str: Timezone string (e.g., "Asia/Kolkata")

    Returns:
        Local datetime (timezone-aware)
    """
    tz = pytz.timezone(timezone_str)
    return ensure_utc(utc_datetime).astimezone(tz)


def local_day(dt: datetime, timezone_str: str) -> date:
    """Calendar day of an instant in local time (year + day-of-year granularity)."""
    return utc_to_local(dt, timezone_str).date()


def format_clock_time(dt: datetime, timezone_str: str) -> str:
    """e.g. "09:45 AM" """
    return utc_to_local(dt, timezone_str).strftime("%I:%M %p")


def format_day(day: date) -> str:
    """e.g. "Thursday, Jan 22, 2026" """
    return day.strftime("%A, %b %d, %Y")


def format_duration(duration: timedelta) -> str:
    total_minutes = int(duration.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"


def format_coordinate(value: float) -> str:
    return f"{value:.6f}"


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)
