from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from urllib.parse import urlparse

from fastapi import HTTPException, status


def ensure_utc(value: datetime) -> datetime:
    """Normalises a timestamp to aware UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_bounds(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """UTC [start, end) of the local calendar day `day` in `tz`."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def range_bounds(start_day: date, end_day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """UTC [start, end) covering whole local days from `start_day` through `end_day` inclusive."""
    start, _ = day_bounds(start_day, tz)
    _, end = day_bounds(end_day, tz)
    return start, end


def local_today(tz: tzinfo) -> date:
    return datetime.now(tz).date()


def parse_date_string(date_string: Optional[str], default: Optional[date] = None) -> date:
    if not date_string:
        if default is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A date is required.")
        return default
    try:
        # Accept full ISO timestamps too; only the calendar day matters.
        return date.fromisoformat(date_string[:10])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid date format. Please use YYYY-MM-DD."
        )


def domain_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    host = urlparse(url).hostname
    return host or None
