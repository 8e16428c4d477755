"""Clock helpers. All domain timestamps are timezone-aware UTC."""

from datetime import datetime, date, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    """Use the caller's clock when given (tests), otherwise the real one"""
    return now if now is not None else utcnow()


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Whole years, adjusted when this year's birthday has not happened yet"""
    today = today or utcnow().date()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age
