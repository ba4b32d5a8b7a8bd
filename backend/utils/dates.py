# utils/dates.py
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from fastapi import HTTPException


def validate_range(start: Optional[date], end: Optional[date]):
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")


def day_bounds(start: Optional[date], end: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Convert an inclusive date range into datetime bounds.

    The end bound is exclusive and points at midnight after `end`, so a
    record stamped late on the end date is still inside the range.
    """
    lower = datetime.combine(start, datetime.min.time()) if start else None
    upper = datetime.combine(end + timedelta(days=1), datetime.min.time()) if end else None
    return lower, upper


def apply_range(stmt, column, start: Optional[date], end: Optional[date]):
    lower, upper = day_bounds(start, end)
    if lower is not None:
        stmt = stmt.where(column >= lower)
    if upper is not None:
        stmt = stmt.where(column < upper)
    return stmt
