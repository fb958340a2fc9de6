"""Date manipulation utilities"""

from datetime import date, timedelta


def days_between(start: date, end: date) -> int:
    """Actual day count from start to end (negative when end precedes start)"""
    return (end - start).days


def add_days(from_date: date, days: int) -> date:
    """Calendar days, no business-day adjustment"""
    return from_date + timedelta(days=days)


def clamp_days(days: int, lower: int, upper: int) -> int:
    return max(lower, min(days, upper))
