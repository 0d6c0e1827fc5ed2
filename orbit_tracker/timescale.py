"""
Time Conversions

Julian date helpers shared by the propagator and the frame converter.

Datetimes without tzinfo are treated as UTC. Julian dates are returned as a
(whole, fraction) pair in the same way the sgp4 library expects them, which
keeps full precision when the fraction is small.
"""

from datetime import datetime, timedelta, timezone
from typing import Tuple

# Julian date of 2000-01-01T00:00:00 UTC
_JD_2000_MIDNIGHT = 2451544.5
_EPOCH_2000 = datetime(2000, 1, 1, tzinfo=timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def datetime_to_jd_fr(dt: datetime) -> Tuple[float, float]:
    """
    Convert datetime to Julian date and fraction.

    Args:
        dt: Datetime object (naive values are taken as UTC)

    Returns:
        Tuple of (julian_day, fraction) where julian_day ends in .5
    """
    delta = as_utc(dt) - _EPOCH_2000
    jd = _JD_2000_MIDNIGHT + delta.days
    fr = (delta.seconds + delta.microseconds / 1e6) / 86400.0
    return jd, fr


def jd_to_datetime(jd: float, fr: float = 0.0) -> datetime:
    """Convert a Julian date pair to an aware UTC datetime (microsecond resolution)."""
    whole_days = jd - _JD_2000_MIDNIGHT
    return _EPOCH_2000 + timedelta(days=whole_days) + timedelta(days=fr)

