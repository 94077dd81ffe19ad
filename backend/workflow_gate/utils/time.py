"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    if dt.tzinfo is None:
        # Assume UTC if no timezone
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted datetime string

    Returns:
        Datetime object in UTC
    """
    dt = date_parser.isoparse(iso_string)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def ensure_utc(value: Union[str, datetime]) -> datetime:
    """Coerce an ISO string or datetime into an aware datetime (naive = UTC)"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return parse_iso(value)


def to_local(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """
    Convert an aware datetime to wall-clock time

    Args:
        dt: Aware datetime
        tz_name: IANA zone name; empty/None uses the process local zone
    """
    if tz_name:
        return dt.astimezone(ZoneInfo(tz_name))
    return dt.astimezone()
