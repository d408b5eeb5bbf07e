# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the report dispatch backend.

All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ) and every Python
datetime handled by the codebase is timezone-aware.

Report periods are plain calendar dates (``YYYY-MM-DD``). The helpers at the
bottom of this module convert such a period into the half-open UTC range used
by database filters, so that the end date is included in full.

Usage:
------
    from src.utils.datetime import utc_now, date_range_bounds

    now = utc_now()
    start, end = date_range_bounds("2025-03-01", "2025-03-31")
"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    dt_utc = ensure_utc(dt)
    return dt_utc.isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Both ``2025-03-01T09:00:00Z`` and the space separated form returned by
    some messaging gateways (``2025-03-01 09:00:00``) are accepted.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if not iso_string:
        return None

    dt = datetime.fromisoformat(iso_string.strip().replace("Z", "+00:00"))
    return ensure_utc(dt)


def parse_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string into a date.

    Args:
        value: Date string or date instance.

    Returns:
        The parsed date.

    Raises:
        ValueError: If the string is not a valid ISO date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def date_range_bounds(start: str | date, end: str | date) -> tuple[datetime, datetime]:
    """Convert an inclusive calendar period into a half-open UTC range.

    Args:
        start: First day of the period.
        end: Last day of the period (inclusive).

    Returns:
        Tuple of (start at 00:00 UTC, day after end at 00:00 UTC).

    Raises:
        ValueError: If end is before start.
    """
    start_day = parse_date(start)
    end_day = parse_date(end)
    if end_day < start_day:
        raise ValueError(f"Period end {end_day} is before start {start_day}")

    lower = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end_day + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper
