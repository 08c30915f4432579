"""Parsing of raw time inputs: counterparty windows and SLA deadlines.

Parsing fails closed: anything that cannot be read unambiguously raises
``TimeParseError``. Callers turn that into a violation. Nothing here
falls back to "now" or to the epoch, and naive instants are never
assumed to be UTC.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.models.schedule import Window

_RANGE_RE = re.compile(r"^\s*(\d{1,2}:\d{2})\s*[-–]\s*(\d{1,2}:\d{2})\s*$")


class TimeParseError(ValueError):
    """A raw time value could not be interpreted."""


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        msg = f"Unknown timezone '{tz_name}'."
        raise TimeParseError(msg) from None


def parse_clock(raw: str) -> time:
    """Parse a 24h ``HH:MM`` wall-clock time."""
    try:
        return datetime.strptime(raw.strip(), "%H:%M").time()
    except ValueError:
        msg = f"Invalid clock time '{raw}'."
        raise TimeParseError(msg) from None


def parse_time_range(raw: str) -> tuple[time, time]:
    """Split ``"09:00-12:00"`` into its two wall-clock bounds."""
    match = _RANGE_RE.match(raw or "")
    if match is None:
        msg = f"Invalid time window '{raw}' (expected HH:MM-HH:MM)."
        raise TimeParseError(msg)
    return parse_clock(match.group(1)), parse_clock(match.group(2))


def resolve_window(raw: str, on_date: date, tz_name: str) -> Window:
    """Anchor a raw ``HH:MM-HH:MM`` window to a local calendar date.

    A window whose end is earlier than its start runs past midnight and
    ends on the following day.
    """
    start_clock, end_clock = parse_time_range(raw)
    tz = _zone(tz_name)
    start = datetime.combine(on_date, start_clock, tzinfo=tz)
    end = datetime.combine(on_date, end_clock, tzinfo=tz)
    if end < start:
        end = datetime.combine(on_date + timedelta(days=1), end_clock, tzinfo=tz)
    return Window(start=start, end=end, timezone=tz_name)


def parse_instant(raw: str, default_tz: str | None = None) -> datetime:
    """Parse an ISO-8601 instant.

    A value without an offset is only accepted when ``default_tz`` names
    the timezone it was written in.
    """
    try:
        parsed = datetime.fromisoformat((raw or "").strip())
    except ValueError:
        msg = f"Invalid instant '{raw}'."
        raise TimeParseError(msg) from None
    if parsed.tzinfo is None:
        if default_tz is None:
            msg = f"Instant '{raw}' has no timezone."
            raise TimeParseError(msg)
        parsed = parsed.replace(tzinfo=_zone(default_tz))
    return parsed
