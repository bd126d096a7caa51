"""Time utilities (UTC now, elapsed formatting, duration strings)."""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

# Units accepted in duration strings such as "90m", "1h30m", "1.5h", "-15m".
_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_elapsed(start: datetime, end: datetime | None = None) -> str:
    end_ts = end or utc_now()
    delta: timedelta = end_ts - start
    ms = int(delta.total_seconds() * 1000)
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms/1000:.2f}s"
    return f"{delta.total_seconds()/60:.2f}m"


def parse_duration(value: str) -> timedelta:
    """Parse a duration string made of number+unit pairs ("1h30m", "45s", "0").

    Raises ValueError for anything else, including the empty string.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty duration")
    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)

    seconds = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration '{value}'")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration '{value}'")
    return timedelta(seconds=sign * seconds)


def format_rfc822(ts: datetime) -> str:
    """RFC 822 style timestamp, e.g. '02 Jan 06 15:04 UTC'."""
    return ts.strftime("%d %b %y %H:%M %Z").strip()


__all__ = ["utc_now", "format_elapsed", "parse_duration", "format_rfc822"]
