"""Timestamp parsing helpers for ordering transcript records."""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# Python < 3.11 fromisoformat only accepts 3 or 6 fractional digits.
_FRACTION_RE = re.compile(r"\.(\d+)")


def _format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _pad_fraction(token: str) -> str:
    return _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), token, count=1)


def _parse_datetime_token(token: str) -> datetime | None:
    cleaned = token.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(_pad_fraction(cleaned.replace("Z", "+00:00")))
    except Exception:
        pass
    for fmt in ("%Y/%m/%d %H:%M:%S", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(cleaned, fmt).replace(tzinfo=timezone.utc)
        except Exception:
            continue
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a record timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        token = value.strip()
        if _DATE_ONLY_RE.match(token):
            try:
                parsed = datetime.fromisoformat(token)
            except Exception:
                return None
        else:
            parsed = _parse_datetime_token(token)
            if parsed is None:
                return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def iso_to_epoch(value: Any) -> float:
    """Seconds since the epoch, or 0.0 when the value is not a timestamp."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return 0.0
    return parsed.timestamp()


def normalize_iso_date(value: Any) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return _format_datetime_utc(parsed)


def utc_now_iso() -> str:
    return _format_datetime_utc(datetime.now(timezone.utc))
