"""Normalization of user-supplied list filters.

The CLI and the HTTP API both build a `ListFilter` through these helpers so
the same inputs are accepted or rejected the same way on every surface.
"""

import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime

from pai.errors import InvalidArgumentError
from pai.models import ListFilter, SourceKind, format_timestamp


RELATIVE_SINCE = re.compile(r"^(\d+)\s*([mhdw])$", re.IGNORECASE)

RELATIVE_UNITS = {
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def normalize_optional_string(value: str | None) -> str | None:
    """Trim a string and map blank values to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def ensure_positive_limit(limit: int | None) -> int | None:
    if limit is not None and limit <= 0:
        raise InvalidArgumentError("Limit must be greater than zero")
    return limit


def normalize_since(value: str | None, now: datetime | None = None) -> str | None:
    """Turn a `since` argument into a UTC RFC 3339 timestamp.

    Accepts relative offsets (`30m`, `24h`, `7d`, `2w`), RFC 3339 / ISO 8601
    timestamps (naive ones are taken as UTC) and RFC 2822 dates.
    """
    value = normalize_optional_string(value)
    if value is None:
        return None

    try:
        dt = _parse_since(value, now)
        if dt is not None:
            # Stored timestamps have whole seconds; round a fractional bound up
            if dt.microsecond:
                dt = dt.replace(microsecond=0) + timedelta(seconds=1)
            return format_timestamp(dt)
    except OverflowError:
        raise InvalidArgumentError(f"Since value '{value}' is out of range") from None

    raise InvalidArgumentError(
        f"Invalid since value '{value}'. Use ISO 8601 (e.g. 2024-01-01T00:00:00Z) "
        "or relative forms like 7d/24h/60m."
    )


def _parse_since(value: str, now: datetime | None) -> datetime | None:
    match = RELATIVE_SINCE.match(value)
    if match:
        amount, unit = int(match.group(1)), match.group(2).lower()
        now = now or datetime.now(timezone.utc)
        return now - amount * RELATIVE_UNITS[unit]

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def build_filter(
    source_kind: str | SourceKind | None = None,
    source_id: str | None = None,
    limit: int | None = None,
    since: str | None = None,
    query: str | None = None,
) -> ListFilter:
    """Validate raw filter inputs and combine them into a ListFilter."""
    if isinstance(source_kind, str):
        kind_name = normalize_optional_string(source_kind)
        source_kind = SourceKind.parse(kind_name) if kind_name else None

    return ListFilter(
        source_kind=source_kind,
        source_id=normalize_optional_string(source_id),
        limit=ensure_positive_limit(limit),
        since=normalize_since(since),
        query=normalize_optional_string(query),
    )
