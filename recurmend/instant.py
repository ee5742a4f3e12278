"""Helpers for time-zone aware instants.

Occurrences and exclusions are both plain aware ``datetime`` objects. Two
instants match when they denote the same moment, whatever zone each carries,
so every value crossing the public API must be aware.
"""

from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse

# RFC 5545 UTC form used for EXDATE values
UTC_FORMAT = "%Y%m%dT%H%M%SZ"


def resolve_zone(tz: str | tzinfo | None) -> tzinfo | None:
    """Turn an IANA zone name into a tzinfo, passing tzinfo/None through."""
    if tz is None or isinstance(tz, tzinfo):
        return tz
    return ZoneInfo(tz)


def require_aware(value: datetime, name: str = "instant") -> datetime:
    """Return ``value`` unchanged, or raise TypeError if it is naive."""
    if not isinstance(value, datetime):
        raise TypeError(
            f"{name} must be a datetime, got {type(value).__name__!r}: {value!r}"
        )
    if value.tzinfo is None or value.utcoffset() is None:
        raise TypeError(
            f"{name} must be a timezone-aware datetime.\n"
            f"Got naive datetime: {value!r}\n"
            f"Hint: Add timezone info:\n"
            f"  from zoneinfo import ZoneInfo\n"
            f"  dt = datetime(..., tzinfo=ZoneInfo('UTC'))  "
            f"# or 'Asia/Singapore', etc.\n"
            f"  # Or pass tz=... so naive values are localized for you"
        )
    return value


def localize(value: datetime | date, zone: tzinfo | None) -> datetime:
    """Attach ``zone`` to a naive datetime or a date.

    Dates become midnight in ``zone``. Aware datetimes are returned as-is.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is not None:
        return value
    if zone is None:
        return require_aware(value)
    return value.replace(tzinfo=zone)


def to_utc(value: datetime) -> datetime:
    return require_aware(value).astimezone(timezone.utc)


def format_utc(value: datetime) -> str:
    """Format an aware datetime as ``YYYYMMDDTHHMMSSZ`` in UTC."""
    return to_utc(value).strftime(UTC_FORMAT)


def parse_instant_values(
    values: str, zone: tzinfo, *, is_date: bool = False
) -> list[datetime]:
    """Parse a comma separated list of RFC 5545 DATE-TIME (or DATE) values.

    Args:
        values: Raw property value, e.g. ``"20150415T000000Z,20150416T000000Z"``
        zone: Zone applied to floating (naive) values
        is_date: True when the property carried ``VALUE=DATE``

    Returns:
        Aware datetimes in input order. Values carrying ``Z`` or an offset
        are normalized to ``timezone.utc``.

    Raises:
        ValueError: If a value is not a valid basic or extended ISO 8601 form
    """
    instants: list[datetime] = []
    for raw in values.split(","):
        raw = raw.strip()
        if not raw:
            continue
        parsed = isoparse(raw)
        if is_date:
            parsed = datetime.combine(parsed.date(), time.min)
        if parsed.tzinfo is not None:
            instants.append(parsed.astimezone(timezone.utc))
        else:
            instants.append(parsed.replace(tzinfo=zone))
    return instants
