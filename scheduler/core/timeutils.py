from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def as_utc_naive(value: datetime) -> datetime:
    """Convert to the naive UTC form timestamps are stored in. Naive input is already UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def align_to(value: datetime, zone: tzinfo | None) -> datetime:
    """Express ``value`` in ``zone``; naive values on either side mean UTC."""
    if zone is None:
        return as_utc_naive(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(zone)


def load_zone(name: str) -> ZoneInfo:
    """Look up an IANA zone name such as ``Europe/Tallinn``."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f'Unknown time zone {name!r}.') from exc
