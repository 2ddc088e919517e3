from enum import Enum

from sqlalchemy import func, or_


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


# Both spellings have been written by clients; "canceled" is canonical.
CANCELED_SPELLINGS = frozenset({"canceled", "cancelled"})


def normalize_status(value: str) -> AppointmentStatus:
    normalized = value.strip().lower()
    if normalized in CANCELED_SPELLINGS:
        return AppointmentStatus.CANCELED
    return AppointmentStatus(normalized)


def is_canceled(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in CANCELED_SPELLINGS


def canceled_clause(column):
    """SQL form of ``is_canceled`` for a status column."""
    return func.lower(func.trim(column)).in_(CANCELED_SPELLINGS)


def active_clause(column):
    """SQL form of ``not is_canceled``; rows without a status still count as active."""
    return or_(column.is_(None), func.lower(func.trim(column)).not_in(CANCELED_SPELLINGS))
