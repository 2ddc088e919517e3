import logging
from datetime import datetime, time, timedelta, tzinfo

from scheduler.core import config
from scheduler.core.availability import TimeSlot, compute_available_slots, parse_weekly_availability
from scheduler.core.errors import AvailabilityFormatError, ScheduleNotFoundError
from scheduler.core.timeutils import align_to, load_zone
from scheduler.repository import SchedulingRepository

logger = logging.getLogger(__name__)


def get_host_zone(repository: SchedulingRepository, user_id: str) -> tzinfo | None:
    """Zone the host's weekly template is written in. ``None`` stands for UTC."""
    name = repository.get_host_timezone(user_id)
    if not name:
        return None
    try:
        return load_zone(name)
    except ValueError:
        logger.warning('User %s has unknown time zone %r; reading availability as UTC.', user_id, name)
        return None


def get_walked_bounds(start_date: datetime, end_date: datetime) -> tuple[datetime, datetime]:
    """Midnight of the first walked day and midnight after the last one."""
    zone = start_date.tzinfo
    last_day = align_to(end_date, zone).date()
    return (
        datetime.combine(start_date.date(), time.min, tzinfo=zone),
        datetime.combine(last_day + timedelta(days=1), time.min, tzinfo=zone),
    )


def get_available_slots(
    repository: SchedulingRepository,
    user_id: str,
    start_date: datetime,
    end_date: datetime,
    slot_duration_minutes: int = config.SLOT_DURATION_MINUTES,
) -> list[TimeSlot]:
    """
    Free/busy slots for a host over ``[start_date, end_date]``.

    The range is moved into the host's own time zone before days are walked, so
    the same instants give the same slots whatever offset the caller used.
    """
    schedule = repository.get_schedule(user_id)
    if schedule is None:
        raise ScheduleNotFoundError()

    try:
        weekly_availability = parse_weekly_availability(schedule.availability)
    except AvailabilityFormatError:
        logger.warning('Stored availability for user %s could not be parsed.', user_id)
        raise

    zone = get_host_zone(repository, user_id)
    start_date = align_to(start_date, zone)
    end_date = align_to(end_date, zone)

    window_start, window_end = get_walked_bounds(start_date, end_date)
    appointments = repository.list_appointments_in_range(user_id, window_start, window_end)

    return compute_available_slots(
        weekly_availability,
        appointments,
        start_date,
        end_date,
        slot_duration_minutes=slot_duration_minutes,
    )


def is_time_open(
    repository: SchedulingRepository,
    user_id: str,
    start_time: datetime,
    duration_minutes: int,
) -> bool:
    """True when available slots cover ``[start_time, start_time + duration)`` without gaps."""
    start_time = align_to(start_time, get_host_zone(repository, user_id))
    end_time = start_time + timedelta(minutes=duration_minutes)
    slots = get_available_slots(repository, user_id, start_time, end_time)

    cursor = start_time
    for slot in slots:
        if slot.end <= cursor:
            continue
        if slot.start != cursor or not slot.available:
            break
        cursor = slot.end
        if cursor >= end_time:
            return True

    return False
