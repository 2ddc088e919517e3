"""
Weekly availability model and free/busy slot computation.

A host's availability is a recurring weekly template: for each day of the week,
a list of wall-clock windows (``09:00``-``12:00``). Slots are produced by tiling
every window on every calendar day of a requested range into fixed-size pieces,
then marking each piece busy when it intersects a non-canceled appointment.

Nothing in this module touches the database; callers pass in the parsed template
and the appointments they fetched.
"""

import json
import re
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_serializer, field_validator, model_validator

from scheduler.core import config
from scheduler.core.errors import AvailabilityFormatError
from scheduler.core.statuses import is_canceled
from scheduler.core.timeutils import align_to

_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?$')


class DayOfWeek(str, Enum):
    MONDAY = 'monday'
    TUESDAY = 'tuesday'
    WEDNESDAY = 'wednesday'
    THURSDAY = 'thursday'
    FRIDAY = 'friday'
    SATURDAY = 'saturday'
    SUNDAY = 'sunday'

    @classmethod
    def for_date(cls, day: date) -> 'DayOfWeek':
        # member order matches date.weekday(): Monday == 0
        return list(cls)[day.weekday()]


class TimeWindow(BaseModel):
    start: time
    end: time

    @field_validator('start', 'end', mode='before')
    @classmethod
    def parse_wall_clock(cls, value: Any) -> Any:
        if isinstance(value, str):
            match = _TIME_PATTERN.match(value.strip())
            if match is None:
                raise ValueError(f'Expected a HH:MM time, got {value!r}.')
            hour, minute, second = match.groups()
            return time(int(hour), int(minute), int(second or 0))
        return value

    @field_serializer('start', 'end')
    def format_wall_clock(self, value: time) -> str:
        return value.strftime('%H:%M')


class DayAvailability(BaseModel):
    day: DayOfWeek
    windows: list[TimeWindow] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def accept_single_window_entry(cls, data: Any) -> Any:
        # {"day": "monday", "startTime": "09:00", "endTime": "17:00"}
        if isinstance(data, dict) and 'windows' not in data and 'startTime' in data:
            return {
                'day': data.get('day'),
                'windows': [{'start': data.get('startTime'), 'end': data.get('endTime')}],
            }
        return data

    @field_validator('day', mode='before')
    @classmethod
    def normalize_day(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class TimeSlot(BaseModel):
    start: datetime
    end: datetime
    available: bool


weekly_availability_adapter = TypeAdapter(list[DayAvailability])


def as_entry_list(raw: Any) -> Any:
    """Turn the ``{"monday": [{"start": ..., "end": ...}]}`` form into list entries."""
    if isinstance(raw, dict):
        return [{'day': day, 'windows': windows} for day, windows in raw.items()]
    return raw


def parse_weekly_availability(raw: Any) -> list[DayAvailability]:
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise AvailabilityFormatError() from exc

    try:
        return weekly_availability_adapter.validate_python(as_entry_list(raw))
    except ValidationError as exc:
        raise AvailabilityFormatError() from exc


def serialize_weekly_availability(entries: list[DayAvailability]) -> str:
    return json.dumps(weekly_availability_adapter.dump_python(entries, mode='json'))


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and end_a > start_b


def iterate_window_slots(
    day: date,
    window: TimeWindow,
    zone,
    slot_duration_minutes: int,
) -> list[tuple[datetime, datetime]]:
    step = timedelta(minutes=slot_duration_minutes)
    slot_start = datetime.combine(day, window.start, tzinfo=zone)
    window_end = datetime.combine(day, window.end, tzinfo=zone)

    slots: list[tuple[datetime, datetime]] = []
    while slot_start + step <= window_end:
        slots.append((slot_start, slot_start + step))
        slot_start += step

    return slots


def compute_available_slots(
    weekly_availability: list[DayAvailability],
    appointments: Iterable,
    start_date: datetime,
    end_date: datetime,
    slot_duration_minutes: int = config.SLOT_DURATION_MINUTES,
) -> list[TimeSlot]:
    """
    Tile the weekly template over every calendar day in ``[start_date, end_date]``.

    Days are walked in ``start_date``'s timezone. ``appointments`` are objects with
    ``start_time``, ``end_time`` and ``status``; canceled ones never block a slot.
    An inverted range yields no slots.
    """
    zone = start_date.tzinfo
    range_end = align_to(end_date, zone)
    if start_date > range_end:
        return []

    busy_intervals = [
        (align_to(appointment.start_time, zone), align_to(appointment.end_time, zone))
        for appointment in appointments
        if not is_canceled(appointment.status)
    ]

    windows_by_day: dict[DayOfWeek, list[TimeWindow]] = {}
    for entry in weekly_availability:
        windows_by_day.setdefault(entry.day, []).extend(entry.windows)

    slots: list[TimeSlot] = []
    current_day = start_date.date()

    while current_day <= range_end.date():
        candidates: list[tuple[datetime, datetime]] = []
        for window in windows_by_day.get(DayOfWeek.for_date(current_day), []):
            candidates.extend(iterate_window_slots(current_day, window, zone, slot_duration_minutes))
        candidates.sort()

        latest_end = None
        for slot_start, slot_end in candidates:
            # overlapping windows in the template would otherwise emit overlapping slots
            if latest_end is not None and slot_start < latest_end:
                continue
            latest_end = slot_end

            is_busy = any(
                overlaps(slot_start, slot_end, busy_start, busy_end)
                for busy_start, busy_end in busy_intervals
            )
            slots.append(TimeSlot(start=slot_start, end=slot_end, available=not is_busy))

        current_day += timedelta(days=1)

    return slots
