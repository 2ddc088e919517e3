"""
GraphQL surface for availability lookups.

Results are unions of a success type and ``SchedulingFailure``, so clients
branch on ``__typename`` instead of probing for a ``message`` field.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Union

import strawberry
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from scheduler.core import config
from scheduler.core.availability import parse_weekly_availability
from scheduler.core.errors import ScheduleNotFoundError, SchedulingError
from scheduler.repository import SchedulingRepository, get_repository
from scheduler.services.availability_service import get_available_slots

logger = logging.getLogger(__name__)


@strawberry.enum
class ErrorCode(Enum):
    NOT_FOUND = 'NOT_FOUND'
    PARSE_ERROR = 'PARSE_ERROR'
    DATABASE_ERROR = 'DATABASE_ERROR'
    SCHEDULING_ERROR = 'SCHEDULING_ERROR'


@strawberry.type
class SchedulingFailure:
    message: str
    code: ErrorCode


@strawberry.type(name='TimeSlot')
class TimeSlotType:
    start: datetime
    end: datetime
    available: bool


@strawberry.type
class AvailableSlots:
    slots: list[TimeSlotType]


@strawberry.type(name='TimeWindow')
class TimeWindowType:
    start: str
    end: str


@strawberry.type(name='DayAvailability')
class DayAvailabilityType:
    day: str
    windows: list[TimeWindowType]


@strawberry.type(name='Schedule')
class ScheduleType:
    id: strawberry.ID
    user_id: strawberry.ID
    availability: list[DayAvailabilityType]


@strawberry.input
class DateRangeInput:
    start_date: datetime
    end_date: datetime


AvailabilityResult = Annotated[Union[AvailableSlots, SchedulingFailure], strawberry.union('AvailabilityResult')]
ScheduleResult = Annotated[Union[ScheduleType, SchedulingFailure], strawberry.union('ScheduleResult')]


def to_failure(exc: SchedulingError) -> SchedulingFailure:
    try:
        code = ErrorCode(exc.code)
    except ValueError:
        code = ErrorCode.SCHEDULING_ERROR
    return SchedulingFailure(message=exc.message, code=code)


def database_failure() -> SchedulingFailure:
    logger.exception('Database error while serving a GraphQL query.')
    return SchedulingFailure(message='Database error', code=ErrorCode.DATABASE_ERROR)


@strawberry.type
class Query:
    @strawberry.field
    def available_slots(self, info: Info, user_id: strawberry.ID, date_range: DateRangeInput) -> AvailabilityResult:
        repository: SchedulingRepository = info.context['repository']
        try:
            slots = get_available_slots(repository, str(user_id), date_range.start_date, date_range.end_date)
        except SchedulingError as exc:
            return to_failure(exc)
        except SQLAlchemyError:
            return database_failure()

        return AvailableSlots(
            slots=[TimeSlotType(start=slot.start, end=slot.end, available=slot.available) for slot in slots],
        )

    @strawberry.field
    def schedule(self, info: Info, user_id: strawberry.ID) -> ScheduleResult:
        repository: SchedulingRepository = info.context['repository']
        try:
            schedule = repository.get_schedule(str(user_id))
            if schedule is None:
                raise ScheduleNotFoundError('Schedule not found')
            entries = parse_weekly_availability(schedule.availability)
        except SchedulingError as exc:
            return to_failure(exc)
        except SQLAlchemyError:
            return database_failure()

        return ScheduleType(
            id=strawberry.ID(str(schedule.id)),
            user_id=strawberry.ID(schedule.user_id),
            availability=[
                DayAvailabilityType(
                    day=entry.day.value,
                    windows=[
                        TimeWindowType(start=window.start.strftime('%H:%M'), end=window.end.strftime('%H:%M'))
                        for window in entry.windows
                    ],
                )
                for entry in entries
            ],
        )


schema = strawberry.Schema(query=Query)


async def get_context(repository: SchedulingRepository = Depends(get_repository)) -> dict:
    return {'repository': repository}


graphql_router = GraphQLRouter(
    schema,
    context_getter=get_context,
    graphql_ide='graphiql' if config.GRAPHQL_IDE else None,
)
