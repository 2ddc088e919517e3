import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import ensure_owner, get_current_user
from scheduler.core.availability import (
    DayAvailability,
    as_entry_list,
    parse_weekly_availability,
    serialize_weekly_availability,
)
from scheduler.core.errors import AvailabilityFormatError
from scheduler.database import get_db
from scheduler.models.schedule import Schedule
from scheduler.models.user import User
from scheduler.routes.common import database_unavailable

router = APIRouter(tags=['schedules'])

logger = logging.getLogger(__name__)


def _decode_availability(value: Any) -> Any:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as exc:
            raise ValueError('Availability must be a JSON list of days.') from exc
    return as_entry_list(value)


def _check_windows(entries: list[DayAvailability]) -> list[DayAvailability]:
    for entry in entries:
        for window in entry.windows:
            if window.start >= window.end:
                raise ValueError(f'Every {entry.day.value} window must start before it ends.')
    return entries


class CreateScheduleRequest(BaseModel):
    user_id: str
    availability: list[DayAvailability]

    @field_validator('availability', mode='before')
    @classmethod
    def decode_availability(cls, value: Any) -> Any:
        return _decode_availability(value)

    @field_validator('availability')
    @classmethod
    def validate_windows(cls, value: list[DayAvailability]) -> list[DayAvailability]:
        return _check_windows(value)


class UpdateScheduleRequest(BaseModel):
    availability: list[DayAvailability]

    @field_validator('availability', mode='before')
    @classmethod
    def decode_availability(cls, value: Any) -> Any:
        return _decode_availability(value)

    @field_validator('availability')
    @classmethod
    def validate_windows(cls, value: list[DayAvailability]) -> list[DayAvailability]:
        return _check_windows(value)


class ScheduleResponse(BaseModel):
    id: int
    user_id: str
    availability: list[DayAvailability]


def to_schedule_response(schedule: Schedule) -> ScheduleResponse:
    try:
        availability = parse_weekly_availability(schedule.availability)
    except AvailabilityFormatError as exc:
        logger.warning('Stored availability for user %s could not be parsed.', schedule.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to parse availability data',
        ) from exc

    return ScheduleResponse(id=schedule.id, user_id=schedule.user_id, availability=availability)


def get_schedule_or_404(user_id: str, db: Session) -> Schedule:
    schedule = db.query(Schedule).filter(Schedule.user_id == user_id).first()
    if schedule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Schedule not found')
    return schedule


@router.get('', response_model=list[ScheduleResponse])
def list_my_schedules(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        schedules = db.query(Schedule).filter(Schedule.user_id == current_user.id).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc

    return [to_schedule_response(schedule) for schedule in schedules]


@router.get('/{user_id}', response_model=ScheduleResponse)
def get_schedule(user_id: str, db: Session = Depends(get_db)):
    try:
        schedule = get_schedule_or_404(user_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc

    return to_schedule_response(schedule)


@router.post('', response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(
    data: CreateScheduleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_owner(current_user, data.user_id, 'You can only create schedules for yourself')

    try:
        if db.query(Schedule).filter(Schedule.user_id == data.user_id).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Schedule already exists. Update it instead.',
            )

        schedule = Schedule(
            user_id=data.user_id,
            availability=serialize_weekly_availability(data.availability),
        )
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc

    return ScheduleResponse(id=schedule.id, user_id=schedule.user_id, availability=data.availability)


@router.patch('/{user_id}', response_model=ScheduleResponse)
def update_schedule(
    user_id: str,
    data: UpdateScheduleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_owner(current_user, user_id)

    try:
        schedule = get_schedule_or_404(user_id, db)
        schedule.availability = serialize_weekly_availability(data.availability)
        db.commit()
        db.refresh(schedule)
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc

    return ScheduleResponse(id=schedule.id, user_id=schedule.user_id, availability=data.availability)


@router.delete('/{user_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ensure_owner(current_user, user_id)

    try:
        schedule = get_schedule_or_404(user_id, db)
        db.delete(schedule)
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
