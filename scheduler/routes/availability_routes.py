import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.availability import TimeSlot
from scheduler.core.errors import AvailabilityFormatError, ScheduleNotFoundError, SchedulingError
from scheduler.core.timeutils import align_to, as_utc_naive
from scheduler.database import get_db
from scheduler.models.event import Event
from scheduler.repository import SchedulingRepository, get_repository
from scheduler.routes.appointment_routes import AppointmentResponse, book_appointment
from scheduler.routes.common import database_unavailable, is_valid_email
from scheduler.services import availability_service

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)


class BookingRequest(BaseModel):
    event_id: str
    invitee_email: str
    start_time: datetime

    @field_validator('invitee_email')
    @classmethod
    def validate_invitee_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not is_valid_email(normalized):
            raise ValueError('Invalid invitee email format')
        return normalized


def scheduling_error_to_http(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, ScheduleNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, AvailabilityFormatError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


def validate_range_length(start_date: datetime, end_date: datetime) -> None:
    if align_to(end_date, start_date.tzinfo) - start_date > timedelta(days=config.MAX_RANGE_DAYS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Date range can span at most {config.MAX_RANGE_DAYS} days.',
        )


@router.get('/{user_id}', response_model=list[TimeSlot])
def list_available_slots(
    user_id: str,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    available_only: bool = Query(default=False),
    repository: SchedulingRepository = Depends(get_repository),
):
    validate_range_length(start_date, end_date)

    try:
        slots = availability_service.get_available_slots(repository, user_id, start_date, end_date)
    except SchedulingError as exc:
        raise scheduling_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(None) from exc

    if available_only:
        return [slot for slot in slots if slot.available]
    return slots


@router.post('/{user_id}/bookings', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    user_id: str,
    data: BookingRequest,
    repository: SchedulingRepository = Depends(get_repository),
    db: Session = Depends(get_db),
):
    try:
        event = db.query(Event).filter(Event.id == data.event_id, Event.user_id == user_id).first()
        if event is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Event not found')

        if not availability_service.is_time_open(repository, user_id, data.start_time, event.duration):
            logger.info('Rejected booking for user %s at %s: time is not open.', user_id, data.start_time.isoformat())
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Requested time is not available.')

        end_time = data.start_time + timedelta(minutes=event.duration)
        return book_appointment(
            db,
            host_id=user_id,
            event_id=event.id,
            invitee_email=data.invitee_email,
            start_time=as_utc_naive(data.start_time),
            end_time=as_utc_naive(end_time),
        )
    except SchedulingError as exc:
        raise scheduling_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc
