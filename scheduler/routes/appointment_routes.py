import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import ensure_owner, get_current_user
from scheduler.core.statuses import AppointmentStatus, active_clause, canceled_clause, is_canceled, normalize_status
from scheduler.core.timeutils import as_utc_naive
from scheduler.database import get_db
from scheduler.models.appointment import Appointment
from scheduler.models.event import Event
from scheduler.models.user import User
from scheduler.routes.common import PageParams, Pagination, database_unavailable, is_valid_email

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)


def _validate_invitee_email(value: str) -> str:
    normalized = value.strip().lower()
    if not is_valid_email(normalized):
        raise ValueError('Invalid invitee email format')
    return normalized


def _validate_status(value: str) -> str:
    try:
        return normalize_status(value).value
    except ValueError as exc:
        allowed = ', '.join(member.value for member in AppointmentStatus)
        raise ValueError(f'Status must be one of: {allowed}.') from exc


class CreateAppointmentRequest(BaseModel):
    event_id: str
    invitee_email: str
    start_time: datetime
    end_time: datetime

    @field_validator('invitee_email')
    @classmethod
    def validate_invitee_email(cls, value: str) -> str:
        return _validate_invitee_email(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def store_as_utc(cls, value: datetime) -> datetime:
        return as_utc_naive(value)

    @model_validator(mode='after')
    def validate_time_range(self) -> 'CreateAppointmentRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Appointment must end after it starts.')
        return self


class UpdateAppointmentRequest(BaseModel):
    event_id: str | None = None
    invitee_email: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: str | None = None

    @field_validator('invitee_email')
    @classmethod
    def validate_invitee_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _validate_invitee_email(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def store_as_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return as_utc_naive(value)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _validate_status(value)


class AppointmentResponse(BaseModel):
    id: str
    event_id: str
    user_id: str
    invitee_email: str
    start_time: datetime
    end_time: datetime
    status: str

    class Config:
        from_attributes = True


class AppointmentPageResponse(BaseModel):
    data: list[AppointmentResponse]
    pagination: Pagination


def find_conflicting_appointment(
    db: Session,
    user_id: str,
    start_time: datetime,
    end_time: datetime,
    exclude_id: str | None = None,
) -> Appointment | None:
    query = db.query(Appointment).filter(
        Appointment.user_id == user_id,
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
        active_clause(Appointment.status),
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return query.first()


def get_owned_appointment(appointment_id: str, current_user: User, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found')
    ensure_owner(current_user, appointment.user_id, 'You can only modify your own appointments')
    return appointment


def book_appointment(
    db: Session,
    host_id: str,
    event_id: str,
    invitee_email: str,
    start_time: datetime,
    end_time: datetime,
) -> Appointment:
    """Insert a scheduled appointment after checking the event and the host's calendar."""
    event = db.query(Event).filter(Event.id == event_id, Event.user_id == host_id).first()
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Event not found or access denied')

    if find_conflicting_appointment(db, host_id, start_time, end_time):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='This time is already booked.')

    appointment = Appointment(
        event_id=event_id,
        user_id=host_id,
        invitee_email=invitee_email,
        start_time=start_time,
        end_time=end_time,
        status=AppointmentStatus.SCHEDULED.value,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    logger.info('Booked appointment %s for user %s at %s.', appointment.id, host_id, start_time.isoformat())
    return appointment


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return book_appointment(
            db,
            host_id=current_user.id,
            event_id=data.event_id,
            invitee_email=data.invitee_email,
            start_time=data.start_time,
            end_time=data.end_time,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.get('', response_model=AppointmentPageResponse)
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    paging: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Appointment).filter(Appointment.user_id == current_user.id)

    if status_filter:
        try:
            normalized = normalize_status(status_filter)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid status filter.') from exc
        if normalized is AppointmentStatus.CANCELED:
            query = query.filter(canceled_clause(Appointment.status))
        else:
            query = query.filter(Appointment.status == normalized.value)

    try:
        total = query.with_entities(func.count(Appointment.id)).scalar()
        appointments = query.order_by(Appointment.start_time.desc()).offset(paging.offset).limit(paging.page_size).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc

    return AppointmentPageResponse(
        data=[AppointmentResponse.model_validate(appointment) for appointment in appointments],
        pagination=paging.describe(total),
    )


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(appointment_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.user_id == current_user.id,
        ).first()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc

    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found')
    return appointment


@router.patch('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='At least one field is required')

    try:
        appointment = get_owned_appointment(appointment_id, current_user, db)

        start_time = changes.get('start_time', appointment.start_time)
        end_time = changes.get('end_time', appointment.end_time)
        if start_time >= end_time:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Appointment must end after it starts.')

        if 'event_id' in changes:
            event = db.query(Event).filter(Event.id == changes['event_id'], Event.user_id == current_user.id).first()
            if event is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Event not found or access denied')

        resulting_status = changes.get('status', appointment.status)
        moved = 'start_time' in changes or 'end_time' in changes
        reopened = 'status' in changes and is_canceled(appointment.status)
        if (moved or reopened) and not is_canceled(resulting_status):
            if find_conflicting_appointment(db, current_user.id, start_time, end_time, exclude_id=appointment.id):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='This time is already booked.')

        for field_name, value in changes.items():
            setattr(appointment, field_name, value)
        db.commit()
        db.refresh(appointment)
        return appointment
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        appointment = get_owned_appointment(appointment_id, current_user, db)
        db.delete(appointment)
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
