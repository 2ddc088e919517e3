from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import ensure_owner, get_current_user
from scheduler.database import get_db
from scheduler.models.event import Event
from scheduler.models.user import User
from scheduler.routes.common import HEX_COLOR_PATTERN, database_unavailable

router = APIRouter(tags=['events'])

COLOR_ERROR = 'Color must be a valid hex color (e.g., #FF0000)'


def _validate_color(value: str | None) -> str | None:
    if value is None:
        return None
    if not HEX_COLOR_PATTERN.match(value):
        raise ValueError(COLOR_ERROR)
    return value


class CreateEventRequest(BaseModel):
    name: str
    duration: int
    description: str | None = None
    color: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Name and duration are required.')
        return value.strip()

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value

    @field_validator('color')
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        return _validate_color(value)


class UpdateEventRequest(BaseModel):
    name: str | None = None
    duration: int | None = None
    description: str | None = None
    color: str | None = None

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value

    @field_validator('color')
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        return _validate_color(value)


class EventResponse(BaseModel):
    id: str
    user_id: str
    name: str
    duration: int
    description: str | None = None
    color: str | None = None

    class Config:
        from_attributes = True


class EventDetailResponse(EventResponse):
    is_owner: bool


def get_event_or_404(event_id: str, db: Session) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Event not found')
    return event


def get_owned_event(event_id: str, current_user: User, db: Session) -> Event:
    event = get_event_or_404(event_id, db)
    ensure_owner(current_user, event.user_id, 'You can only modify your own events')
    return event


@router.post('', response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(data: CreateEventRequest, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        event = Event(user_id=current_user.id, **data.model_dump())
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.get('', response_model=list[EventResponse])
def list_events(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return db.query(Event).filter(Event.user_id == current_user.id).order_by(Event.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.get('/{event_id}', response_model=EventDetailResponse)
def get_event(event_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        event = get_event_or_404(event_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc

    return EventDetailResponse(
        **EventResponse.model_validate(event).model_dump(),
        is_owner=event.user_id == current_user.id,
    )


@router.patch('/{event_id}', response_model=EventResponse)
def update_event(
    event_id: str,
    data: UpdateEventRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='At least one field is required')

    try:
        event = get_owned_event(event_id, current_user, db)
        for field_name, value in changes.items():
            setattr(event, field_name, value)
        db.commit()
        db.refresh(event)
        return event
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.delete('/{event_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        event = get_owned_event(event_id, current_user, db)
        db.delete(event)
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
