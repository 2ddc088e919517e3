from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import ensure_owner, get_current_user
from scheduler.auth.tokens import hash_password
from scheduler.core.timeutils import load_zone
from scheduler.database import get_db
from scheduler.models.appointment import Appointment
from scheduler.models.event import Event
from scheduler.models.schedule import Schedule
from scheduler.models.user import User
from scheduler.routes.common import PageParams, Pagination, database_unavailable, normalize_email

router = APIRouter(tags=['users'])


def check_timezone(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    load_zone(value)
    return value


class CreateUserRequest(BaseModel):
    name: str
    email: str
    password: str
    timezone: str | None = None

    @field_validator('name', 'password')
    @classmethod
    def validate_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Name, email, and password are required.')
        return value.strip()

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        return check_timezone(value)


class UpdateUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    timezone: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_email(value)

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        return check_timezone(value)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    timezone: str | None = None

    class Config:
        from_attributes = True


class UserPageResponse(BaseModel):
    data: list[UserResponse]
    pagination: Pagination


def get_user_or_404(user_id: str, db: Session) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found')
    return user


@router.post('', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(data: CreateUserRequest, db: Session = Depends(get_db)):
    try:
        if db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already in use')

        user = User(
            name=data.name,
            email=data.email,
            hashed_password=hash_password(data.password),
            timezone=data.timezone,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already in use') from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.get('', response_model=UserPageResponse)
def list_users(
    paging: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    try:
        total = db.query(func.count(User.id)).scalar()
        users = db.query(User).order_by(User.email.asc()).offset(paging.offset).limit(paging.page_size).all()
        return UserPageResponse(
            data=[UserResponse.model_validate(user) for user in users],
            pagination=paging.describe(total),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.get('/{user_id}', response_model=UserResponse)
def get_user(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    del current_user
    try:
        return get_user_or_404(user_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.patch('/{user_id}', response_model=UserResponse)
def update_user(
    user_id: str,
    data: UpdateUserRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_owner(current_user, user_id)

    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='At least one field is required')

    try:
        user = get_user_or_404(user_id, db)
        if 'email' in changes and changes['email'] != user.email:
            if db.query(User).filter(User.email == changes['email']).first():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already in use')

        password = changes.pop('password', None)
        if password:
            user.hashed_password = hash_password(password)
        for field_name, value in changes.items():
            setattr(user, field_name, value)

        db.commit()
        db.refresh(user)
        return user
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.delete('/{user_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ensure_owner(current_user, user_id)

    try:
        user = get_user_or_404(user_id, db)
        db.query(Appointment).filter(Appointment.user_id == user_id).delete(synchronize_session=False)
        db.query(Event).filter(Event.user_id == user_id).delete(synchronize_session=False)
        db.query(Schedule).filter(Schedule.user_id == user_id).delete(synchronize_session=False)
        db.delete(user)
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
