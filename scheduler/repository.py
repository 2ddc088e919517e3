from datetime import datetime
from typing import Protocol

from fastapi import Depends
from sqlalchemy.orm import Session

from scheduler.core.statuses import active_clause
from scheduler.core.timeutils import as_utc_naive
from scheduler.database import get_db
from scheduler.models.appointment import Appointment
from scheduler.models.schedule import Schedule
from scheduler.models.user import User


class SchedulingRepository(Protocol):
    """What the availability operations need from storage."""

    def get_schedule(self, user_id: str) -> Schedule | None:
        ...

    def get_host_timezone(self, user_id: str) -> str | None:
        ...

    def list_appointments_in_range(self, user_id: str, start: datetime, end: datetime) -> list[Appointment]:
        ...


class SqlAlchemyRepository:
    """SchedulingRepository over a request-scoped SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get_schedule(self, user_id: str) -> Schedule | None:
        return self.db.query(Schedule).filter(Schedule.user_id == user_id).first()

    def get_host_timezone(self, user_id: str) -> str | None:
        return self.db.query(User.timezone).filter(User.id == user_id).scalar()

    def list_appointments_in_range(self, user_id: str, start: datetime, end: datetime) -> list[Appointment]:
        # intersecting, not only fully contained
        return self.db.query(Appointment).filter(
            Appointment.user_id == user_id,
            Appointment.start_time < as_utc_naive(end),
            Appointment.end_time > as_utc_naive(start),
            active_clause(Appointment.status),
        ).order_by(Appointment.start_time.asc()).all()


def get_repository(db: Session = Depends(get_db)) -> SchedulingRepository:
    return SqlAlchemyRepository(db)
