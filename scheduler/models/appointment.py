"""Appointment model definitions."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String
from scheduler.core.statuses import AppointmentStatus
from scheduler.database import Base


class Appointment(Base):
    """Represents an invitee's booking on a host's calendar."""
    __tablename__ = "appointments"

    id = Column(String, primary_key=True, default=lambda: uuid4().hex)
    event_id = Column(String, ForeignKey("events.id"), nullable=False)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    invitee_email = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False)  # naive UTC
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.SCHEDULED.value)
