"""Event type model definitions."""

from uuid import uuid4

from sqlalchemy import Column, ForeignKey, Integer, String
from scheduler.database import Base


class Event(Base):
    """Represents a bookable event type, e.g. a 30 minute intro call."""
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=lambda: uuid4().hex)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    description = Column(String)
    color = Column(String)
