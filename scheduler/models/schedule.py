"""Schedule model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from scheduler.database import Base


class Schedule(Base):
    """Stores a user's serialized weekly availability."""
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    availability = Column(Text)
