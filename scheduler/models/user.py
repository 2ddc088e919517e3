"""User model definitions."""

from uuid import uuid4

from sqlalchemy import Column, String
from scheduler.database import Base


class User(Base):
    """Represents a host who publishes events and takes appointments."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: uuid4().hex)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    timezone = Column(String)
    token = Column(String, index=True)  # active session bearer token
