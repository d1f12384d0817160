"""User model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from plotter.database import Base
from plotter.data.base import generate_id


class User(Base):
    """User model - the owner of entries and the starting balance."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: generate_id("user"))
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
