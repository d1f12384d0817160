"""Analytics event model - append-only usage telemetry."""
from sqlalchemy import Column, DateTime, ForeignKey, Index, JSON, String
from sqlalchemy.sql import func

from plotter.database import Base
from plotter.data.base import generate_id


class AnalyticsEvent(Base):
    """One row per tracked user interaction."""

    __tablename__ = "analytics_events"

    id = Column(String, primary_key=True, default=lambda: generate_id("evt"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    event_type = Column(String, nullable=False)
    # Options: "entry_created", "entry_updated", "entry_deleted", "projection_viewed"

    event_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_analytics_events_user_type", "user_id", "event_type"),
    )
