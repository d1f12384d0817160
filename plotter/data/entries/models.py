"""Entry series and series exception models."""
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from plotter.database import Base
from plotter.data.base import generate_id


class EntryType(str, Enum):
    """Direction of the money flow."""
    INCOME = "income"
    EXPENSE = "expense"


class RecurrenceType(str, Enum):
    """How a series repeats."""
    ONE_TIME = "one_time"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ExceptionType(str, Enum):
    """Per-date deviation from a generated occurrence."""
    OVERRIDE = "override"
    SKIP = "skip"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class EntrySeries(Base):
    """
    Entry Series - a one-time or recurring income/expense template.

    Occurrences are never stored; they are expanded from this row on every
    query. A "this and future" edit truncates the series and inserts a
    successor whose parent_series_id points back here, so a lineage is a
    forward-in-time chain of ids.
    """

    __tablename__ = "entry_series"

    id = Column(String, primary_key=True, default=lambda: generate_id("ser"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_series_id = Column(String, ForeignKey("entry_series.id", ondelete="SET NULL"), nullable=True)

    entry_type = Column(SQLEnum(EntryType, name="entry_type", values_callable=_enum_values), nullable=False)
    recurrence_type = Column(
        SQLEnum(RecurrenceType, name="recurrence_type", values_callable=_enum_values),
        nullable=False,
    )

    title = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(precision=12, scale=2), nullable=False)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # Null = ongoing

    # 0=Sunday .. 6=Saturday, weekly only
    weekday = Column(Integer, nullable=True)
    # 1..31, monthly only
    day_of_month = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    exceptions = relationship(
        "SeriesException",
        back_populates="series",
        cascade="all, delete-orphan",
        order_by="SeriesException.exception_date",
    )

    __table_args__ = (
        CheckConstraint("length(title) > 0 AND length(title) <= 120", name="ck_entry_series_title"),
        CheckConstraint(
            "description IS NULL OR length(description) <= 500",
            name="ck_entry_series_description",
        ),
        CheckConstraint("amount > 0", name="ck_entry_series_amount"),
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_entry_series_date_range"),
        CheckConstraint("weekday IS NULL OR (weekday >= 0 AND weekday <= 6)", name="ck_entry_series_weekday"),
        CheckConstraint(
            "day_of_month IS NULL OR (day_of_month >= 1 AND day_of_month <= 31)",
            name="ck_entry_series_day_of_month",
        ),
        CheckConstraint(
            "recurrence_type != 'one_time' OR (weekday IS NULL AND day_of_month IS NULL)",
            name="recurrence_fields_one_time",
        ),
        CheckConstraint(
            "recurrence_type != 'weekly' OR (weekday IS NOT NULL AND day_of_month IS NULL)",
            name="recurrence_fields_weekly",
        ),
        CheckConstraint(
            "recurrence_type != 'monthly' OR (weekday IS NULL AND day_of_month IS NOT NULL)",
            name="recurrence_fields_monthly",
        ),
        Index("ix_entry_series_user_start", "user_id", "start_date"),
        Index("ix_entry_series_parent", "parent_series_id"),
    )

    def covers(self, day) -> bool:
        """True when day lies within [start_date, end_date or forever]."""
        if day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date


class SeriesException(Base):
    """
    Series Exception - overrides or skips one generated occurrence.

    Override rows carry replacement title/description/amount; skip rows
    carry none. Entry type and dates are never overridden.
    """

    __tablename__ = "series_exceptions"

    id = Column(String, primary_key=True, default=lambda: generate_id("exc"))
    series_id = Column(String, ForeignKey("entry_series.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    exception_date = Column(Date, nullable=False)
    exception_type = Column(
        SQLEnum(ExceptionType, name="exception_type", values_callable=_enum_values),
        nullable=False,
    )

    # Override values
    title = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(precision=12, scale=2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    series = relationship("EntrySeries", back_populates="exceptions")

    __table_args__ = (
        UniqueConstraint("series_id", "exception_date", name="unique_series_exception"),
        CheckConstraint(
            "exception_type != 'override' OR (title IS NOT NULL AND amount IS NOT NULL)",
            name="override_requires_fields",
        ),
        CheckConstraint(
            "exception_type != 'skip' OR (title IS NULL AND description IS NULL AND amount IS NULL)",
            name="skip_no_override_fields",
        ),
        CheckConstraint("amount IS NULL OR amount > 0", name="ck_series_exceptions_amount"),
        Index("ix_series_exceptions_series_date", "series_id", "exception_date"),
    )
