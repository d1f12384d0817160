"""Pydantic schemas for entry series commands and responses."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from plotter.data.entries.models import EntryType, ExceptionType, RecurrenceType
from plotter.mutations.scopes import Scope
from plotter.recurrence.expansion import sunday_based_weekday


class FieldConsistencyError(ValueError):
    """Cross-field validation failure attributed to a single field."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


# ============================================
# Commands
# ============================================

class EntryCommand(BaseModel):
    """
    Shared body of CreateEntryCommand and UpdateEntryCommand.

    Recurrence fields must match recurrence_type: one_time has neither
    weekday nor day_of_month, weekly has only weekday (equal to start_date's
    weekday, 0=Sunday), monthly has only day_of_month.
    """
    entry_type: EntryType
    recurrence_type: RecurrenceType
    title: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    start_date: date
    end_date: Optional[date] = None
    weekday: Optional[int] = Field(None, ge=0, le=6, description="0=Sunday .. 6=Saturday")
    day_of_month: Optional[int] = Field(None, ge=1, le=31)

    @model_validator(mode="after")
    def check_consistency(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise FieldConsistencyError(
                "end_date", "end_date must be greater than or equal to start_date"
            )

        has_weekday = self.weekday is not None
        has_day = self.day_of_month is not None
        valid = {
            RecurrenceType.ONE_TIME: not has_weekday and not has_day,
            RecurrenceType.WEEKLY: has_weekday and not has_day,
            RecurrenceType.MONTHLY: has_day and not has_weekday,
        }[self.recurrence_type]
        if not valid:
            raise FieldConsistencyError(
                "recurrence_type",
                "Recurrence type requires specific weekday or day_of_month configuration",
            )

        if self.recurrence_type == RecurrenceType.WEEKLY and self.weekday != sunday_based_weekday(self.start_date):
            raise FieldConsistencyError("weekday", "weekday must match the weekday of start_date")

        return self

    def series_fields(self) -> dict:
        """Column values for an EntrySeries row."""
        return self.model_dump()


class CreateEntryCommand(EntryCommand):
    """Schema for creating an entry series."""


class UpdateEntryCommand(EntryCommand):
    """Schema for editing an entry series (any scope)."""


# ============================================
# Responses
# ============================================

class Pagination(BaseModel):
    total: int
    limit: int
    offset: int


class EntrySeriesResponse(BaseModel):
    """Schema for entry series responses."""
    id: str
    user_id: str
    parent_series_id: Optional[str] = None
    entry_type: EntryType
    recurrence_type: RecurrenceType
    title: str
    description: Optional[str] = None
    amount: Decimal
    start_date: date
    end_date: Optional[date] = None
    weekday: Optional[int] = None
    day_of_month: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SeriesExceptionResponse(BaseModel):
    """Schema for series exception responses."""
    id: str
    series_id: str
    exception_date: date
    exception_type: ExceptionType
    title: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EntrySeriesDetail(EntrySeriesResponse):
    """Series with its exceptions and the ids of its ancestors (nearest first)."""
    exceptions: List[SeriesExceptionResponse] = []
    lineage: List[str] = []


class EntryListResponse(BaseModel):
    data: List[EntrySeriesResponse]
    pagination: Pagination


class OccurrenceEditResponse(BaseModel):
    exception: SeriesExceptionResponse


class OriginalSeriesSummary(BaseModel):
    id: str
    end_date: date
    updated_at: datetime

    model_config = {"from_attributes": True}


class FutureEditResponse(BaseModel):
    original_series: OriginalSeriesSummary
    new_series: EntrySeriesResponse


class DeleteAffected(BaseModel):
    series_deleted: bool
    exception_created: bool


class DeleteEntryResponse(BaseModel):
    message: str
    scope: Scope
    affected: DeleteAffected


# ============================================
# Query parameters
# ============================================

class EntryListParams(BaseModel):
    """Filters, sorting and pagination for GET /entries."""
    entry_type: Optional[EntryType] = None
    recurrence_type: Optional[RecurrenceType] = None
    start_date_from: Optional[date] = None
    start_date_to: Optional[date] = None
    sort_by: Optional[Literal["start_date", "created_at", "amount"]] = None
    sort_order: Literal["asc", "desc"] = "asc"
    limit: int = Field(50, ge=1, le=100)
    offset: int = Field(0, ge=0)
