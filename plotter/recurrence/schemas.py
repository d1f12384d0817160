"""Pydantic schemas for expanded occurrences."""
from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from plotter.data.entries.models import EntryType, ExceptionType
from plotter.data.entries.schemas import Pagination
from plotter.recurrence.overlay import Occurrence


class OccurrenceResponse(BaseModel):
    """A dated occurrence of a series; is_exception marks overridden values."""
    occurrence_id: str
    series_id: str
    entry_type: EntryType
    title: str
    description: Optional[str] = None
    amount: Decimal
    occurrence_date: date
    is_exception: bool = False
    exception_type: Optional[ExceptionType] = None

    @classmethod
    def from_occurrence(cls, occ: Occurrence) -> "OccurrenceResponse":
        return cls(
            occurrence_id=occ.occurrence_id,
            series_id=occ.series_id,
            entry_type=occ.entry_type,
            title=occ.title,
            description=occ.description,
            amount=occ.amount,
            occurrence_date=occ.occurrence_date,
            is_exception=occ.is_exception,
            exception_type=occ.exception_type,
        )


class OccurrenceListResponse(BaseModel):
    data: List[OccurrenceResponse]
    pagination: Pagination


class EntryOccurrencesResponse(BaseModel):
    series_id: str
    data: List[OccurrenceResponse]
