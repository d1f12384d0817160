"""Entries module - entry series and their per-date exceptions."""
from plotter.data.entries.models import (
    EntrySeries,
    EntryType,
    ExceptionType,
    RecurrenceType,
    SeriesException,
)

__all__ = ["EntrySeries", "EntryType", "ExceptionType", "RecurrenceType", "SeriesException"]
