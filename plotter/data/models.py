"""
Consolidated model imports.

Importing this module registers every table on Base.metadata.
"""
from plotter.data.base import generate_id
from plotter.data.users.models import User
from plotter.data.entries.models import (
    EntrySeries,
    EntryType,
    ExceptionType,
    RecurrenceType,
    SeriesException,
)
from plotter.data.balances.models import StartingBalance
from plotter.data.analytics.models import AnalyticsEvent

__all__ = [
    "generate_id",
    "User",
    "EntrySeries",
    "EntryType",
    "ExceptionType",
    "RecurrenceType",
    "SeriesException",
    "StartingBalance",
    "AnalyticsEvent",
]
