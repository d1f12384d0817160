"""
Mutation scopes and typed mutation results.

An edit or delete request targets one series with a Scope. The three scopes
times the two operations give six behaviours; the engine dispatches on the
Scope member, never on free-form strings.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Union

from plotter.data.entries.models import EntrySeries, SeriesException


class Scope(str, Enum):
    """Blast radius of an edit or delete."""
    OCCURRENCE = "occurrence"  # one dated occurrence
    FUTURE = "future"          # target date and everything after it
    ENTIRE = "entire"          # the whole series

    @property
    def requires_date(self) -> bool:
        return self in (Scope.OCCURRENCE, Scope.FUTURE)


@dataclass
class OccurrenceEditResult:
    """An override exception was written at the target date."""
    exception: SeriesException

    def records(self) -> List[object]:
        return [self.exception]


@dataclass
class FutureEditResult:
    """The series was split: original truncated, successor inserted."""
    original_series: EntrySeries
    new_series: EntrySeries

    def records(self) -> List[object]:
        return [self.original_series, self.new_series]


@dataclass
class EntireEditResult:
    """The series was overwritten in place."""
    series: EntrySeries

    def records(self) -> List[object]:
        return [self.series]


EditResult = Union[OccurrenceEditResult, FutureEditResult, EntireEditResult]


@dataclass
class DeleteResult:
    """Outcome of a delete at any scope."""
    scope: Scope
    series_id: str
    series_deleted: bool = False
    exception_created: bool = False
    new_end_date: Optional[date] = None
    message: str = "Entry deleted successfully"
    exception: Optional[SeriesException] = field(default=None, repr=False)

    def records(self) -> List[object]:
        return [self.exception] if self.exception is not None else []
