"""
Exception Overlay.

Merges per-date skips and overrides into the raw dates produced by the
expansion engine, producing the final Occurrences shown to users and summed
by projections.
"""
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from plotter.data.entries.models import EntryType, ExceptionType

# uuid5 over the DNS namespace; ids are a pure function of (series_id, date)
OCCURRENCE_NAMESPACE = uuid.NAMESPACE_DNS


def occurrence_id(series_id: str, occurrence_date: date) -> str:
    """Deterministic id for the occurrence of a series on a date."""
    return str(uuid.uuid5(OCCURRENCE_NAMESPACE, f"{series_id}|{occurrence_date.isoformat()}"))


@dataclass(frozen=True)
class Occurrence:
    """
    A concrete dated instance of a series (computed, not stored).
    """
    occurrence_id: str
    series_id: str
    entry_type: EntryType
    title: str
    description: Optional[str]
    amount: Decimal
    occurrence_date: date
    exception_type: Optional[ExceptionType] = None  # set when an override was applied

    @property
    def is_exception(self) -> bool:
        return self.exception_type is not None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with expenses negative."""
        if EntryType(self.entry_type) == EntryType.EXPENSE:
            return -self.amount
        return self.amount


def index_exceptions(exceptions: Iterable) -> Dict[date, object]:
    """Key a series' exceptions by date (at most one per date)."""
    return {exc.exception_date: exc for exc in exceptions}


def apply_exceptions(series, raw_dates: Iterable[date], exceptions: Iterable = ()) -> List[Occurrence]:
    """
    Build Occurrences for one series.

    - skip: the date is dropped
    - override: title/description/amount come from the exception; a missing
      description falls back to the series description
    - none: the series' own values are used verbatim

    Entry type and the date itself are never overridden.
    """
    by_date = index_exceptions(exceptions)
    occurrences = []

    for day in raw_dates:
        exc = by_date.get(day)

        if exc is not None and ExceptionType(exc.exception_type) == ExceptionType.SKIP:
            continue

        if exc is not None:
            occurrences.append(Occurrence(
                occurrence_id=occurrence_id(series.id, day),
                series_id=series.id,
                entry_type=EntryType(series.entry_type),
                title=exc.title,
                description=exc.description if exc.description is not None else series.description,
                amount=Decimal(exc.amount),
                occurrence_date=day,
                exception_type=ExceptionType.OVERRIDE,
            ))
        else:
            occurrences.append(Occurrence(
                occurrence_id=occurrence_id(series.id, day),
                series_id=series.id,
                entry_type=EntryType(series.entry_type),
                title=series.title,
                description=series.description,
                amount=Decimal(series.amount),
                occurrence_date=day,
            ))

    return occurrences


def merge_occurrences(per_series: Iterable[Iterable[Occurrence]]) -> List[Occurrence]:
    """Merge independently expanded series, ordered by (occurrence_date, series_id)."""
    merged = [occ for occurrences in per_series for occ in occurrences]
    merged.sort(key=lambda occ: (occ.occurrence_date, occ.series_id))
    return merged
