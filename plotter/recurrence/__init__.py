"""Recurrence expansion and exception overlay."""
from plotter.recurrence.expansion import ShortMonthPolicy, expand, sunday_based_weekday
from plotter.recurrence.overlay import Occurrence, apply_exceptions, merge_occurrences, occurrence_id

__all__ = [
    "ShortMonthPolicy",
    "expand",
    "sunday_based_weekday",
    "Occurrence",
    "apply_exceptions",
    "merge_occurrences",
    "occurrence_id",
]
