"""
Recurrence Expansion Engine.

Turns a stored series definition into the dates it is active on within a
window. Expansion is a pure function of the series fields and the window:
nothing is read from or written to the database here, and calling it twice
yields the same dates.

Every recurrence type is first intersected with the series' own range
[start_date, end_date or forever] and then clipped to the window, so a series
that starts after the window or ends before it yields nothing.
"""
import calendar
from datetime import date, timedelta
from enum import Enum
from typing import Iterator, Optional, Tuple

from dateutil.relativedelta import relativedelta

from plotter.data.entries.models import RecurrenceType


class ShortMonthPolicy(str, Enum):
    """What a monthly series does when its day does not exist in a month."""
    SKIP = "skip"    # no occurrence that month
    CLAMP = "clamp"  # occurrence on the month's last day


def sunday_based_weekday(day: date) -> int:
    """Weekday number with 0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


def effective_window(series, window_from: date, window_to: date) -> Optional[Tuple[date, date]]:
    """
    Intersect the series range with the query window.

    Returns (first, last) inclusive bounds, or None when they do not overlap.
    """
    first = max(window_from, series.start_date)
    last = window_to if series.end_date is None else min(window_to, series.end_date)
    if first > last:
        return None
    return first, last


def expand(
    series,
    window_from: date,
    window_to: date,
    short_month_policy: ShortMonthPolicy = ShortMonthPolicy.SKIP,
) -> Iterator[date]:
    """
    Lazily yield the dates a series is active on within [window_from, window_to].

    Args:
        series: An EntrySeries (or anything exposing its recurrence fields)
        window_from: First date of the window, inclusive
        window_to: Last date of the window, inclusive
        short_month_policy: Monthly behaviour when day_of_month exceeds the month length

    Yields:
        Strictly increasing dates
    """
    bounds = effective_window(series, window_from, window_to)
    if bounds is None:
        return
    first, last = bounds

    recurrence = RecurrenceType(series.recurrence_type)

    if recurrence == RecurrenceType.ONE_TIME:
        yield from _expand_one_time(series, first, last)
    elif recurrence == RecurrenceType.WEEKLY:
        yield from _expand_weekly(series, first, last)
    elif recurrence == RecurrenceType.MONTHLY:
        yield from _expand_monthly(series, first, last, ShortMonthPolicy(short_month_policy))


def _expand_one_time(series, first: date, last: date) -> Iterator[date]:
    if first <= series.start_date <= last:
        yield series.start_date


def _expand_weekly(series, first: date, last: date) -> Iterator[date]:
    # Occurrences are start_date + 7k; weekday was checked against start_date
    # when the series was written, so it is not re-derived here.
    offset_days = (first - series.start_date).days
    weeks_to_skip = -(-offset_days // 7)  # ceil for offset_days >= 0
    current = series.start_date + timedelta(weeks=weeks_to_skip)

    while current <= last:
        yield current
        current += timedelta(weeks=1)


def _expand_monthly(series, first: date, last: date, policy: ShortMonthPolicy) -> Iterator[date]:
    day_of_month = series.day_of_month
    current_month = first.replace(day=1)

    while current_month <= last:
        occurrence = monthly_occurrence(current_month.year, current_month.month, day_of_month, policy)
        if occurrence is not None and first <= occurrence <= last:
            yield occurrence
        current_month += relativedelta(months=1)


def monthly_occurrence(year: int, month: int, day_of_month: int, policy: ShortMonthPolicy) -> Optional[date]:
    """The occurrence date for one month, or None when the policy skips it."""
    days_in_month = calendar.monthrange(year, month)[1]
    if day_of_month > days_in_month:
        if policy == ShortMonthPolicy.SKIP:
            return None
        return date(year, month, days_in_month)
    return date(year, month, day_of_month)
