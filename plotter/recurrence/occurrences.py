"""
Occurrence Service - expands a user's stored series into occurrences.

Reads are pure functions of persisted state: series rows and their
exceptions are loaded, expanded and overlaid in-process, and nothing is
written back.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.config import settings
from plotter.data.entries.models import EntrySeries, EntryType, SeriesException
from plotter.errors import EntryValidationError, NotFoundError
from plotter.recurrence.expansion import ShortMonthPolicy, expand
from plotter.recurrence.overlay import Occurrence, apply_exceptions, merge_occurrences


def validate_window(from_date: date, to_date: date, max_range_days: Optional[int] = None) -> None:
    """Reject inverted windows and windows longer than the configured maximum."""
    if max_range_days is None:
        max_range_days = settings.OCCURRENCE_MAX_RANGE_DAYS

    if to_date < from_date:
        raise EntryValidationError.for_field(
            "to_date", "to_date must be greater than or equal to from_date"
        )
    if (to_date - from_date).days > max_range_days:
        raise EntryValidationError.for_field(
            "date_range", f"Date range cannot exceed 10 years ({max_range_days} days)"
        )


@dataclass
class OccurrenceTotals:
    """Income and expense sums over a date range."""
    total_income: Decimal
    total_expense: Decimal

    @property
    def net_change(self) -> Decimal:
        return self.total_income - self.total_expense


def sum_occurrences(occurrences: Sequence[Occurrence]) -> OccurrenceTotals:
    """Accumulate income and expense separately in Decimal."""
    total_income = Decimal("0")
    total_expense = Decimal("0")
    for occ in occurrences:
        if occ.entry_type == EntryType.INCOME:
            total_income += occ.amount
        else:
            total_expense += occ.amount
    return OccurrenceTotals(total_income=total_income, total_expense=total_expense)


class OccurrenceService:
    """
    Service for expanding series into occurrences.

    Usage:
        service = OccurrenceService(db)
        page, total = await service.list_for_user(user_id, date(2025, 1, 1), date(2025, 12, 31))
    """

    def __init__(self, db: AsyncSession, short_month_policy: Optional[ShortMonthPolicy] = None):
        self.db = db
        self.short_month_policy = ShortMonthPolicy(
            short_month_policy or settings.MONTHLY_SHORT_MONTH_POLICY
        )

    # ==========================================================================
    # Loading
    # ==========================================================================

    async def _load_series(
        self,
        user_id: str,
        from_date: date,
        to_date: date,
        series_id: Optional[str] = None,
    ) -> List[EntrySeries]:
        """Series whose range overlaps the window."""
        query = select(EntrySeries).where(
            and_(
                EntrySeries.user_id == user_id,
                EntrySeries.start_date <= to_date,
                or_(EntrySeries.end_date.is_(None), EntrySeries.end_date >= from_date),
            )
        )
        if series_id is not None:
            query = query.where(EntrySeries.id == series_id)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _load_exceptions(
        self,
        series_ids: List[str],
        from_date: date,
        to_date: date,
    ) -> Dict[str, List[SeriesException]]:
        """Exceptions inside the window, grouped by series id."""
        grouped: Dict[str, List[SeriesException]] = defaultdict(list)
        if not series_ids:
            return grouped

        result = await self.db.execute(
            select(SeriesException).where(
                and_(
                    SeriesException.series_id.in_(series_ids),
                    SeriesException.exception_date >= from_date,
                    SeriesException.exception_date <= to_date,
                )
            )
        )
        for exc in result.scalars().all():
            grouped[exc.series_id].append(exc)
        return grouped

    # ==========================================================================
    # Expansion
    # ==========================================================================

    def expand_series(
        self,
        series: EntrySeries,
        exceptions: Sequence[SeriesException],
        from_date: date,
        to_date: date,
    ) -> List[Occurrence]:
        raw_dates = expand(series, from_date, to_date, self.short_month_policy)
        return apply_exceptions(series, raw_dates, exceptions)

    async def expand_for_user(self, user_id: str, from_date: date, to_date: date) -> List[Occurrence]:
        """All occurrences of all the user's series in the window, ordered by (date, series_id)."""
        series_list = await self._load_series(user_id, from_date, to_date)
        exceptions = await self._load_exceptions([s.id for s in series_list], from_date, to_date)

        return merge_occurrences(
            self.expand_series(series, exceptions.get(series.id, []), from_date, to_date)
            for series in series_list
        )

    async def list_for_user(
        self,
        user_id: str,
        from_date: date,
        to_date: date,
        entry_type: Optional[EntryType] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Occurrence], int]:
        """
        Paginated occurrences for the user.

        The entry type filter is applied before pagination; the returned total
        counts filtered occurrences.
        """
        if limit is None:
            limit = settings.OCCURRENCE_PAGE_DEFAULT

        occurrences = await self.expand_for_user(user_id, from_date, to_date)
        if entry_type is not None:
            occurrences = [occ for occ in occurrences if occ.entry_type == entry_type]

        total = len(occurrences)
        return occurrences[offset:offset + limit], total

    async def list_for_series(
        self,
        user_id: str,
        series_id: str,
        from_date: date,
        to_date: date,
    ) -> List[Occurrence]:
        """Occurrences of one series; raises NotFoundError if the user does not own it."""
        result = await self.db.execute(
            select(EntrySeries).where(
                EntrySeries.id == series_id,
                EntrySeries.user_id == user_id,
            )
        )
        series = result.scalar_one_or_none()
        if series is None:
            raise NotFoundError(f"Entry series with id {series_id} not found")

        exceptions = await self._load_exceptions([series.id], from_date, to_date)
        return self.expand_series(series, exceptions.get(series.id, []), from_date, to_date)


async def aggregate_totals(
    db: AsyncSession,
    user_id: str,
    from_date: date,
    to_date: date,
) -> OccurrenceTotals:
    """
    Income and expense totals of every occurrence in [from_date, to_date].

    This is the aggregation collaborator used by the projection calculator.
    """
    occurrences = await OccurrenceService(db).expand_for_user(user_id, from_date, to_date)
    return sum_occurrences(occurrences)
