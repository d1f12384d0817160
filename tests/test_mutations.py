"""
Tests for the Scoped Mutation Engine.

Runs against the in-memory SQLite database so the unit of work, cascades
and uniqueness constraints are exercised for real.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy import select

from plotter.data.entries.schemas import UpdateEntryCommand
from plotter.data.models import (
    AnalyticsEvent,
    EntrySeries,
    EntryType,
    ExceptionType,
    RecurrenceType,
    SeriesException,
)
from plotter.errors import ConflictError, EntryValidationError, NotFoundError
from plotter.mutations.engine import SeriesMutationEngine, SeriesUnitOfWork
from plotter.mutations.scopes import (
    EntireEditResult,
    FutureEditResult,
    OccurrenceEditResult,
    Scope,
)
from plotter.recurrence.occurrences import OccurrenceService


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def engine_for(db, user):
    return SeriesMutationEngine(db, user.id)


def weekly_command(start: date, amount="500.00", **fields) -> UpdateEntryCommand:
    values = {
        "entry_type": EntryType.INCOME,
        "recurrence_type": RecurrenceType.WEEKLY,
        "title": "Freelance",
        "amount": Decimal(amount),
        "start_date": start,
        "weekday": start.isoweekday() % 7,
    }
    values.update(fields)
    return UpdateEntryCommand(**values)


def rent_command(amount="1200.00", **fields) -> UpdateEntryCommand:
    values = {
        "entry_type": EntryType.EXPENSE,
        "recurrence_type": RecurrenceType.MONTHLY,
        "title": "Rent",
        "amount": Decimal(amount),
        "start_date": date(2025, 1, 10),
        "day_of_month": 10,
    }
    values.update(fields)
    return UpdateEntryCommand(**values)


async def occurrence_dates(db, user, from_date, to_date):
    occurrences = await OccurrenceService(db).expand_for_user(user.id, from_date, to_date)
    return [o.occurrence_date for o in occurrences]


async def exceptions_of(db, series_id):
    result = await db.execute(select(SeriesException).where(SeriesException.series_id == series_id))
    return list(result.scalars().all())


# =============================================================================
# Occurrence scope
# =============================================================================

class TestEditOccurrence:

    @pytest.mark.asyncio
    async def test_creates_single_override(self, db, user, monthly_rent, engine_for):
        """Editing one occurrence to 50 writes one override and changes that date only."""
        result = await engine_for.edit(
            monthly_rent.id, rent_command(amount="50.00"), Scope.OCCURRENCE, date(2025, 3, 10)
        )

        assert isinstance(result, OccurrenceEditResult)
        assert result.exception.exception_type == ExceptionType.OVERRIDE
        assert result.exception.amount == Decimal("50.00")

        stored = await exceptions_of(db, monthly_rent.id)
        assert len(stored) == 1

        occurrences = await OccurrenceService(db).expand_for_user(user.id, date(2025, 1, 1), date(2025, 5, 31))
        amounts = {o.occurrence_date: o.amount for o in occurrences}
        assert amounts[date(2025, 3, 10)] == Decimal("50.00")
        assert all(
            amount == Decimal("1200.00") for day, amount in amounts.items() if day != date(2025, 3, 10)
        )

    @pytest.mark.asyncio
    async def test_second_edit_replaces_first(self, db, monthly_rent, engine_for):
        await engine_for.edit(monthly_rent.id, rent_command(amount="50.00"), Scope.OCCURRENCE, date(2025, 3, 10))
        await engine_for.edit(monthly_rent.id, rent_command(amount="60.00"), Scope.OCCURRENCE, date(2025, 3, 10))

        stored = await exceptions_of(db, monthly_rent.id)
        assert len(stored) == 1
        assert stored[0].amount == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_edit_after_skip_restores_occurrence(self, db, user, monthly_rent, engine_for):
        await engine_for.delete(monthly_rent.id, Scope.OCCURRENCE, date(2025, 3, 10))
        await engine_for.edit(monthly_rent.id, rent_command(amount="70.00"), Scope.OCCURRENCE, date(2025, 3, 10))

        occurrences = await OccurrenceService(db).expand_for_user(user.id, date(2025, 3, 10), date(2025, 3, 10))
        assert [o.amount for o in occurrences] == [Decimal("70.00")]

    @pytest.mark.asyncio
    async def test_date_before_start_conflicts(self, monthly_rent, engine_for):
        with pytest.raises(ConflictError, match="outside series range"):
            await engine_for.edit(monthly_rent.id, rent_command(), Scope.OCCURRENCE, date(2024, 12, 10))

    @pytest.mark.asyncio
    async def test_date_after_end_conflicts(self, db, make_series, engine_for):
        series = await make_series(
            recurrence_type=RecurrenceType.MONTHLY,
            start_date=date(2025, 1, 10),
            end_date=date(2025, 6, 10),
            day_of_month=10,
        )

        with pytest.raises(ConflictError):
            await engine_for.edit(series.id, rent_command(), Scope.OCCURRENCE, date(2025, 7, 10))


class TestDeleteOccurrence:

    @pytest.mark.asyncio
    async def test_skip_hides_that_date_only(self, db, user, weekly_income, engine_for):
        """Deleting one occurrence leaves zero occurrences on that date and the rest untouched."""
        result = await engine_for.delete(weekly_income.id, Scope.OCCURRENCE, date(2025, 12, 17))

        assert result.exception_created is True
        assert result.series_deleted is False

        assert await occurrence_dates(db, user, date(2025, 12, 17), date(2025, 12, 17)) == []
        assert await occurrence_dates(db, user, date(2025, 12, 1), date(2025, 12, 31)) == [
            date(2025, 12, 3), date(2025, 12, 10), date(2025, 12, 24), date(2025, 12, 31),
        ]

        stored = await exceptions_of(db, weekly_income.id)
        assert [(e.exception_type, e.amount) for e in stored] == [(ExceptionType.SKIP, None)]

    @pytest.mark.asyncio
    async def test_skip_replaces_override(self, db, weekly_income, engine_for):
        await engine_for.edit(weekly_income.id, weekly_command(date(2025, 12, 3)), Scope.OCCURRENCE, date(2025, 12, 10))
        await engine_for.delete(weekly_income.id, Scope.OCCURRENCE, date(2025, 12, 10))

        stored = await exceptions_of(db, weekly_income.id)
        assert [e.exception_type for e in stored] == [ExceptionType.SKIP]


# =============================================================================
# Future scope
# =============================================================================

class TestEditFuture:

    @pytest.mark.asyncio
    async def test_split_preserves_dates(self, db, user, weekly_income, engine_for):
        """Splitting a weekly series keeps the same dates, now spread over two series."""
        window = (date(2025, 12, 3), date(2026, 3, 31))
        before = await occurrence_dates(db, user, *window)
        split_at = date(2025, 12, 17)

        result = await engine_for.edit(weekly_income.id, weekly_command(split_at), Scope.FUTURE, split_at)

        assert isinstance(result, FutureEditResult)
        assert result.original_series.end_date == split_at - timedelta(days=1)
        assert result.new_series.start_date == split_at
        assert result.new_series.parent_series_id == weekly_income.id
        assert await occurrence_dates(db, user, *window) == before

    @pytest.mark.asyncio
    async def test_new_values_apply_from_split(self, db, user, weekly_income, engine_for):
        split_at = date(2025, 12, 17)
        result = await engine_for.edit(
            weekly_income.id, weekly_command(split_at, amount="650.00"), Scope.FUTURE, split_at
        )

        occurrences = await OccurrenceService(db).expand_for_user(user.id, date(2025, 12, 1), date(2025, 12, 31))
        by_date = {o.occurrence_date: o for o in occurrences}
        assert by_date[date(2025, 12, 10)].amount == Decimal("500.00")
        assert by_date[date(2025, 12, 10)].series_id == weekly_income.id
        assert by_date[date(2025, 12, 24)].amount == Decimal("650.00")
        assert by_date[date(2025, 12, 24)].series_id == result.new_series.id

    @pytest.mark.asyncio
    async def test_payload_start_date_is_ignored(self, weekly_income, engine_for):
        split_at = date(2025, 12, 17)
        command = weekly_command(date(2025, 12, 3))

        result = await engine_for.edit(weekly_income.id, command, Scope.FUTURE, split_at)

        assert result.new_series.start_date == split_at

    @pytest.mark.asyncio
    async def test_split_at_start_date_conflicts(self, db, weekly_income, engine_for):
        with pytest.raises(ConflictError, match="start date"):
            await engine_for.edit(weekly_income.id, weekly_command(date(2025, 12, 3)), Scope.FUTURE, date(2025, 12, 3))

        await db.refresh(weekly_income)
        assert weekly_income.end_date is None

    @pytest.mark.asyncio
    async def test_successor_ending_before_split_conflicts(self, weekly_income, engine_for):
        command = weekly_command(date(2025, 12, 3), end_date=date(2025, 12, 10))

        with pytest.raises(ConflictError):
            await engine_for.edit(weekly_income.id, command, Scope.FUTURE, date(2025, 12, 17))

    @pytest.mark.asyncio
    async def test_successor_weekday_must_match_split_date(self, weekly_income, engine_for):
        # Thursday pattern, Wednesday split date
        command = weekly_command(date(2025, 12, 18))

        with pytest.raises(EntryValidationError) as exc_info:
            await engine_for.edit(weekly_income.id, command, Scope.FUTURE, date(2025, 12, 17))

        assert "weekday" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_second_split_cannot_overlap_earlier_successor(self, db, user, weekly_income, engine_for):
        """An open-ended successor from an earlier split date would run over the existing one."""
        await engine_for.edit(
            weekly_income.id, weekly_command(date(2025, 12, 17)), Scope.FUTURE, date(2025, 12, 17)
        )

        with pytest.raises(ConflictError, match="overlap"):
            await engine_for.edit(
                weekly_income.id, weekly_command(date(2025, 12, 10)), Scope.FUTURE, date(2025, 12, 10)
            )

        await db.refresh(weekly_income)
        assert weekly_income.end_date == date(2025, 12, 16)
        dates = await occurrence_dates(db, user, date(2025, 12, 1), date(2025, 12, 31))
        assert len(dates) == len(set(dates)) == 5

    @pytest.mark.asyncio
    async def test_failed_split_rolls_back_truncation(self, db, weekly_income, engine_for):
        """If inserting the successor fails, the original keeps its range."""
        split_at = date(2025, 12, 17)

        with patch.object(SeriesUnitOfWork, "add", side_effect=RuntimeError("insert failed")):
            with pytest.raises(RuntimeError):
                await engine_for.edit(weekly_income.id, weekly_command(split_at), Scope.FUTURE, split_at)

        await db.refresh(weekly_income)
        assert weekly_income.end_date is None
        result = await db.execute(select(EntrySeries).where(EntrySeries.parent_series_id == weekly_income.id))
        assert result.scalars().all() == []


class TestDeleteFuture:

    @pytest.mark.asyncio
    async def test_truncates_series(self, db, user, weekly_income, engine_for):
        result = await engine_for.delete(weekly_income.id, Scope.FUTURE, date(2025, 12, 17))

        assert result.new_end_date == date(2025, 12, 16)
        assert result.series_deleted is False
        assert result.exception_created is False
        assert await occurrence_dates(db, user, date(2025, 12, 1), date(2026, 12, 31)) == [
            date(2025, 12, 3), date(2025, 12, 10),
        ]

    @pytest.mark.asyncio
    async def test_at_start_date_conflicts(self, weekly_income, engine_for):
        with pytest.raises(ConflictError):
            await engine_for.delete(weekly_income.id, Scope.FUTURE, date(2025, 12, 3))


# =============================================================================
# Entire scope
# =============================================================================

class TestEditEntire:

    @pytest.mark.asyncio
    async def test_overwrites_series_and_keeps_exceptions(self, db, monthly_rent, engine_for):
        await engine_for.delete(monthly_rent.id, Scope.OCCURRENCE, date(2025, 2, 10))

        result = await engine_for.edit(monthly_rent.id, rent_command(amount="1300.00", title="New rent"), Scope.ENTIRE)

        assert isinstance(result, EntireEditResult)
        assert result.series.id == monthly_rent.id
        assert result.series.amount == Decimal("1300.00")
        assert result.series.title == "New rent"
        assert len(await exceptions_of(db, monthly_rent.id)) == 1

    @pytest.mark.asyncio
    async def test_date_is_not_required(self, monthly_rent, engine_for):
        result = await engine_for.edit(monthly_rent.id, rent_command(), Scope.ENTIRE, None)
        assert isinstance(result, EntireEditResult)

    @pytest.mark.asyncio
    async def test_successor_cannot_move_back_over_parent(self, db, user, weekly_income, engine_for):
        """Moving a split successor's start into its parent's range would double-count dates."""
        split_at = date(2025, 12, 17)
        split = await engine_for.edit(weekly_income.id, weekly_command(split_at), Scope.FUTURE, split_at)

        with pytest.raises(ConflictError, match="overlap"):
            await engine_for.edit(split.new_series.id, weekly_command(date(2025, 12, 3)), Scope.ENTIRE)

        dates = await occurrence_dates(db, user, date(2025, 12, 1), date(2025, 12, 31))
        assert dates == [
            date(2025, 12, 3), date(2025, 12, 10), date(2025, 12, 17),
            date(2025, 12, 24), date(2025, 12, 31),
        ]

    @pytest.mark.asyncio
    async def test_parent_cannot_reopen_over_successor(self, db, weekly_income, engine_for):
        split_at = date(2025, 12, 17)
        await engine_for.edit(weekly_income.id, weekly_command(split_at), Scope.FUTURE, split_at)

        with pytest.raises(ConflictError, match="overlap"):
            await engine_for.edit(weekly_income.id, weekly_command(date(2025, 12, 3), end_date=None), Scope.ENTIRE)

        await db.refresh(weekly_income)
        assert weekly_income.end_date == date(2025, 12, 16)

    @pytest.mark.asyncio
    async def test_linked_edit_within_own_range_succeeds(self, weekly_income, engine_for):
        split_at = date(2025, 12, 17)
        split = await engine_for.edit(weekly_income.id, weekly_command(split_at), Scope.FUTURE, split_at)

        result = await engine_for.edit(
            split.new_series.id, weekly_command(date(2025, 12, 24), amount="700.00"), Scope.ENTIRE
        )

        assert result.series.start_date == date(2025, 12, 24)
        assert result.series.amount == Decimal("700.00")


class TestDeleteEntire:

    @pytest.mark.asyncio
    async def test_removes_series_and_exceptions(self, db, user, monthly_rent, engine_for):
        await engine_for.edit(monthly_rent.id, rent_command(amount="50.00"), Scope.OCCURRENCE, date(2025, 3, 10))
        await engine_for.delete(monthly_rent.id, Scope.OCCURRENCE, date(2025, 4, 10))

        result = await engine_for.delete(monthly_rent.id, Scope.ENTIRE)

        assert result.series_deleted is True
        assert result.message == "Entry deleted successfully"
        assert await exceptions_of(db, monthly_rent.id) == []
        assert await occurrence_dates(db, user, date(2025, 1, 1), date(2025, 12, 31)) == []

    @pytest.mark.asyncio
    async def test_successor_survives_parent_deletion(self, db, weekly_income, engine_for):
        split_at = date(2025, 12, 17)
        split = await engine_for.edit(weekly_income.id, weekly_command(split_at), Scope.FUTURE, split_at)

        await engine_for.delete(weekly_income.id, Scope.ENTIRE)

        await db.refresh(split.new_series)
        assert split.new_series.parent_series_id is None


# =============================================================================
# Shared validation
# =============================================================================

class TestMutationValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("scope", [Scope.OCCURRENCE, Scope.FUTURE])
    async def test_date_required(self, monthly_rent, engine_for, scope):
        with pytest.raises(EntryValidationError) as exc_info:
            await engine_for.delete(monthly_rent.id, scope, None)

        assert "date" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_date_checked_before_lookup(self, engine_for):
        with pytest.raises(EntryValidationError):
            await engine_for.delete("ser_missing", Scope.OCCURRENCE, None)

    @pytest.mark.asyncio
    async def test_unknown_series(self, engine_for):
        with pytest.raises(NotFoundError):
            await engine_for.delete("ser_missing", Scope.ENTIRE)

    @pytest.mark.asyncio
    async def test_other_users_series_not_found(self, db, other_user, monthly_rent):
        engine = SeriesMutationEngine(db, other_user.id)

        with pytest.raises(NotFoundError):
            await engine.edit(monthly_rent.id, rent_command(), Scope.ENTIRE)

    @pytest.mark.asyncio
    async def test_scope_accepts_plain_string(self, monthly_rent, engine_for):
        result = await engine_for.delete(monthly_rent.id, "future", date(2025, 3, 10))
        assert result.scope == Scope.FUTURE


# =============================================================================
# Analytics
# =============================================================================

class TestMutationAnalytics:

    @pytest.mark.asyncio
    async def test_events_recorded(self, db, user, monthly_rent, engine_for):
        await engine_for.edit(monthly_rent.id, rent_command(amount="50.00"), Scope.OCCURRENCE, date(2025, 3, 10))
        await engine_for.delete(monthly_rent.id, Scope.ENTIRE)

        result = await db.execute(
            select(AnalyticsEvent).where(AnalyticsEvent.user_id == user.id).order_by(AnalyticsEvent.created_at)
        )
        events = {e.event_type: e.event_metadata for e in result.scalars().all()}

        assert events["entry_updated"]["edit_scope"] == "occurrence"
        assert events["entry_updated"]["recurrence_type"] == "monthly"
        assert events["entry_deleted"] == {"edit_scope": "entire"}
