"""
Scoped Mutation Engine.

Resolves "edit/delete this occurrence / this and future / the entire series"
requests against one series and its exceptions.

Every request follows the same path:

    validate scope + date
        -> lock and load the series (NotFoundError)
        -> validate target date against the series range (ConflictError)
        -> create exception | split series | update series | delete series
        -> commit once, emit a typed result

All writes of a request happen in a single SeriesUnitOfWork. A failure at
any step rolls the whole request back, so a split never leaves a truncated
original without its successor.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.data.analytics.service import log_analytics_event
from plotter.data.entries.models import EntrySeries, ExceptionType, RecurrenceType, SeriesException
from plotter.data.entries.schemas import UpdateEntryCommand
from plotter.errors import ConflictError, EntryValidationError, NotFoundError
from plotter.mutations.scopes import (
    DeleteResult,
    EditResult,
    EntireEditResult,
    FutureEditResult,
    OccurrenceEditResult,
    Scope,
)
from plotter.recurrence.expansion import sunday_based_weekday

logger = logging.getLogger(__name__)

# Fields overwritten by an entire-scope edit
MUTABLE_SERIES_FIELDS = (
    "entry_type",
    "recurrence_type",
    "title",
    "description",
    "amount",
    "start_date",
    "end_date",
    "weekday",
    "day_of_month",
)


class SeriesUnitOfWork:
    """
    One committed unit of work around a single series.

    Entering loads the series with SELECT ... FOR UPDATE, which serialises
    structural mutations of the same series on PostgreSQL. Leaving commits
    if the block succeeded and rolls back otherwise.

    Usage:
        async with SeriesUnitOfWork(db, user_id, series_id) as uow:
            uow.series.end_date = ...
            uow.add(new_series)
    """

    def __init__(self, db: AsyncSession, user_id: str, series_id: str):
        self.db = db
        self.user_id = user_id
        self.series_id = series_id
        self.series: Optional[EntrySeries] = None

    async def __aenter__(self) -> "SeriesUnitOfWork":
        try:
            result = await self.db.execute(
                select(EntrySeries)
                .where(
                    EntrySeries.id == self.series_id,
                    EntrySeries.user_id == self.user_id,
                )
                .with_for_update()
            )
            self.series = result.scalar_one_or_none()
        except Exception:
            await self.db.rollback()
            raise

        if self.series is None:
            await self.db.rollback()
            raise NotFoundError(f"Entry series with id {self.series_id} not found")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            await self.db.commit()
        else:
            await self.db.rollback()
            logger.info(
                f"Rolled back mutation of series {self.series_id} for user {self.user_id}: "
                f"{exc_type.__name__}"
            )
        return False

    def add(self, record) -> None:
        self.db.add(record)

    async def delete(self, record) -> None:
        await self.db.delete(record)

    async def flush(self) -> None:
        await self.db.flush()


class SeriesMutationEngine:
    """
    Edits and deletes entry series at occurrence, future or entire scope.

    Usage:
        engine = SeriesMutationEngine(db, user_id)
        result = await engine.edit(series_id, command, Scope.FUTURE, date(2025, 12, 17))
        result = await engine.delete(series_id, Scope.OCCURRENCE, date(2025, 12, 10))
    """

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

        self._edit_handlers = {
            Scope.OCCURRENCE: self._edit_occurrence,
            Scope.FUTURE: self._edit_future,
            Scope.ENTIRE: self._edit_entire,
        }
        self._delete_handlers = {
            Scope.OCCURRENCE: self._delete_occurrence,
            Scope.FUTURE: self._delete_future,
            Scope.ENTIRE: self._delete_entire,
        }

    # ==========================================================================
    # Public API
    # ==========================================================================

    async def edit(
        self,
        series_id: str,
        command: UpdateEntryCommand,
        scope: Scope,
        target_date: Optional[date] = None,
    ) -> EditResult:
        """
        Apply an edit at the given scope.

        Raises:
            EntryValidationError: target_date missing for occurrence/future scope
            NotFoundError: series does not exist for this user
            ConflictError: target_date outside the series range, a split at start_date,
                or a new range overlapping a linked series
        """
        scope = Scope(scope)
        self._require_target_date(scope, target_date)

        async with SeriesUnitOfWork(self.db, self.user_id, series_id) as uow:
            if scope.requires_date:
                self._check_in_range(uow.series, target_date, "edit")
            result = await self._edit_handlers[scope](uow, command, target_date)

        for record in result.records():
            await self.db.refresh(record)

        logger.info(f"Edited series {series_id} for user {self.user_id} (scope={scope.value}, date={target_date})")
        await log_analytics_event(self.db, self.user_id, "entry_updated", {
            "entry_type": command.entry_type.value,
            "recurrence_type": command.recurrence_type.value,
            "edit_scope": scope.value,
        })
        return result

    async def delete(
        self,
        series_id: str,
        scope: Scope,
        target_date: Optional[date] = None,
    ) -> DeleteResult:
        """
        Apply a delete at the given scope.

        Raises:
            EntryValidationError: target_date missing for occurrence/future scope
            NotFoundError: series does not exist for this user
            ConflictError: target_date outside the series range, or truncation at start_date
        """
        scope = Scope(scope)
        self._require_target_date(scope, target_date)

        async with SeriesUnitOfWork(self.db, self.user_id, series_id) as uow:
            if scope.requires_date:
                self._check_in_range(uow.series, target_date, "delete")
            result = await self._delete_handlers[scope](uow, target_date)

        for record in result.records():
            await self.db.refresh(record)

        logger.info(f"Deleted series {series_id} for user {self.user_id} (scope={scope.value}, date={target_date})")
        await log_analytics_event(self.db, self.user_id, "entry_deleted", {"edit_scope": scope.value})
        return result

    # ==========================================================================
    # Validation
    # ==========================================================================

    @staticmethod
    def _require_target_date(scope: Scope, target_date: Optional[date]) -> None:
        if scope.requires_date and target_date is None:
            raise EntryValidationError.for_field(
                "date", "date is required for scope=occurrence or scope=future"
            )

    @staticmethod
    def _check_in_range(series: EntrySeries, target_date: date, action: str) -> None:
        if not series.covers(target_date):
            raise ConflictError(f"Cannot {action} outside series range")

    @staticmethod
    def _check_truncation(series: EntrySeries, target_date: date) -> None:
        # Truncating at start_date would leave end_date < start_date
        if target_date <= series.start_date:
            raise ConflictError(
                "Cannot truncate series at its start date; use scope=entire instead"
            )

    @staticmethod
    def _check_successor(command: UpdateEntryCommand, target_date: date) -> None:
        """The successor starts at target_date, so the payload must fit that start."""
        if command.end_date is not None and command.end_date < target_date:
            raise ConflictError("New series would end before the split date")

        if command.recurrence_type == RecurrenceType.WEEKLY and command.weekday != sunday_based_weekday(target_date):
            raise EntryValidationError.for_field(
                "weekday", "weekday must match the weekday of the split date"
            )

    @staticmethod
    def _check_no_overlap(
        start_date: date,
        end_date: Optional[date],
        linked: List[EntrySeries],
    ) -> None:
        """A series and the series it was split from or into never share a date."""
        end = end_date or date.max
        for other in linked:
            if start_date <= (other.end_date or date.max) and other.start_date <= end:
                raise ConflictError(f"Edited range would overlap linked series {other.id}")

    async def _load_children(self, series_id: str) -> List[EntrySeries]:
        result = await self.db.execute(
            select(EntrySeries)
            .where(
                EntrySeries.parent_series_id == series_id,
                EntrySeries.user_id == self.user_id,
            )
            .with_for_update()
        )
        return list(result.scalars().all())

    async def _load_linked(self, series: EntrySeries) -> List[EntrySeries]:
        """The parent (if any) and the direct successors of a series."""
        linked = await self._load_children(series.id)
        if series.parent_series_id is not None:
            result = await self.db.execute(
                select(EntrySeries)
                .where(
                    EntrySeries.id == series.parent_series_id,
                    EntrySeries.user_id == self.user_id,
                )
                .with_for_update()
            )
            parent = result.scalar_one_or_none()
            if parent is not None:
                linked.append(parent)
        return linked

    # ==========================================================================
    # Exceptions
    # ==========================================================================

    async def _replace_exception(
        self,
        uow: SeriesUnitOfWork,
        target_date: date,
        exception_type: ExceptionType,
        title: Optional[str] = None,
        description: Optional[str] = None,
        amount=None,
    ) -> SeriesException:
        """Write the exception for target_date, replacing any existing one."""
        result = await self.db.execute(
            select(SeriesException).where(
                SeriesException.series_id == uow.series.id,
                SeriesException.exception_date == target_date,
            )
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            await uow.delete(existing)
            await uow.flush()

        exception = SeriesException(
            series_id=uow.series.id,
            user_id=self.user_id,
            exception_date=target_date,
            exception_type=exception_type,
            title=title,
            description=description,
            amount=amount,
        )
        uow.add(exception)
        await uow.flush()
        return exception

    # ==========================================================================
    # Edit handlers
    # ==========================================================================

    async def _edit_occurrence(
        self,
        uow: SeriesUnitOfWork,
        command: UpdateEntryCommand,
        target_date: date,
    ) -> OccurrenceEditResult:
        exception = await self._replace_exception(
            uow,
            target_date,
            ExceptionType.OVERRIDE,
            title=command.title,
            description=command.description,
            amount=command.amount,
        )
        return OccurrenceEditResult(exception=exception)

    async def _edit_future(
        self,
        uow: SeriesUnitOfWork,
        command: UpdateEntryCommand,
        target_date: date,
    ) -> FutureEditResult:
        original = uow.series
        self._check_truncation(original, target_date)
        self._check_successor(command, target_date)

        fields = command.series_fields()
        fields["start_date"] = target_date
        # Earlier successors of the original keep their ranges
        self._check_no_overlap(target_date, fields["end_date"], await self._load_children(original.id))

        # Truncate before inserting so the two ranges never overlap mid-flush
        original.end_date = target_date - timedelta(days=1)
        await uow.flush()

        new_series = EntrySeries(
            user_id=self.user_id,
            parent_series_id=original.id,
            **fields,
        )
        uow.add(new_series)
        await uow.flush()

        return FutureEditResult(original_series=original, new_series=new_series)

    async def _edit_entire(
        self,
        uow: SeriesUnitOfWork,
        command: UpdateEntryCommand,
        target_date: Optional[date],
    ) -> EntireEditResult:
        # Existing exceptions stay; dates the new pattern never visits become inert
        series = uow.series
        fields = command.series_fields()
        self._check_no_overlap(fields["start_date"], fields["end_date"], await self._load_linked(series))

        for name in MUTABLE_SERIES_FIELDS:
            setattr(series, name, fields[name])
        await uow.flush()

        return EntireEditResult(series=series)

    # ==========================================================================
    # Delete handlers
    # ==========================================================================

    async def _delete_occurrence(self, uow: SeriesUnitOfWork, target_date: date) -> DeleteResult:
        exception = await self._replace_exception(uow, target_date, ExceptionType.SKIP)
        return DeleteResult(
            scope=Scope.OCCURRENCE,
            series_id=uow.series.id,
            exception_created=True,
            exception=exception,
        )

    async def _delete_future(self, uow: SeriesUnitOfWork, target_date: date) -> DeleteResult:
        series = uow.series
        self._check_truncation(series, target_date)

        series.end_date = target_date - timedelta(days=1)
        await uow.flush()

        return DeleteResult(
            scope=Scope.FUTURE,
            series_id=series.id,
            new_end_date=series.end_date,
        )

    async def _delete_entire(self, uow: SeriesUnitOfWork, target_date: Optional[date]) -> DeleteResult:
        # Exceptions go with the row through the relationship/foreign key cascade
        series_id = uow.series.id
        await uow.delete(uow.series)
        await uow.flush()

        return DeleteResult(scope=Scope.ENTIRE, series_id=series_id, series_deleted=True)
