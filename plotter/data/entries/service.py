"""
Entry Service - create, list and inspect entry series.

Scoped edits and deletes live in plotter.mutations; this module covers the
plain CRUD side plus the lineage lookup for split series.
"""
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.data.analytics.service import log_analytics_event
from plotter.data.entries.models import EntrySeries, SeriesException
from plotter.data.entries.schemas import CreateEntryCommand, EntryListParams
from plotter.errors import NotFoundError

logger = logging.getLogger(__name__)


def resolve_lineage(parents: Dict[str, Optional[str]], series_id: str) -> List[str]:
    """
    Walk parent_series_id links from series_id through an id-keyed arena.

    Returns ancestor ids, nearest first. Stops at a missing parent, and at a
    repeated id should the stored data ever contain a cycle.
    """
    lineage: List[str] = []
    seen = {series_id}
    current = parents.get(series_id)

    while current is not None and current in parents and current not in seen:
        lineage.append(current)
        seen.add(current)
        current = parents[current]

    return lineage


class EntryService:
    """Service for entry series that are not scoped mutations."""

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    async def create(self, command: CreateEntryCommand) -> EntrySeries:
        """Insert a new series owned by the user."""
        series = EntrySeries(user_id=self.user_id, **command.series_fields())
        self.db.add(series)
        await self.db.commit()
        await self.db.refresh(series)

        logger.info(f"Created {series.recurrence_type.value} series {series.id} for user {self.user_id}")
        await log_analytics_event(self.db, self.user_id, "entry_created", {
            "entry_type": command.entry_type.value,
            "recurrence_type": command.recurrence_type.value,
            "has_end_date": command.end_date is not None,
        })
        return series

    async def list(self, params: EntryListParams) -> Tuple[List[EntrySeries], int]:
        """Filtered, sorted, paginated series plus the filtered total."""
        query = select(EntrySeries).where(EntrySeries.user_id == self.user_id)

        if params.entry_type:
            query = query.where(EntrySeries.entry_type == params.entry_type)
        if params.recurrence_type:
            query = query.where(EntrySeries.recurrence_type == params.recurrence_type)
        if params.start_date_from:
            query = query.where(EntrySeries.start_date >= params.start_date_from)
        if params.start_date_to:
            query = query.where(EntrySeries.start_date <= params.start_date_to)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        if params.sort_by:
            column = getattr(EntrySeries, params.sort_by)
            query = query.order_by(column.desc() if params.sort_order == "desc" else column.asc())
        query = query.order_by(EntrySeries.id)

        result = await self.db.execute(query.offset(params.offset).limit(params.limit))
        return list(result.scalars().all()), total

    async def get(self, series_id: str) -> EntrySeries:
        result = await self.db.execute(
            select(EntrySeries).where(
                EntrySeries.id == series_id,
                EntrySeries.user_id == self.user_id,
            )
        )
        series = result.scalar_one_or_none()
        if series is None:
            raise NotFoundError(f"Entry series with id {series_id} not found")
        return series

    async def get_exceptions(self, series_id: str) -> List[SeriesException]:
        result = await self.db.execute(
            select(SeriesException)
            .where(SeriesException.series_id == series_id)
            .order_by(SeriesException.exception_date)
        )
        return list(result.scalars().all())

    async def get_lineage(self, series_id: str) -> List[str]:
        """Ancestor ids of a series, nearest first."""
        result = await self.db.execute(
            select(EntrySeries.id, EntrySeries.parent_series_id).where(
                EntrySeries.user_id == self.user_id
            )
        )
        parents = {row.id: row.parent_series_id for row in result.all()}
        return resolve_lineage(parents, series_id)
