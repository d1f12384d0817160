"""Occurrence API routes."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.auth.dependencies import get_current_user
from plotter.config import settings
from plotter.database import get_db
from plotter.data.models import EntryType, User
from plotter.data.entries.schemas import Pagination
from plotter.recurrence.occurrences import OccurrenceService, validate_window
from plotter.recurrence.schemas import OccurrenceListResponse, OccurrenceResponse

router = APIRouter()


@router.get("", response_model=OccurrenceListResponse)
async def list_occurrences(
    from_date: date = Query(...),
    to_date: date = Query(...),
    entry_type: Optional[EntryType] = Query(None),
    limit: int = Query(settings.OCCURRENCE_PAGE_DEFAULT, ge=1, le=settings.OCCURRENCE_PAGE_MAX),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Occurrences of all the user's series in [from_date, to_date],
    ordered by date then series id.
    """
    validate_window(from_date, to_date)

    page, total = await OccurrenceService(db).list_for_user(
        current_user.id, from_date, to_date,
        entry_type=entry_type, limit=limit, offset=offset,
    )
    return OccurrenceListResponse(
        data=[OccurrenceResponse.from_occurrence(occ) for occ in page],
        pagination=Pagination(total=total, limit=limit, offset=offset),
    )
