"""Entry series API routes."""
from datetime import date
from typing import Literal, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.auth.dependencies import get_current_user
from plotter.config import settings
from plotter.database import get_db
from plotter.data.models import EntryType, RecurrenceType, User
from plotter.data.entries.schemas import (
    CreateEntryCommand,
    DeleteAffected,
    DeleteEntryResponse,
    EntryListParams,
    EntryListResponse,
    EntrySeriesDetail,
    EntrySeriesResponse,
    FutureEditResponse,
    OccurrenceEditResponse,
    OriginalSeriesSummary,
    Pagination,
    SeriesExceptionResponse,
    UpdateEntryCommand,
)
from plotter.data.entries.service import EntryService
from plotter.mutations.engine import SeriesMutationEngine
from plotter.mutations.scopes import FutureEditResult, OccurrenceEditResult, Scope
from plotter.recurrence.occurrences import OccurrenceService, validate_window
from plotter.recurrence.schemas import EntryOccurrencesResponse, OccurrenceResponse

router = APIRouter()


@router.post("", response_model=EntrySeriesResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    data: CreateEntryCommand,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a one-time, weekly or monthly entry series."""
    series = await EntryService(db, current_user.id).create(data)
    return EntrySeriesResponse.model_validate(series)


@router.get("", response_model=EntryListResponse)
async def list_entries(
    entry_type: Optional[EntryType] = Query(None),
    recurrence_type: Optional[RecurrenceType] = Query(None),
    start_date_from: Optional[date] = Query(None),
    start_date_to: Optional[date] = Query(None),
    sort_by: Optional[Literal["start_date", "created_at", "amount"]] = Query(None),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    limit: int = Query(settings.ENTRY_PAGE_DEFAULT, ge=1, le=settings.ENTRY_PAGE_MAX),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's entry series."""
    params = EntryListParams(
        entry_type=entry_type,
        recurrence_type=recurrence_type,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    series, total = await EntryService(db, current_user.id).list(params)
    return EntryListResponse(
        data=[EntrySeriesResponse.model_validate(s) for s in series],
        pagination=Pagination(total=total, limit=limit, offset=offset),
    )


@router.get("/{series_id}", response_model=EntrySeriesDetail)
async def get_entry(
    series_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a series with its exceptions and the ids of the series it was split from."""
    service = EntryService(db, current_user.id)
    series = await service.get(series_id)
    exceptions = await service.get_exceptions(series_id)
    lineage = await service.get_lineage(series_id)

    return EntrySeriesDetail(
        **EntrySeriesResponse.model_validate(series).model_dump(),
        exceptions=[SeriesExceptionResponse.model_validate(e) for e in exceptions],
        lineage=lineage,
    )


@router.put(
    "/{series_id}",
    response_model=Union[OccurrenceEditResponse, FutureEditResponse, EntrySeriesResponse],
)
async def update_entry(
    series_id: str,
    data: UpdateEntryCommand,
    scope: Scope = Query(...),
    target_date: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Edit a series.

    - scope=occurrence: override the occurrence on `date`
    - scope=future: split the series at `date`
    - scope=entire: overwrite the series
    """
    engine = SeriesMutationEngine(db, current_user.id)
    result = await engine.edit(series_id, data, scope, target_date)

    if isinstance(result, OccurrenceEditResult):
        return OccurrenceEditResponse(
            exception=SeriesExceptionResponse.model_validate(result.exception)
        )
    if isinstance(result, FutureEditResult):
        return FutureEditResponse(
            original_series=OriginalSeriesSummary.model_validate(result.original_series),
            new_series=EntrySeriesResponse.model_validate(result.new_series),
        )
    return EntrySeriesResponse.model_validate(result.series)


@router.delete("/{series_id}", response_model=DeleteEntryResponse)
async def delete_entry(
    series_id: str,
    scope: Scope = Query(...),
    target_date: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a series.

    - scope=occurrence: skip the occurrence on `date`
    - scope=future: end the series the day before `date`
    - scope=entire: remove the series and its exceptions
    """
    engine = SeriesMutationEngine(db, current_user.id)
    result = await engine.delete(series_id, scope, target_date)

    return DeleteEntryResponse(
        message=result.message,
        scope=result.scope,
        affected=DeleteAffected(
            series_deleted=result.series_deleted,
            exception_created=result.exception_created,
        ),
    )


@router.get("/{series_id}/occurrences", response_model=EntryOccurrencesResponse)
async def get_entry_occurrences(
    series_id: str,
    from_date: date = Query(...),
    to_date: date = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Occurrences of one series in a window, with exception metadata."""
    validate_window(from_date, to_date)

    occurrences = await OccurrenceService(db).list_for_series(
        current_user.id, series_id, from_date, to_date
    )
    return EntryOccurrencesResponse(
        series_id=series_id,
        data=[OccurrenceResponse.from_occurrence(occ) for occ in occurrences],
    )
