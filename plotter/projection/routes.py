"""Projection API routes."""
import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.auth.dependencies import get_current_user
from plotter.database import get_db
from plotter.data.analytics.service import log_analytics_event
from plotter.data.models import User
from plotter.projection.engine import (
    calculate_projection,
    date_range_limits,
    enforce_limits,
    get_starting_balance,
    local_today,
)
from plotter.projection.schemas import (
    DateRangeLimitsResponse,
    ProjectionComputation,
    ProjectionResponse,
    StartingBalanceSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ProjectionResponse)
async def get_projection(
    target_date: date = Query(..., alias="date"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Project the balance on `date`.

    `date` must lie between the starting balance's effective date and
    ten years from today.
    """
    today = local_today()
    balance = await get_starting_balance(db, current_user.id)
    enforce_limits(target_date, date_range_limits(balance, today))

    projection = await calculate_projection(
        db, current_user.id, target_date, today=today, balance=balance
    )

    response = ProjectionResponse(
        target_date=projection.target_date,
        projected_balance=projection.projected_balance,
        starting_balance=StartingBalanceSummary.model_validate(projection.starting_balance),
        computation=ProjectionComputation(
            total_income=projection.totals.total_income,
            total_expense=projection.totals.total_expense,
            net_change=projection.totals.net_change,
        ),
        date_range_limits=DateRangeLimitsResponse(
            min_date=projection.limits.min_date,
            max_date=projection.limits.max_date,
        ),
    )

    logger.info(f"Projected balance for user {current_user.id} at {target_date}")
    await log_analytics_event(db, current_user.id, "projection_viewed", {
        "target_date": target_date.isoformat(),
        "days_from_start": (target_date - balance.effective_date).days,
    })
    return response
