"""
Projection Calculator.

Projects a user's balance to a target date:

    projected_balance = starting_balance.amount + total_income - total_expense

where the totals cover every occurrence in [effective_date, target_date].
The calculator reports the allowed date range but does not enforce it;
the route does.
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.config import settings
from plotter.data.balances.models import StartingBalance
from plotter.errors import EntryValidationError, NotFoundError
from plotter.recurrence.occurrences import OccurrenceTotals, aggregate_totals

CENTS = Decimal("0.01")


def local_today() -> date:
    """Today's date in the application's time zone."""
    return datetime.now(ZoneInfo(settings.APP_TIMEZONE)).date()


@dataclass
class DateRangeLimits:
    min_date: date
    max_date: date


@dataclass
class Projection:
    """Result of a projection (computed, not stored)."""
    target_date: date
    projected_balance: Decimal
    starting_balance: StartingBalance
    totals: OccurrenceTotals
    limits: DateRangeLimits


def date_range_limits(balance: StartingBalance, today: date) -> DateRangeLimits:
    return DateRangeLimits(
        min_date=balance.effective_date,
        max_date=today + relativedelta(years=settings.PROJECTION_HORIZON_YEARS),
    )


async def get_starting_balance(db: AsyncSession, user_id: str) -> StartingBalance:
    result = await db.execute(
        select(StartingBalance).where(StartingBalance.user_id == user_id)
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError("No starting balance configured. Please set a starting balance first.")
    return balance


async def calculate_projection(
    db: AsyncSession,
    user_id: str,
    target_date: date,
    today: Optional[date] = None,
    balance: Optional[StartingBalance] = None,
) -> Projection:
    """
    Project the balance at target_date.

    Pass balance when the caller has already loaded it for this user.

    Raises:
        NotFoundError: the user has no starting balance
    """
    if balance is None:
        balance = await get_starting_balance(db, user_id)
    limits = date_range_limits(balance, today or local_today())

    if target_date < balance.effective_date:
        # Nothing has happened yet; the window would be empty
        totals = OccurrenceTotals(total_income=Decimal("0"), total_expense=Decimal("0"))
    else:
        totals = await aggregate_totals(db, user_id, balance.effective_date, target_date)

    projected = (Decimal(balance.amount) + totals.net_change).quantize(CENTS)

    return Projection(
        target_date=target_date,
        projected_balance=projected,
        starting_balance=balance,
        totals=totals,
        limits=limits,
    )


def enforce_limits(target_date: date, limits: DateRangeLimits) -> None:
    """Reject target dates outside [min_date, max_date]."""
    if target_date < limits.min_date:
        raise EntryValidationError.for_field(
            "date",
            f"Date must be on or after starting balance date ({limits.min_date.isoformat()})",
        )
    if target_date > limits.max_date:
        raise EntryValidationError.for_field(
            "date",
            f"Date cannot be more than {settings.PROJECTION_HORIZON_YEARS} years in the future",
        )
