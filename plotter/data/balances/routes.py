"""Starting balance API routes."""
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plotter.auth.dependencies import get_current_user
from plotter.database import get_db
from plotter.data.models import StartingBalance, User
from plotter.data.balances.schemas import StartingBalanceResponse, StartingBalanceUpsert
from plotter.errors import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


async def _find_balance(db: AsyncSession, user_id: str):
    result = await db.execute(
        select(StartingBalance).where(StartingBalance.user_id == user_id)
    )
    return result.scalar_one_or_none()


@router.get("", response_model=StartingBalanceResponse)
async def get_starting_balance(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the user's starting balance."""
    balance = await _find_balance(db, current_user.id)
    if not balance:
        raise NotFoundError("No starting balance configured")
    return balance


@router.put("", response_model=StartingBalanceResponse)
async def upsert_starting_balance(
    data: StartingBalanceUpsert,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create or replace the starting balance. 201 when created, 200 when updated."""
    balance = await _find_balance(db, current_user.id)

    if balance:
        balance.amount = data.amount
        balance.effective_date = data.effective_date
        response.status_code = status.HTTP_200_OK
    else:
        balance = StartingBalance(
            user_id=current_user.id,
            amount=data.amount,
            effective_date=data.effective_date,
        )
        db.add(balance)
        response.status_code = status.HTTP_201_CREATED

    await db.commit()
    await db.refresh(balance)

    logger.info(f"Set starting balance for user {current_user.id} effective {data.effective_date}")
    return balance


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_starting_balance(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remove the starting balance."""
    balance = await _find_balance(db, current_user.id)
    if not balance:
        raise NotFoundError("No starting balance configured")

    await db.delete(balance)
    await db.commit()

    logger.info(f"Deleted starting balance for user {current_user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
