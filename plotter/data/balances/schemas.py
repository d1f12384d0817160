"""Pydantic schemas for the starting balance."""
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class StartingBalanceUpsert(BaseModel):
    """Schema for setting the starting balance."""
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    effective_date: date


class StartingBalanceResponse(BaseModel):
    """Schema for starting balance responses."""
    id: str
    user_id: str
    amount: Decimal
    effective_date: date
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
