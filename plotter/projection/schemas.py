"""Pydantic schemas for balance projections."""
from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class StartingBalanceSummary(BaseModel):
    amount: Decimal
    effective_date: date

    model_config = {"from_attributes": True}


class ProjectionComputation(BaseModel):
    total_income: Decimal
    total_expense: Decimal
    net_change: Decimal


class DateRangeLimitsResponse(BaseModel):
    min_date: date
    max_date: date


class ProjectionResponse(BaseModel):
    """Schema for GET /projection."""
    target_date: date
    projected_balance: Decimal
    starting_balance: StartingBalanceSummary
    computation: ProjectionComputation
    date_range_limits: DateRangeLimitsResponse
