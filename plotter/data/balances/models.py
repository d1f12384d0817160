"""Starting balance model - the anchor for balance projections."""
from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.sql import func

from plotter.database import Base
from plotter.data.base import generate_id


class StartingBalance(Base):
    """
    Starting Balance - one row per user.

    Projections add the signed sum of occurrences dated on or after
    effective_date; they are undefined before it.
    """

    __tablename__ = "starting_balances"

    id = Column(String, primary_key=True, default=lambda: generate_id("bal"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    effective_date = Column(Date, nullable=False)
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_starting_balances_amount"),
    )
