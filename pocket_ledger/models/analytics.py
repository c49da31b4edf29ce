"""
Analytics Result Models

Plain result shapes returned by pocket_ledger.analytics.engine.
Amounts are absolute values (expenses reported as positive numbers).
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


WEEKDAY_NAMES = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)


class MonthlyTrend(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)
    expenses: Decimal = Decimal("0")
    income: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class MonthComparison(BaseModel):
    """Expense-only comparison of the current and previous calendar month."""

    current: Decimal
    previous: Decimal
    change: Decimal
    change_percent: int = Field(
        ...,
        description="Exactly 0 when previous is 0"
    )


class MerchantRank(BaseModel):
    label: str
    total: Decimal
    count: int = Field(ge=1)
    last_seen: Optional[datetime] = None


class WeekdaySlot(BaseModel):
    weekday: int = Field(ge=0, le=6, description="0 = Sunday")
    total: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)
    average: Decimal = Decimal("0")

    @property
    def name(self) -> str:
        return WEEKDAY_NAMES[self.weekday]


class CategorySlice(BaseModel):
    """
    Share of a date range's expenses for one icon tag.

    percentage is rounded per slice; slices do not necessarily sum to 100.
    """

    icon: str
    label: str
    color: Optional[str] = None
    amount: Decimal
    count: int = Field(ge=1)
    percentage: int = Field(ge=0, le=100)


class MonthSummary(BaseModel):
    """Headline numbers for the dashboard."""

    income: Decimal
    expenses: Decimal
    balance: Decimal = Field(..., description="All-time sum of amounts")
    week_change: Decimal = Field(..., description="Net of the trailing 7 days")
    spending_ratio: int = Field(ge=0, le=100)
    savings_rate: int = Field(ge=0, le=100)
