"""Budget models."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class Budget(BaseModel):
    """A monthly spending limit for one category."""

    model_config = ConfigDict(frozen=True)

    category_id: str = Field(..., min_length=1)
    limit: Decimal = Field(..., gt=0, allow_inf_nan=False)


class BudgetProgress(BaseModel):
    """
    Spending against a budget for the current month.

    percentage is clamped for display. over_budget is NOT derived from it:
    a displayed 100% does not by itself mean the limit was exceeded.
    """

    category_id: str
    icon: str
    limit: Decimal
    spent: Decimal
    percentage: int = Field(ge=0, le=100)
    over_budget: bool
    over_by: Decimal = Field(ge=0, description="Warning amount shown when over budget")
    remaining: Decimal = Field(ge=0)
