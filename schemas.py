"""Immutable value types returned by the aggregation pipeline."""

import enum
from datetime import date
from decimal import Decimal
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class BudgetStatus(str, enum.Enum):
    OK = "OK"
    NEAR_LIMIT = "NearLimit"
    OVER_BUDGET = "OverBudget"


class CategoryBudgetRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_name: str
    budget_amount: Decimal
    spent_amount: Decimal
    percent_used: Decimal = Field(ge=0, le=100)
    status: BudgetStatus


class MonthlySummary(BaseModel):
    """Aggregator output: totals, six-month trend and budget rows."""

    model_config = ConfigDict(frozen=True)

    selected_month: date
    total_income: Decimal
    total_expenses: Decimal
    net: Decimal
    month_labels: Tuple[str, ...]
    income_series: Tuple[Decimal, ...]
    expense_series: Tuple[Decimal, ...]
    category_budgets: Tuple[CategoryBudgetRow, ...]


class DashboardSnapshot(MonthlySummary):
    health_score: int = Field(ge=0, le=100)
    health_label: str
    materialized_count: int = 0
