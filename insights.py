"""Financial health score for a month of totals and budget rows.

Not financial advice: a bounded 0-100 heuristic that rewards saving and
penalises categories at or near their budget.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Tuple

from schemas import BudgetStatus, CategoryBudgetRow

NO_INCOME_SCORE = 30
BASE_SCORE = 40
MAX_SAVINGS_POINTS = 60
OVER_BUDGET_PENALTY = 12
NEAR_LIMIT_PENALTY = 6

# Inclusive lower bounds, highest first
HEALTH_LABELS = [
    (85, "Strong"),
    (70, "Good"),
    (50, "Needs Attention"),
]
LOWEST_LABEL = "High Risk"


def _clamp(value, low, high):
    return max(low, min(high, value))


def compute_health_score(total_income: Decimal, total_expenses: Decimal, rows: Iterable[CategoryBudgetRow]) -> int:
    # Budgeting without income is treated as unstable whatever was spent
    if total_income <= 0:
        return NO_INCOME_SCORE

    savings_rate = (total_income - total_expenses) / total_income
    savings_points = int(_clamp(savings_rate * MAX_SAVINGS_POINTS, 0, MAX_SAVINGS_POINTS))

    statuses = [row.status for row in rows]
    over = statuses.count(BudgetStatus.OVER_BUDGET)
    near = statuses.count(BudgetStatus.NEAR_LIMIT)
    penalty = over * OVER_BUDGET_PENALTY + near * NEAR_LIMIT_PENALTY

    return int(_clamp(BASE_SCORE + savings_points - penalty, 0, 100))


def health_label(score: int) -> str:
    for threshold, label in HEALTH_LABELS:
        if score >= threshold:
            return label
    return LOWEST_LABEL


def score(total_income: Decimal, total_expenses: Decimal, rows: Iterable[CategoryBudgetRow]) -> Tuple[int, str]:
    value = compute_health_score(total_income, total_expenses, rows)
    return value, health_label(value)
