"""Monthly income/expense aggregation and budget-vs-actual rows."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Tuple

import pandas as pd

from config import CENT, NEAR_LIMIT_RATIO, TREND_MONTHS
from database import Expense, Income
from errors import DateOutOfRange
from schemas import BudgetStatus, CategoryBudgetRow, MonthlySummary

HUNDRED = Decimal("100")


# --- Month arithmetic ---

def normalize_month(value) -> date:
    """First calendar day of the month containing ``value``.

    Accepts a ``date``/``datetime``/``Timestamp`` or a ``YYYY-MM`` /
    ``YYYY-MM-DD`` string. Date objects are used as-is; strings are parsed by
    pandas and so must fall within 1677-2262.
    """
    if not isinstance(value, date):
        value = pd.Timestamp(value)
    return date(value.year, value.month, 1)


def add_months(value: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the end of short months.

    Jan 31 + 1 month is Feb 29 in a leap year and Feb 28 otherwise. The
    arithmetic runs on pandas timestamps, so results outside 1677-2262 raise
    ``DateOutOfRange``.
    """
    try:
        shifted = pd.Timestamp(value) + pd.DateOffset(months=months)
        return shifted.date()
    except (OverflowError, ValueError) as exc:
        raise DateOutOfRange(value, months) from exc


def month_range(month) -> Tuple[date, date]:
    """Half-open ``[start, end)`` bounds for the month."""
    start = normalize_month(month)
    return start, add_months(start, 1)


def month_label(month: date) -> str:
    return month.strftime("%b %Y")


# --- Budget rows ---

def percent_used(budget: Decimal, spent: Decimal) -> Decimal:
    if budget <= 0:
        return Decimal("0.00")
    pct = min(HUNDRED, spent / budget * HUNDRED)
    return max(Decimal("0"), pct).quantize(CENT, rounding=ROUND_HALF_UP)


def classify_budget(budget: Decimal, spent: Decimal) -> BudgetStatus:
    if budget > 0 and spent >= budget:
        return BudgetStatus.OVER_BUDGET
    if budget > 0 and spent >= budget * NEAR_LIMIT_RATIO:
        return BudgetStatus.NEAR_LIMIT
    return BudgetStatus.OK


def budget_rows(store, month: date) -> List[CategoryBudgetRow]:
    start, end = month_range(month)
    rows = []
    for category in store.list_categories_ordered_by_name():
        found = store.find_budget(category.id, start)
        budget = Decimal(str(found.amount)).quantize(CENT) if found is not None else Decimal("0.00")
        spent = store.sum_amount(Expense, start, end, category_id=category.id)
        rows.append(
            CategoryBudgetRow(
                category_name=category.name,
                budget_amount=budget,
                spent_amount=spent,
                percent_used=percent_used(budget, spent),
                status=classify_budget(budget, spent),
            )
        )
    return rows


# --- Aggregate ---

def aggregate(store, month) -> MonthlySummary:
    """Totals, the trailing trend and budget rows for one month.

    ``store`` is a :class:`ledger.LedgerStore` (or anything with the same
    read methods). Nothing is written.
    """
    selected = normalize_month(month)
    start, end = month_range(selected)

    total_income = store.sum_amount(Income, start, end)
    total_expenses = store.sum_amount(Expense, start, end)

    labels, income_series, expense_series = [], [], []
    first = add_months(selected, -(TREND_MONTHS - 1))
    for k in range(TREND_MONTHS):
        m_start, m_end = month_range(add_months(first, k))
        labels.append(month_label(m_start))
        income_series.append(store.sum_amount(Income, m_start, m_end))
        expense_series.append(store.sum_amount(Expense, m_start, m_end))

    return MonthlySummary(
        selected_month=selected,
        total_income=total_income,
        total_expenses=total_expenses,
        net=total_income - total_expenses,
        month_labels=tuple(labels),
        income_series=tuple(income_series),
        expense_series=tuple(expense_series),
        category_budgets=tuple(budget_rows(store, selected)),
    )
