# dashboard.py: refresh recurring bills, aggregate a month, score it

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import pandas as pd

from aggregation import aggregate, normalize_month
from insights import score
from recurrence import materialize_due
from schemas import DashboardSnapshot

logger = logging.getLogger(__name__)


def build_snapshot(store, month=None, today: Optional[date] = None) -> DashboardSnapshot:
    """
    Builds the dashboard snapshot for ``month`` (defaults to the current month).

    Recurring templates are materialized relative to ``today`` (wall clock),
    never the selected month, so past and future views see the same refresh.
    A failed refresh raises ``StoreFailure``; no snapshot is built from it.
    """
    today = today or date.today()
    selected = normalize_month(month if month is not None else today)

    created = materialize_due(store, today)
    summary = aggregate(store, selected)
    health_score, label = score(summary.total_income, summary.total_expenses, summary.category_budgets)

    logger.debug("Snapshot for %s: score %d (%s)", selected, health_score, label)
    return DashboardSnapshot(
        **summary.model_dump(),
        health_score=health_score,
        health_label=label,
        materialized_count=created,
    )


def trend_frame(snapshot: DashboardSnapshot) -> pd.DataFrame:
    """
    Six-month trend as a frame (Month, Income, Expenses, Net), oldest first.
    """
    df = pd.DataFrame(
        {
            "Month": list(snapshot.month_labels),
            "Income": list(snapshot.income_series),
            "Expenses": list(snapshot.expense_series),
        }
    )
    df["Net"] = [i - e for i, e in zip(snapshot.income_series, snapshot.expense_series)]
    return df
