"""
run_dashboard.py
----------------
Refresh recurring expenses and print the dashboard snapshot for a month.

    python run_dashboard.py --month 2026-02
    python run_dashboard.py --materialize-only --as-of 2026-02-15
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from typing import List, Optional

from aggregation import normalize_month
from config import configure_logging
from dashboard import build_snapshot, trend_frame
from database import SessionLocal, init_db
from errors import LedgerError
from ledger import LedgerStore
from recurrence import materialize_due
from schemas import DashboardSnapshot

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Monthly budgeting dashboard")
    parser.add_argument("--month", type=normalize_month, default=None, help="Month to show as YYYY-MM (default: current month)")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Date recurring templates are materialized against, YYYY-MM-DD (default: today)",
    )
    parser.add_argument("--materialize-only", action="store_true", help="Only generate due recurring expenses")
    parser.add_argument("--init-db", action="store_true", help="Create missing tables before running")
    parser.add_argument("--log-level", type=str, default=None)
    return parser.parse_args(argv)


def render_snapshot(snapshot: DashboardSnapshot) -> str:
    lines = [
        f"Month:     {snapshot.selected_month:%Y-%m}",
        f"Income:    {snapshot.total_income}",
        f"Expenses:  {snapshot.total_expenses}",
        f"Net:       {snapshot.net}",
        f"Health:    {snapshot.health_score} ({snapshot.health_label})",
        "",
        trend_frame(snapshot).to_string(index=False),
        "",
    ]
    for row in snapshot.category_budgets:
        lines.append(
            f"{row.category_name:<24} {row.spent_amount:>10} / {row.budget_amount:>10} "
            f"{row.percent_used:>6}%  {row.status.value}"
        )
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.init_db:
        init_db()

    db = SessionLocal()
    try:
        store = LedgerStore(db)
        if args.materialize_only:
            created = materialize_due(store, args.as_of)
            print(f"Created {created} recurring expense(s).")
        else:
            snapshot = build_snapshot(store, args.month, today=args.as_of)
            print(render_snapshot(snapshot))
    except LedgerError as exc:
        logger.error("Dashboard refresh failed: %s", exc)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
