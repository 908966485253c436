"""Turn due recurring-expense templates into concrete expenses."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from aggregation import add_months
from config import MATERIALIZE_MAX_ATTEMPTS, RECURRING_SUFFIX
from database import Expense, RecurrenceInterval
from errors import DateOutOfRange, MaterializationConflict, StoreFailure, UnknownInterval

logger = logging.getLogger(__name__)


def advance_occurrence(current: date, interval) -> date:
    """Next occurrence one interval step after ``current``.

    Monthly steps clamp to the last day of shorter months (Jan 31 -> Feb 28/29).
    """
    if interval is RecurrenceInterval.WEEKLY:
        return current + timedelta(days=7)
    if interval is RecurrenceInterval.MONTHLY:
        return add_months(current, 1)
    raise UnknownInterval(interval)


def _materialize_pass(store, as_of: date) -> int:
    due = store.list_due_recurring_templates(as_of)
    if not due:
        return 0

    new_expenses = []
    for template in due:
        occurrence = template.next_occurrence_date
        new_expenses.append(
            Expense(
                name=f"{template.name}{RECURRING_SUFFIX}",
                amount=template.amount,
                date=occurrence,
                category_id=template.category_id,
            )
        )
        template.next_occurrence_date = advance_occurrence(occurrence, template.interval)
        logger.debug(
            "Template %s (%s) materialized for %s, next %s",
            template.id, template.name, occurrence, template.next_occurrence_date,
        )

    store.save_materialization_batch(new_expenses, due)
    return len(new_expenses)


def materialize_due(store, as_of: Optional[date] = None, max_attempts: int = MATERIALIZE_MAX_ATTEMPTS) -> int:
    """Create one expense per due template and advance each template once.

    Returns the number of expenses created. Each template steps a single
    interval per call, so a template several intervals behind catches up over
    successive calls. If a concurrent run advances a template first, the whole
    batch is discarded and due-ness is re-read from committed state.
    """
    as_of = as_of or date.today()
    for attempt in range(1, max_attempts + 1):
        try:
            created = _materialize_pass(store, as_of)
        except (UnknownInterval, DateOutOfRange):
            store.session.rollback()
            raise
        except MaterializationConflict:
            logger.warning("Materialization conflict as of %s (attempt %d/%d)", as_of, attempt, max_attempts)
            continue
        logger.info("Materialized %d recurring expense(s) as of %s", created, as_of)
        return created
    raise StoreFailure(f"Gave up materializing recurring expenses after {max_attempts} conflicting attempts")
