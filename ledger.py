"""Repository over the SQLAlchemy session used by the materializer and aggregator.

Every method reads committed state through the session it was given; nothing
is cached between calls. Any ``SQLAlchemyError`` is rolled back and re-raised
as :class:`errors.StoreFailure`.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from aggregation import normalize_month
from config import CENT
from database import Budget, Category, Expense, Income, RecurrenceInterval, RecurringExpense
from errors import DuplicateBudget, MaterializationConflict, StoreFailure, UnknownInterval

logger = logging.getLogger(__name__)


def to_money(value) -> Decimal:
    """Quantize to cents; ``None`` (an empty SUM) becomes zero."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


def coerce_interval(value) -> RecurrenceInterval:
    """Accept an enum member, its name (any case) or its stored number."""
    if isinstance(value, RecurrenceInterval):
        return value
    if isinstance(value, str):
        try:
            return RecurrenceInterval[value.strip().upper()]
        except KeyError:
            raise UnknownInterval(value) from None
    try:
        return RecurrenceInterval(value)
    except ValueError:
        raise UnknownInterval(value) from None


class LedgerStore:
    def __init__(self, session: Session):
        self.session = session

    def _fail(self, action: str, exc: Exception):
        self.session.rollback()
        logger.exception("Ledger store failed to %s", action)
        raise StoreFailure(f"Could not {action}: {exc}") from exc

    # --- Reads ---

    def list_due_recurring_templates(self, as_of: date) -> List[RecurringExpense]:
        """Active templates due on or before ``as_of`` whose end date has not passed.

        Rows are locked for update where the backend supports it.
        """
        stmt = (
            select(RecurringExpense)
            .where(
                RecurringExpense.is_active.is_(True),
                RecurringExpense.next_occurrence_date <= as_of,
                or_(RecurringExpense.end_date.is_(None), RecurringExpense.end_date >= as_of),
            )
            .order_by(RecurringExpense.id)
            .with_for_update()
        )
        try:
            return list(self.session.scalars(stmt))
        except SQLAlchemyError as exc:
            self._fail("list due recurring templates", exc)

    def sum_amount(self, model, start: date, end: date, category_id: Optional[int] = None) -> Decimal:
        """Sum of ``model.amount`` with ``start <= date < end``."""
        if model not in (Expense, Income):
            raise ValueError(f"Cannot sum amounts of {model!r}")
        stmt = select(func.sum(model.amount)).where(model.date >= start, model.date < end)
        if category_id is not None:
            if model is Income:
                raise ValueError("Income has no category")
            stmt = stmt.where(Expense.category_id == category_id)
        try:
            return to_money(self.session.scalar(stmt))
        except SQLAlchemyError as exc:
            self._fail(f"sum {model.__tablename__}", exc)

    def find_budget(self, category_id: int, month: date) -> Optional[Budget]:
        stmt = select(Budget).where(Budget.category_id == category_id, Budget.month == normalize_month(month))
        try:
            return self.session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            self._fail("find budget", exc)

    def list_categories_ordered_by_name(self) -> List[Category]:
        stmt = select(Category).order_by(func.lower(Category.name), Category.name, Category.id)
        try:
            return list(self.session.scalars(stmt))
        except SQLAlchemyError as exc:
            self._fail("list categories", exc)

    # --- Writes ---

    def save_materialization_batch(
        self, new_expenses: Iterable[Expense], updated_templates: Iterable[RecurringExpense]
    ) -> None:
        """Commit generated expenses and advanced templates together, or not at all."""
        try:
            self.session.add_all(list(new_expenses))
            self.session.add_all(list(updated_templates))
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise MaterializationConflict("A recurring template was advanced by another run") from exc
        except SQLAlchemyError as exc:
            self._fail("save materialization batch", exc)

    def _commit_new(self, row, action: str):
        self.session.add(row)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self._fail(action, exc)
        return row

    def add_category(self, name: str) -> Category:
        return self._commit_new(Category(name=name.strip()), "add category")

    def add_expense(self, name: str, amount, on: date, category_id: int) -> Expense:
        return self._commit_new(
            Expense(name=name, amount=to_money(amount), date=on, category_id=category_id), "add expense"
        )

    def add_income(self, source: str, amount, on: date) -> Income:
        return self._commit_new(Income(source=source, amount=to_money(amount), date=on), "add income")

    def add_budget(self, category_id: int, month, amount) -> Budget:
        """Create the budget for ``(category, month)``; the month is stored as its first day."""
        month = normalize_month(month)
        budget = Budget(category_id=category_id, month=month, amount=to_money(amount))
        self.session.add(budget)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            # Only the (category, month) uniqueness constraint is a duplicate
            if self.find_budget(category_id, month) is not None:
                raise DuplicateBudget(category_id, month) from exc
            self._fail("add budget", exc)
        except SQLAlchemyError as exc:
            self._fail("add budget", exc)
        return budget

    def add_recurring_template(
        self,
        name: str,
        amount,
        interval,
        next_occurrence: date,
        category_id: int,
        end_date: Optional[date] = None,
        is_active: bool = True,
    ) -> RecurringExpense:
        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Recurring amount must be positive")
        template = RecurringExpense(
            name=name,
            amount=amount,
            interval=coerce_interval(interval),
            next_occurrence_date=next_occurrence,
            end_date=end_date,
            is_active=is_active,
            category_id=category_id,
        )
        return self._commit_new(template, "add recurring template")

    def set_template_active(self, template_id: int, active: bool) -> Optional[RecurringExpense]:
        """Pause or resume a template. Templates are never deleted here."""
        try:
            template = self.session.get(RecurringExpense, template_id)
            if template is None:
                return None
            template.is_active = active
            self.session.commit()
        except SQLAlchemyError as exc:
            self._fail("update recurring template", exc)
        return template
