from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from database import Expense, RecurrenceInterval, RecurringExpense, init_db
from errors import MaterializationConflict, StoreFailure, UnknownInterval
from ledger import LedgerStore
from recurrence import advance_occurrence, materialize_due


def _expense_count(session):
    return session.scalar(select(func.count(Expense.id)))


def test_weekly_advances_seven_days():
    assert advance_occurrence(date(2026, 2, 25), RecurrenceInterval.WEEKLY) == date(2026, 3, 4)


@pytest.mark.parametrize(
    "current, expected",
    [
        (date(2024, 1, 31), date(2024, 2, 29)),  # leap year
        (date(2023, 1, 31), date(2023, 2, 28)),
        (date(2024, 2, 29), date(2024, 3, 29)),
        (date(2026, 3, 31), date(2026, 4, 30)),
        (date(2025, 12, 31), date(2026, 1, 31)),
        (date(2026, 5, 15), date(2026, 6, 15)),
    ],
)
def test_monthly_clamps_to_end_of_month(current, expected):
    assert advance_occurrence(current, RecurrenceInterval.MONTHLY) == expected


def test_unknown_interval_fails_loudly():
    with pytest.raises(UnknownInterval):
        advance_occurrence(date(2026, 1, 1), "Fortnightly")
    with pytest.raises(ValueError):
        advance_occurrence(date(2026, 1, 1), None)


def test_materialize_creates_expense_at_prior_occurrence(store, session, rent):
    created = materialize_due(store, date(2026, 2, 10))

    assert created == 1
    expense = session.scalars(select(Expense)).one()
    assert expense.name == "Rent (Recurring)"
    assert expense.amount == Decimal("1200.00")
    assert expense.date == date(2026, 1, 31)
    assert expense.category_id == rent.category_id

    session.refresh(rent)
    assert rent.next_occurrence_date == date(2026, 2, 28)


def test_materialize_is_idempotent_for_same_instant(store, session, rent):
    as_of = date(2026, 2, 10)
    assert materialize_due(store, as_of) == 1
    assert materialize_due(store, as_of) == 0
    assert _expense_count(session) == 1


def test_template_behind_several_intervals_steps_once_per_call(store, session, categories):
    store.add_recurring_template("Bus pass", "22.00", "Weekly", date(2026, 2, 1), categories["Transport"].id)
    as_of = date(2026, 2, 20)

    assert materialize_due(store, as_of) == 1
    assert materialize_due(store, as_of) == 1
    assert materialize_due(store, as_of) == 1
    assert materialize_due(store, as_of) == 0

    dates = sorted(session.scalars(select(Expense.date)))
    assert dates == [date(2026, 2, 1), date(2026, 2, 8), date(2026, 2, 15)]


def test_selection_respects_active_flag_and_end_date(store, session, categories):
    housing = categories["Housing"].id
    as_of = date(2026, 3, 10)
    store.add_recurring_template("Future", "10.00", "Monthly", date(2026, 3, 11), housing)
    store.add_recurring_template("Ended", "10.00", "Monthly", date(2026, 3, 1), housing, end_date=date(2026, 3, 9))
    store.add_recurring_template("Paused", "10.00", "Monthly", date(2026, 3, 1), housing, is_active=False)
    store.add_recurring_template("Ends today", "10.00", "Monthly", date(2026, 3, 1), housing, end_date=as_of)

    assert materialize_due(store, as_of) == 1
    assert session.scalars(select(Expense.name)).one() == "Ends today (Recurring)"


def test_nothing_due_writes_nothing(store, session, rent, monkeypatch):
    def unexpected(*args, **kwargs):
        raise AssertionError("no batch should be saved")

    monkeypatch.setattr(store, "save_materialization_batch", unexpected)
    assert materialize_due(store, date(2026, 1, 30)) == 0


def test_store_failure_discards_whole_batch(store, session, rent, categories, monkeypatch):
    store.add_recurring_template("Bus pass", "22.00", "Weekly", date(2026, 2, 1), categories["Transport"].id)

    def boom():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "commit", boom)
    with pytest.raises(StoreFailure):
        materialize_due(store, date(2026, 2, 10))
    monkeypatch.undo()

    assert _expense_count(session) == 0
    assert session.get(RecurringExpense, rent.id).next_occurrence_date == date(2026, 1, 31)


def test_conflict_is_retried_against_committed_state(store, session, rent, monkeypatch):
    real_save = store.save_materialization_batch
    calls = []

    def lose_first_race(new_expenses, updated_templates):
        calls.append(len(new_expenses))
        if len(calls) == 1:
            session.rollback()
            raise MaterializationConflict("lost the race")
        return real_save(new_expenses, updated_templates)

    monkeypatch.setattr(store, "save_materialization_batch", lose_first_race)
    assert materialize_due(store, date(2026, 2, 10)) == 1
    assert calls == [1, 1]
    assert _expense_count(session) == 1


def test_persistent_conflict_gives_up(store, session, rent, monkeypatch):
    def always_conflict(new_expenses, updated_templates):
        session.rollback()
        raise MaterializationConflict("lost the race")

    monkeypatch.setattr(store, "save_materialization_batch", always_conflict)
    with pytest.raises(StoreFailure):
        materialize_due(store, date(2026, 2, 10), max_attempts=2)


def test_concurrent_runs_do_not_double_materialize(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}", connect_args={"check_same_thread": False})
    init_db(engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    as_of = date(2026, 2, 10)

    with Session() as setup:
        seed = LedgerStore(setup)
        housing = seed.add_category("Housing")
        seed.add_recurring_template("Rent", "1200.00", "Monthly", date(2026, 2, 1), housing.id)

    with Session() as first, Session() as second:
        slow, fast = LedgerStore(first), LedgerStore(second)

        # The slow run reads the due template before the fast run commits.
        stale = slow.list_due_recurring_templates(as_of)
        assert len(stale) == 1

        assert materialize_due(fast, as_of) == 1

        template = stale[0]
        expense = Expense(
            name="Rent (Recurring)",
            amount=template.amount,
            date=template.next_occurrence_date,
            category_id=template.category_id,
        )
        template.next_occurrence_date = advance_occurrence(template.next_occurrence_date, template.interval)
        with pytest.raises(MaterializationConflict):
            slow.save_materialization_batch([expense], [template])

        assert materialize_due(slow, as_of) == 0

    with Session() as check:
        assert _expense_count(check) == 1
        assert check.scalars(select(RecurringExpense)).one().next_occurrence_date == date(2026, 3, 1)
    engine.dispose()
