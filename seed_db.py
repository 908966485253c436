from datetime import date

from aggregation import add_months, normalize_month
from database import Category, SessionLocal, init_db
from ledger import LedgerStore

DEMO_CATEGORIES = ["Groceries", "Housing", "Subscriptions", "Transport"]


def seed_ledger(store: LedgerStore, today: date = None) -> bool:
    """Fill an empty ledger with demo rows. Returns False if data already exists."""
    # Check if categories exist
    if store.session.query(Category).first():
        print("Categories already exist. Skipping seed.")
        return False

    today = today or date.today()
    month = normalize_month(today)
    cats = {name: store.add_category(name) for name in DEMO_CATEGORIES}

    store.add_budget(cats["Groceries"].id, month, "500.00")
    store.add_budget(cats["Housing"].id, month, "1800.00")
    store.add_budget(cats["Subscriptions"].id, month, "40.00")

    for k in range(-5, 1):
        store.add_income("Salary", "4200.00", add_months(month, k))

    store.add_expense("Weekly shop", "112.40", month, cats["Groceries"].id)
    store.add_recurring_template("Rent", "1750.00", "Monthly", month, cats["Housing"].id)
    store.add_recurring_template("Streaming", "15.99", "Monthly", month, cats["Subscriptions"].id)
    store.add_recurring_template("Bus pass", "22.00", "Weekly", month, cats["Transport"].id)
    print("Database initialized with demo ledger.")
    return True


if __name__ == "__main__":
    init_db()
    db = SessionLocal()
    try:
        seed_ledger(LedgerStore(db))
    finally:
        db.close()
