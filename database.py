import enum
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    TypeDecorator,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from config import CENT, DB_URL

# Database Setup
# Default to local SQLite, but allow override for a server database (Postgres)
engine = create_engine(DB_URL, connect_args={"check_same_thread": False} if "sqlite" in DB_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class Money(TypeDecorator):
    """Fixed-point money: NUMERIC(10, 2), or integer cents on SQLite.

    SQLite has no decimal storage, so cents keep stored values and SUMs exact.
    """

    impl = Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(Integer())
        return dialect.type_descriptor(Numeric(10, 2, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(str(value)).quantize(CENT)
        if dialect.name == "sqlite":
            return int(value * 100)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return (Decimal(int(value)) / 100).quantize(CENT)
        return Decimal(str(value)).quantize(CENT)


class RecurrenceInterval(enum.Enum):
    WEEKLY = 1
    MONTHLY = 2


# --- Models ---

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)

    expenses = relationship("Expense", back_populates="category")
    budgets = relationship("Budget", back_populates="category")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    amount = Column(Money(), nullable=False)
    date = Column(Date, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    category = relationship("Category", back_populates="expenses")


class Income(Base):
    __tablename__ = "incomes"

    id = Column(Integer, primary_key=True, index=True)
    source = Column(String(200), nullable=False)
    amount = Column(Money(), nullable=False)
    date = Column(Date, nullable=False, index=True)  # date received


class Budget(Base):
    __tablename__ = "budgets"
    __table_args__ = (UniqueConstraint("category_id", "month", name="ux_budget_category_month"),)

    id = Column(Integer, primary_key=True, index=True)
    month = Column(Date, nullable=False)  # always the first day of the month
    amount = Column(Money(), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)

    category = relationship("Category", back_populates="budgets")


class RecurringExpense(Base):
    __tablename__ = "recurring_expenses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    amount = Column(Money(), nullable=False)
    interval = Column(Enum(RecurrenceInterval), nullable=False)
    next_occurrence_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)  # False pauses the template
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)

    # Bumped on every write; a stale UPDATE raises StaleDataError
    version = Column(Integer, nullable=False)

    category = relationship("Category")

    __mapper_args__ = {"version_id_col": version}


# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

