"""Error conditions raised by the ledger core."""


class LedgerError(Exception):
    """Base class for every condition the core raises."""


class StoreFailure(LedgerError):
    """The ledger store could not complete a read or an atomic write."""


class MaterializationConflict(StoreFailure):
    """Another run advanced a template first; the batch was rolled back."""


class DuplicateBudget(LedgerError):
    """A budget already exists for this category and month."""

    def __init__(self, category_id, month):
        super().__init__(f"Budget already exists for category {category_id} and month {month:%Y-%m}")
        self.category_id = category_id
        self.month = month


class UnknownInterval(LedgerError, ValueError):
    """A recurrence interval outside the defined set."""

    def __init__(self, interval):
        super().__init__(f"Unknown recurrence interval: {interval!r}")
        self.interval = interval


class DateOutOfRange(LedgerError, ValueError):
    """A month shift landed outside the dates the calendar helpers support."""

    def __init__(self, value, months):
        super().__init__(f"Cannot shift {value} by {months} month(s): outside the supported date range")
        self.value = value
        self.months = months
