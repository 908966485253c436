"""Environment-driven settings for the budgeting engine.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory.
"""

import logging
import os
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DB_URL = os.getenv("DATABASE_URL", "sqlite:///budgeting.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Marker appended to the name of every expense generated from a template
RECURRING_SUFFIX = os.getenv("RECURRING_SUFFIX", " (Recurring)")
MATERIALIZE_MAX_ATTEMPTS = int(os.getenv("MATERIALIZE_MAX_ATTEMPTS", "3"))

TREND_MONTHS = 6
NEAR_LIMIT_RATIO = Decimal("0.85")
CENT = Decimal("0.01")


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging for command-line entry points."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
