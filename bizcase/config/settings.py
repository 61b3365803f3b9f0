"""
bizcase - Engine Constants and Runtime Settings
================================================

Every numeric fallback the engine applies when an assumption is absent lives
here as a named constant, so callers and tests can assert against them
instead of scattered literals.

* **Projection constants** -- horizon cap, baseline volume, growth step,
  opex defaults and increments, CAPEX schedule.
* **Metrics constants** -- discount rate, illustrative net-profit margin,
  break-even and payback fallbacks.
* **Sync constants** -- alignment threshold and confidence scoring weights.
* :class:`Settings` -- environment-driven runtime settings.
"""

from __future__ import annotations

import math
import os
from datetime import date
from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# 1.  Projection constants
# ============================================================

MAX_PERIODS = 60
DEFAULT_PERIODS = 60
DEFAULT_START_DATE = date(2025, 1, 1)

DEFAULT_BASE_VOLUME = 1000
MONTHLY_VOLUME_GROWTH = 0.02  # linear on the period index, not compounded
DEFAULT_UNIT_PRICE = 50.0
DEFAULT_COGS_PCT = 0.3
DEFAULT_CAC = 0.0

# Sales & Marketing, R&D, G&A
DEFAULT_OPEX_BASES: Tuple[float, float, float] = (15000.0, 8000.0, 5000.0)
OPEX_MONTHLY_INCREMENTS: Tuple[float, float, float] = (300.0, 200.0, 100.0)

INITIAL_CAPEX = 50000
RECURRING_CAPEX = 10000
CAPEX_INTERVAL_MONTHS = 12


# ============================================================
# 2.  Metrics constants
# ============================================================

DEFAULT_ANNUAL_INTEREST_RATE = 0.10
NET_PROFIT_MARGIN = 0.26
DEFAULT_BREAK_EVEN_MONTH = 14
PAYBACK_FALLBACK_RATIO = 0.3
DEFAULT_PAYBACK_PERIOD = math.ceil(PAYBACK_FALLBACK_RATIO * DEFAULT_PERIODS)

IRR_INITIAL_GUESS = 0.1
IRR_TOLERANCE = 1e-4
IRR_MAX_ITERATIONS = 100
IRR_BOUNDS: Tuple[float, float] = (-0.99, 10.0)


# ============================================================
# 3.  Cross-tool sync constants
# ============================================================

ALIGNMENT_THRESHOLD = 0.15
CONFIDENCE_BASE_SCORE = 0.5
# TAM, SAM %, SOM %, target share %
CONFIDENCE_INCREMENTS: Tuple[float, float, float, float] = (0.15, 0.15, 0.10, 0.10)
DEFAULT_MARKET_GROWTH_RATE = 5.0
MARKET_VOLUME_UNIT = "units_per_year"


# ============================================================
# 4.  Runtime settings
# ============================================================


class Settings(BaseModel):
    """Runtime settings resolved from the environment.

    Attributes:
        storage_dir:          Directory used by the local-file persistence adapter.
        log_level:            Root log level applied by the CLI.
        alignment_threshold:  Variance ratio below which a market-sourced value
                              counts as aligned.
        max_periods:          Upper bound on projected periods.
    """

    model_config = ConfigDict(frozen=True)

    storage_dir: Path = Field(default=Path.home() / ".bizcase")
    log_level: str = Field(default="INFO")
    alignment_threshold: float = Field(default=ALIGNMENT_THRESHOLD, gt=0.0, le=1.0)
    max_periods: int = Field(default=MAX_PERIODS, ge=1, le=MAX_PERIODS)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``BIZCASE_*`` environment variables."""
        values = {}
        if os.environ.get("BIZCASE_STORAGE_DIR"):
            values["storage_dir"] = Path(os.environ["BIZCASE_STORAGE_DIR"])
        if os.environ.get("BIZCASE_LOG_LEVEL"):
            values["log_level"] = os.environ["BIZCASE_LOG_LEVEL"].upper()
        if os.environ.get("BIZCASE_ALIGNMENT_THRESHOLD"):
            values["alignment_threshold"] = float(os.environ["BIZCASE_ALIGNMENT_THRESHOLD"])
        return cls(**values)
