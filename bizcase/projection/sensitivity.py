"""Driver-based sensitivity analysis.

Each value of a driver's range is written through the patch layer and the
metrics are recomputed from scratch.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from bizcase.config.settings import MAX_PERIODS
from bizcase.errors import InvalidPathError
from bizcase.patch import set_path
from bizcase.schemas.projection import SensitivityPoint

from .engine import BusinessInput, as_business_data, generate_monthly_data
from .metrics import calculate_business_metrics

logger = logging.getLogger(__name__)


def run_sensitivity(
    data: BusinessInput,
    driver_key: str,
    values: Optional[Sequence[float]] = None,
    start_date: Optional[date] = None,
    max_periods: int = MAX_PERIODS,
) -> List[SensitivityPoint]:
    """Recompute metrics with the driver *driver_key* pinned to each value.

    Args:
        data: Business case containing the driver.
        driver_key: ``Driver.key`` to vary.
        values: Values to try; defaults to the driver's ``range``.
        start_date: Date of period 1, as for :func:`generate_monthly_data`.
        max_periods: Upper bound on the horizon of every recomputed projection.

    Returns:
        One point per value, or an empty list when the driver is unknown or
        its path cannot be written.
    """
    model = as_business_data(data)
    if model is None:
        return []

    driver = model.driver_by_key(driver_key)
    if driver is None:
        logger.debug(f"Unknown driver '{driver_key}'")
        return []
    if not driver.path:
        logger.warning(f"Driver '{driver_key}' has no path")
        return []

    points = []
    for value in (driver.range if values is None else values):
        try:
            variant = set_path(model, driver.path, value)
        except InvalidPathError as e:
            logger.warning(f"Sensitivity for driver '{driver_key}' skipped: {e}")
            return []
        records = generate_monthly_data(variant, start_date=start_date, max_periods=max_periods)
        metrics = calculate_business_metrics(variant, records)
        points.append(SensitivityPoint(value=value, metrics=metrics))
    return points
