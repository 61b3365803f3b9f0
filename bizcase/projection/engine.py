"""Monthly projection generator.

Expands sparse business assumptions into a fixed-length sequence of
:class:`MonthlyRecord` rows.  The sequence is always rebuilt in full from
the current assumptions; nothing here mutates its input.
"""
from __future__ import annotations

import calendar
import logging
import math
from datetime import date
from typing import Any, List, Mapping, Optional, Union

from bizcase.config.models import (
    BusinessData,
    CustomerSegment,
    ImplementationTimeline,
    PatternVolume,
    TimeSeriesVolume,
    value_or,
)
from bizcase.config.settings import (
    CAPEX_INTERVAL_MONTHS,
    DEFAULT_BASE_VOLUME,
    DEFAULT_CAC,
    DEFAULT_COGS_PCT,
    DEFAULT_OPEX_BASES,
    DEFAULT_START_DATE,
    DEFAULT_UNIT_PRICE,
    INITIAL_CAPEX,
    MAX_PERIODS,
    MONTHLY_VOLUME_GROWTH,
    OPEX_MONTHLY_INCREMENTS,
    RECURRING_CAPEX,
)
from bizcase.schemas.projection import MonthlyRecord

logger = logging.getLogger(__name__)

BusinessInput = Union[BusinessData, Mapping[str, Any], None]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves towards +infinity."""
    return int(math.floor(x + 0.5))


def add_months(start: date, months: int) -> date:
    """Shift *start* by *months*, clamping the day to the target month's end."""
    total = start.month - 1 + months
    year = start.year + total // 12
    month = total % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def as_business_data(data: BusinessInput) -> Optional[BusinessData]:
    """Accept a model or a raw mapping; None stays None."""
    if data is None or isinstance(data, BusinessData):
        return data
    return BusinessData.model_validate(data)


def projection_periods(data: BusinessData, max_periods: int = MAX_PERIODS) -> int:
    """Number of periods to project, clamped to ``[0, max_periods]``."""
    return max(0, min(int(data.meta.periods), max_periods))


def capex_for_month(i: int) -> int:
    """CAPEX for 0-based period *i*: initial outlay, then a recurring one each year."""
    if i == 0:
        return -INITIAL_CAPEX
    if i % CAPEX_INTERVAL_MONTHS == 0:
        return -RECURRING_CAPEX
    return 0


def base_volume(data: BusinessData) -> float:
    """Base monthly volume taken from the first segment.

    An active market source wins over the segment's own first time-series
    value; with neither, the default base volume applies.
    """
    segments = data.assumptions.customers.segments
    if segments:
        sourced = segments[0].market_monthly_volume()
        if sourced is not None:
            return sourced
        first = segments[0].first_series_value()
        if first is not None:
            return first
    logger.debug(f"No time-series base volume; using default {DEFAULT_BASE_VOLUME}")
    return DEFAULT_BASE_VOLUME


def opex_bases(data: BusinessData) -> List[float]:
    """Sales & marketing, R&D and G&A monthly bases, defaulting per line."""
    items = data.assumptions.opex
    bases = []
    for idx, default in enumerate(DEFAULT_OPEX_BASES):
        item = items[idx] if idx < len(items) else None
        bases.append(value_or(item.value if item else None, default))
    return bases


# ------------------------------------------------------------------
# Segment volume expansion
# ------------------------------------------------------------------

def expand_segment_volume(segment: CustomerSegment, periods: int) -> List[float]:
    """Expand a segment's volume into one value per period.

    Missing base or growth fields resolve to 0, so an incomplete pattern
    yields zeros instead of raising.  An active market source gives a flat
    monthly volume.
    """
    sourced = segment.market_monthly_volume()
    if sourced is not None:
        return [sourced] * max(periods, 0)

    result = [0.0] * max(periods, 0)
    volume = segment.volume

    if isinstance(volume, TimeSeriesVolume):
        for entry in volume.series:
            if entry.period <= periods:
                result[entry.period - 1] = entry.value
        return result

    if not isinstance(volume, PatternVolume):
        return result

    if volume.pattern_type == "geom_growth":
        start = value_or(volume.start, 0.0)
        growth = value_or(volume.monthly_growth, 0.0)
        for i in range(periods):
            result[i] = start * (1 + growth) ** i

    elif volume.pattern_type == "linear_growth":
        start = value_or(volume.start, 0.0)
        step = value_or(volume.monthly_flat_increase, 0.0)
        for i in range(periods):
            result[i] = start + step * i

    elif volume.pattern_type == "seasonal_growth":
        monthly_base = value_or(volume.base_year_total, 0.0) / 12
        yoy = value_or(volume.yoy_growth, 0.0)
        seasonality = volume.seasonality_index_12 or []
        for i in range(periods):
            idx = seasonality[i % 12] if i % 12 < len(seasonality) else None
            seasonal = idx if idx else 1.0
            result[i] = monthly_base * (1 + yoy) ** (i // 12) * seasonal

    return result


# ------------------------------------------------------------------
# Cost savings / efficiency gains
# ------------------------------------------------------------------

def implementation_factor(
    timeline: Optional[ImplementationTimeline], month_index: int
) -> float:
    """Share of a measure in effect during 0-based period *month_index*."""
    if timeline is None:
        return 1.0
    month = month_index + 1
    if month < timeline.start_month:
        return 0.0
    if timeline.ramp_up_months <= 0:
        return 1.0
    progress = (month - timeline.start_month + 1) / timeline.ramp_up_months
    return min(progress, 1.0)


def calculate_baseline_costs_for_month(data: BusinessInput) -> float:
    """Current monthly cost before any savings are applied."""
    model = as_business_data(data)
    if model is None:
        return 0.0
    return sum(
        value_or(cost.current_monthly_cost, 0.0)
        for cost in model.assumptions.cost_savings.baseline_costs
    )


def calculate_cost_savings_for_month(data: BusinessInput, month_index: int) -> float:
    """Sum of ``current_monthly_cost * savings_potential_pct / 100 * factor``."""
    model = as_business_data(data)
    if model is None:
        return 0.0
    total = 0.0
    for cost in model.assumptions.cost_savings.baseline_costs:
        current = value_or(cost.current_monthly_cost, 0.0)
        pct = value_or(cost.savings_potential_pct, 0.0) / 100
        total += current * pct * implementation_factor(
            cost.implementation_timeline, month_index
        )
    return total


def calculate_efficiency_gains_for_month(data: BusinessInput, month_index: int) -> float:
    """Sum of ``improved_value * value_per_unit * factor`` over all gains.

    Uses the improved value on its own; ``baseline - improved`` is a cost
    saving and is not counted here.
    """
    model = as_business_data(data)
    if model is None:
        return 0.0
    total = 0.0
    for gain in model.assumptions.cost_savings.efficiency_gains:
        improved = value_or(gain.improved_value, 0.0)
        rate = value_or(gain.value_per_unit, 0.0)
        total += improved * rate * implementation_factor(
            gain.implementation_timeline, month_index
        )
    return total


# ------------------------------------------------------------------
# Generator
# ------------------------------------------------------------------

def generate_monthly_data(
    data: BusinessInput,
    start_date: Optional[date] = None,
    max_periods: int = MAX_PERIODS,
) -> List[MonthlyRecord]:
    """Project *data* into one :class:`MonthlyRecord` per period.

    Args:
        data: Business case model or raw mapping. ``None`` yields an empty list.
        start_date: Date of period 1. Falls back to ``meta.start_date`` and then
            to the default start date.
        max_periods: Upper bound on the horizon.

    Returns:
        Ordered records; identical input always gives identical output.
    """
    model = as_business_data(data)
    if model is None:
        logger.debug("No business data; projection is empty")
        return []

    periods = projection_periods(model, max_periods)
    first_date = start_date or model.meta.start_date or DEFAULT_START_DATE
    cost_savings_model = model.is_cost_savings()

    assumptions = model.assumptions
    volume0 = base_volume(model)
    unit_price = value_or(assumptions.pricing.avg_unit_price, DEFAULT_UNIT_PRICE)
    cogs_pct = value_or(assumptions.unit_economics.cogs_pct, DEFAULT_COGS_PCT)
    cac = value_or(assumptions.unit_economics.cac, DEFAULT_CAC)
    sm_base, rd_base, ga_base = opex_bases(model)
    sm_step, rd_step, ga_step = OPEX_MONTHLY_INCREMENTS
    baseline_total = calculate_baseline_costs_for_month(model) if cost_savings_model else 0.0

    records: List[MonthlyRecord] = []
    for i in range(periods):
        extra = {}
        if cost_savings_model:
            savings = round_half_up(calculate_cost_savings_for_month(model, i))
            gains = round_half_up(calculate_efficiency_gains_for_month(model, i))
            total_benefits = savings + gains
            extra = {
                "baseline_costs": round_half_up(baseline_total),
                "cost_savings": savings,
                "efficiency_gains": gains,
                "total_benefits": total_benefits,
            }
            sales_volume = 0
            price = 0.0
            revenue = total_benefits
            cogs = 0
            total_cac = 0
            cac_rate = 0.0
        else:
            sales_volume = round_half_up(volume0 * (1 + MONTHLY_VOLUME_GROWTH * i))
            price = unit_price
            revenue = round_half_up(sales_volume * unit_price)
            cogs = -round_half_up(revenue * cogs_pct)
            total_cac = -round_half_up(sales_volume * cac)
            cac_rate = cac

        gross_profit = revenue + cogs
        sales_marketing = -round_half_up(sm_base + i * sm_step)
        rd = -round_half_up(rd_base + i * rd_step)
        ga = -round_half_up(ga_base + i * ga_step)
        total_opex = sales_marketing + total_cac + rd + ga
        ebitda = gross_profit + total_opex
        capex = capex_for_month(i)

        records.append(MonthlyRecord(
            month=i + 1,
            date=add_months(first_date, i),
            sales_volume=sales_volume,
            unit_price=price,
            revenue=revenue,
            cogs=cogs,
            gross_profit=gross_profit,
            sales_marketing=sales_marketing,
            total_cac=total_cac,
            cac=cac_rate,
            rd=rd,
            ga=ga,
            total_opex=total_opex,
            ebitda=ebitda,
            capex=capex,
            net_cash_flow=ebitda + capex,
            **extra,
        ))

    logger.debug(f"Projected {len(records)} periods")
    return records
