"""Metrics aggregator: folds the monthly projection into summary figures."""
from __future__ import annotations

import logging
import math
from itertools import accumulate
from typing import Dict, List, Optional, Sequence, Tuple

from bizcase.config.models import value_or
from bizcase.config.settings import (
    DEFAULT_ANNUAL_INTEREST_RATE,
    DEFAULT_BREAK_EVEN_MONTH,
    DEFAULT_PAYBACK_PERIOD,
    IRR_BOUNDS,
    IRR_INITIAL_GUESS,
    IRR_MAX_ITERATIONS,
    IRR_TOLERANCE,
    NET_PROFIT_MARGIN,
    PAYBACK_FALLBACK_RATIO,
)
from bizcase.schemas.projection import (
    AnnualSummary,
    FinancialMetrics,
    MonthlyRecord,
    QuarterSummary,
)

from .engine import BusinessInput, as_business_data, generate_monthly_data

logger = logging.getLogger(__name__)


def default_metrics() -> FinancialMetrics:
    """Metrics reported when there is no business data at all."""
    return FinancialMetrics(
        break_even_month=DEFAULT_BREAK_EVEN_MONTH,
        payback_period=DEFAULT_PAYBACK_PERIOD,
        break_even_reached=False,
    )


def find_break_even_month(cash_flows: Sequence[float]) -> Optional[int]:
    """First 1-based period whose cumulative cash flow is strictly positive."""
    for idx, cumulative in enumerate(accumulate(cash_flows)):
        if cumulative > 0:
            return idx + 1
    return None


def calculate_npv(cash_flows: Sequence[float], annual_rate: float) -> float:
    """Discount monthly flows at ``annual_rate / 12``, first flow one period out."""
    monthly_rate = annual_rate / 12
    return sum(
        flow * (1 + monthly_rate) ** -(i + 1) for i, flow in enumerate(cash_flows)
    )


def calculate_irr(cash_flows: Sequence[float]) -> Optional[float]:
    """Monthly IRR by Newton-Raphson; None when it does not converge."""
    if not cash_flows:
        return None
    rate = IRR_INITIAL_GUESS
    low, high = IRR_BOUNDS
    for _ in range(IRR_MAX_ITERATIONS):
        npv = 0.0
        derivative = 0.0
        for j, flow in enumerate(cash_flows):
            npv += flow / (1 + rate) ** j
            derivative -= j * flow / (1 + rate) ** (j + 1)

        if abs(npv) < IRR_TOLERANCE:
            return rate
        if derivative == 0:
            break

        rate = min(max(rate - npv / derivative, low), high)

    return None


def calculate_business_metrics(
    data: BusinessInput,
    records: Optional[List[MonthlyRecord]] = None,
) -> FinancialMetrics:
    """Fold the monthly projection of *data* into :class:`FinancialMetrics`.

    Never raises on missing data: ``None`` yields :func:`default_metrics`.
    Pass *records* to reuse an already generated projection.
    """
    model = as_business_data(data)
    if model is None:
        logger.debug("No business data; returning default metrics")
        return default_metrics()

    if records is None:
        records = generate_monthly_data(model)

    cash_flows = [r.net_cash_flow for r in records]
    cumulative = list(accumulate(cash_flows))

    total_revenue = float(sum(r.revenue for r in records))
    net_profit = total_revenue * NET_PROFIT_MARGIN
    total_costs = -float(sum(r.cogs + r.total_opex for r in records))
    annual_rate = value_or(model.assumptions.financial.interest_rate, DEFAULT_ANNUAL_INTEREST_RATE)

    break_even = find_break_even_month(cash_flows)
    if break_even is not None:
        break_even_month = break_even
        payback_period = break_even
    else:
        break_even_month = DEFAULT_BREAK_EVEN_MONTH
        payback_period = math.ceil(PAYBACK_FALLBACK_RATIO * len(records))

    investment = abs(min(min(cumulative, default=0), 0))
    irr = calculate_irr(cash_flows)

    return FinancialMetrics(
        total_revenue=total_revenue,
        total_costs=total_costs,
        net_profit=net_profit,
        npv=calculate_npv(cash_flows, annual_rate),
        irr=irr if irr is not None else 0.0,
        payback_period=payback_period,
        break_even_month=break_even_month,
        break_even_reached=break_even is not None,
        roa=net_profit / investment if investment > 0 else 0.0,
        total_investment_required=investment,
        monthly_data=records,
    )


# ------------------------------------------------------------------
# Roll-ups for the annual and quarterly tables
# ------------------------------------------------------------------

def annual_summary(records: Sequence[MonthlyRecord]) -> List[AnnualSummary]:
    """Per-year totals with a running cumulative cash flow."""
    years: Dict[int, AnnualSummary] = {}
    for r in records:
        year = (r.month - 1) // 12 + 1
        row = years.setdefault(year, AnnualSummary(year=year))
        row.sales_volume += r.sales_volume
        row.revenue += r.revenue
        row.cogs += r.cogs
        row.gross_profit += r.gross_profit
        row.total_opex += r.total_opex
        row.ebitda += r.ebitda
        row.capex += r.capex
        row.net_cash_flow += r.net_cash_flow

    running = 0
    result = []
    for year in sorted(years):
        row = years[year]
        running += row.net_cash_flow
        row.cumulative_cash_flow = running
        result.append(row)
    return result


def quarterly_summary(records: Sequence[MonthlyRecord]) -> List[QuarterSummary]:
    """Per-quarter totals labelled ``Y<year> Q<quarter>``."""
    quarters: Dict[Tuple[int, int], QuarterSummary] = {}
    for r in records:
        year = (r.month - 1) // 12 + 1
        quarter = ((r.month - 1) % 12) // 3 + 1
        row = quarters.get((year, quarter))
        if row is None:
            row = QuarterSummary(year=year, quarter=quarter, label=f"Y{year} Q{quarter}")
            quarters[(year, quarter)] = row
        row.revenue += r.revenue
        row.total_opex += r.total_opex
        row.ebitda += r.ebitda
        row.net_cash_flow += r.net_cash_flow
    return [quarters[key] for key in sorted(quarters)]
