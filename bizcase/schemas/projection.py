"""Projection output schemas.

Field names are snake_case in Python and camelCase on the wire; the wire
names are consumed verbatim by the report layer.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict using the published camelCase names."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class MonthlyRecord(_WireModel):
    """One projected period.

    Costs are stored as non-positive numbers, so
    ``gross_profit = revenue + cogs``, ``ebitda = gross_profit + total_opex``
    and ``net_cash_flow = ebitda + capex``.
    """

    month: int = Field(..., ge=1, description="1-based period number")
    date: dt.date
    sales_volume: int = 0
    unit_price: float = 0.0
    revenue: int = 0
    cogs: int = 0
    gross_profit: int = 0
    sales_marketing: int = 0
    total_cac: int = Field(default=0, alias="totalCAC")
    cac: float = 0.0
    rd: int = 0
    ga: int = 0
    total_opex: int = 0
    ebitda: int = 0
    capex: int = 0
    net_cash_flow: int = 0

    # cost_savings business model only
    baseline_costs: Optional[int] = None
    cost_savings: Optional[int] = None
    efficiency_gains: Optional[int] = None
    total_benefits: Optional[int] = None


class FinancialMetrics(_WireModel):
    """Summary metrics folded from the monthly sequence.

    ``net_profit`` is a flat share of total revenue, not derived from the
    monthly EBITDA.
    """

    total_revenue: float = 0.0
    total_costs: float = 0.0
    net_profit: float = 0.0
    npv: float = 0.0
    irr: float = 0.0
    payback_period: int = 0
    break_even_month: int = 0
    break_even_reached: bool = False
    roa: float = 0.0
    total_investment_required: float = 0.0
    monthly_data: List[MonthlyRecord] = Field(default_factory=list)


class AnnualSummary(_WireModel):
    """Per-year totals for the annual cash-flow table."""

    year: int
    sales_volume: int = 0
    revenue: int = 0
    cogs: int = 0
    gross_profit: int = 0
    total_opex: int = 0
    ebitda: int = 0
    capex: int = 0
    net_cash_flow: int = 0
    cumulative_cash_flow: int = 0


class QuarterSummary(_WireModel):
    """Per-quarter totals for the quarterly trend table."""

    year: int
    quarter: int = Field(..., ge=1, le=4)
    label: str = ""
    revenue: int = 0
    total_opex: int = 0
    ebitda: int = 0
    net_cash_flow: int = 0


class SensitivityPoint(_WireModel):
    """Metrics recomputed with one driver pinned to ``value``."""

    value: float
    metrics: FinancialMetrics
