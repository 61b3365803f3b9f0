"""
bizcase - Business Case Data Models
===================================

Defines the Pydantic v2 models for the business-case document tree:

  Primitive : ValueWithRationale
  Sourcing  : DataSource, SourceEntry, SourcedBusinessAssumption
  Volumes   : TimeSeriesPoint, PatternVolume, TimeSeriesVolume, CustomerSegment
  Costs     : OpexItem, CapexItem, BaselineCost, EfficiencyGain
  Growth    : GrowthSettings
  Root      : BusinessMeta, BusinessAssumptions, Driver, BusinessData

Convention
----------
- Imported documents use ``extra="allow"`` so unknown keys survive a
  load / dump round trip.
- Every section of :class:`BusinessAssumptions` has a default, so the
  engine can read any field without null checks.
- Legacy volume shapes are normalised into the ``pattern`` /
  ``time_series`` sum type by a ``before`` validator on the segment, i.e.
  at the document boundary and never inside the engine.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .settings import DEFAULT_PERIODS


BUSINESS_MODELS: Tuple[str, ...] = ("recurring", "unit_sales", "cost_savings")

GrowthPatternType = Literal["geom_growth", "seasonal_growth", "linear_growth"]
SourceType = Literal["user_input", "market_analysis", "external_api", "imported"]
SyncStatus = Literal["current", "stale", "conflict", "never_synced"]


# ============================================================
# 1.  ValueWithRationale
# ============================================================


class ValueWithRationale(BaseModel):
    """The atomic unit of every numeric input: value, unit and rationale.

    Immutable once created; edits replace the whole triple.  A non-empty
    rationale is checked by the validator, not enforced here.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    value: Any = None
    unit: str = ""
    rationale: str = ""

    @field_validator("unit", "rationale", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    def as_float(self, default: Optional[float] = None) -> Optional[float]:
        """Return the value as a float, or *default* when it is not numeric."""
        v = self.value
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return default
        if not math.isfinite(v):
            return default
        return float(v)

    def replace(self, **changes: Any) -> "ValueWithRationale":
        """Return a copy with *changes* applied."""
        return self.model_copy(update=changes)


def value_or(field: Optional[ValueWithRationale], default: float) -> float:
    """Numeric value of an optional triple, falling back to *default*."""
    if field is None:
        return default
    result = field.as_float()
    return default if result is None else result


def monthly_equivalent(value: float, unit: str) -> float:
    """Convert a ``*_per_year`` quantity to its monthly share; others pass through."""
    if unit.endswith("per_year"):
        return value / 12
    return value


# ============================================================
# 2.  Sourced assumptions  (cross-tool provenance)
# ============================================================


class DataSource(BaseModel):
    """Provenance metadata for one source of a business assumption."""

    type: SourceType
    timestamp: str = ""
    source_id: Optional[str] = None
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    user_notes: Optional[str] = None


class SourceEntry(BaseModel):
    """One candidate value for a sourced assumption.

    Attributes:
        data:            The value triple supplied by this source.
        source_metadata: Where and when the value came from.
        user_accepted:   Whether the user explicitly accepted this value.
        user_modified:   Whether the user edited the synced value afterwards.
    """

    data: ValueWithRationale
    source_metadata: DataSource
    user_accepted: bool = False
    user_modified: bool = False


class SourcedBusinessAssumption(BaseModel):
    """A business input carrying several competing sources.

    ``value`` / ``unit`` / ``rationale`` always mirror
    ``sources[active_source].data``.  ``sources`` only grows; switching the
    active source is the only user-driven change.
    """

    model_config = ConfigDict(frozen=True)

    value: float = 0.0
    unit: str = ""
    rationale: str = ""
    active_source: Optional[SourceType] = None
    sources: Dict[SourceType, SourceEntry] = Field(default_factory=dict)
    sync_status: SyncStatus = "never_synced"
    last_sync_timestamp: Optional[str] = None

    @model_validator(mode="after")
    def _active_source_present(self) -> "SourcedBusinessAssumption":
        if self.active_source is None:
            return self
        entry = self.sources.get(self.active_source)
        if entry is None:
            raise ValueError(
                f"active_source {self.active_source!r} has no entry in sources"
            )
        if (
            entry.data.as_float(0.0) != self.value
            or entry.data.unit != self.unit
            or entry.data.rationale != self.rationale
        ):
            raise ValueError(
                f"value/unit/rationale must mirror sources[{self.active_source!r}]"
            )
        return self

    def available_sources(self) -> List[str]:
        """Source types currently held, in insertion order."""
        return list(self.sources.keys())

    def active_entry(self) -> Optional[SourceEntry]:
        if self.active_source is None:
            return None
        return self.sources.get(self.active_source)


# ============================================================
# 3.  Customer segments and the volume sum type
# ============================================================


class TimeSeriesPoint(BaseModel):
    """Explicit volume for a single 1-based period."""

    model_config = ConfigDict(extra="allow")

    period: int = Field(..., ge=1)
    value: float = 0.0
    unit: str = ""
    rationale: str = ""


class PatternVolume(BaseModel):
    """Volume described by a named growth pattern plus its base values."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["pattern"] = "pattern"
    pattern_type: Optional[GrowthPatternType] = None
    start: Optional[ValueWithRationale] = None
    monthly_growth: Optional[ValueWithRationale] = None
    monthly_flat_increase: Optional[ValueWithRationale] = None
    base_year_total: Optional[ValueWithRationale] = None
    yoy_growth: Optional[ValueWithRationale] = None
    seasonality_index_12: Optional[List[float]] = None
    fallback_formula: Optional[str] = None

    @field_validator("seasonality_index_12", mode="before")
    @classmethod
    def _unwrap_seasonality(cls, v: Any) -> Any:
        """Accept both a bare list and a ``{value: [...]}`` triple."""
        if isinstance(v, dict):
            return v.get("value")
        return v


class TimeSeriesVolume(BaseModel):
    """Volume given as explicit per-period values."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["time_series"] = "time_series"
    series: List[TimeSeriesPoint] = Field(default_factory=list)


SegmentVolume = Annotated[
    Union[PatternVolume, TimeSeriesVolume], Field(discriminator="type")
]


def normalize_volume(raw: Any) -> Any:
    """Normalise a legacy volume mapping into exactly one sum-type variant.

    - missing ``type`` is inferred from the presence of ``series``
    - ``monthly_growth_rate`` is renamed to ``monthly_growth``
    - missing ``pattern_type`` is inferred from the populated base fields
    """
    if not isinstance(raw, dict):
        return raw
    vol = dict(raw)
    if "monthly_growth_rate" in vol and "monthly_growth" not in vol:
        vol["monthly_growth"] = vol.pop("monthly_growth_rate")

    kind = vol.get("type")
    if kind not in ("pattern", "time_series"):
        kind = "time_series" if vol.get("series") else "pattern"
        vol["type"] = kind

    if kind == "pattern" and not vol.get("pattern_type"):
        if vol.get("base_year_total") is not None:
            vol["pattern_type"] = "seasonal_growth"
        elif vol.get("monthly_flat_increase") is not None:
            vol["pattern_type"] = "linear_growth"
        elif vol.get("monthly_growth") is not None or vol.get("start") is not None:
            vol["pattern_type"] = "geom_growth"
    return vol


class CustomerSegment(BaseModel):
    """A customer segment with exactly one active volume representation.

    Attributes:
        id:            Stable identifier used by cross-tool transfers.
        volume:        ``pattern`` or ``time_series`` volume.
        volume_source: Provenance of the volume when it was transferred in.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    label: str = ""
    kind: Optional[str] = None
    rationale: str = ""
    volume: Optional[SegmentVolume] = None
    volume_source: Optional[SourcedBusinessAssumption] = None

    @field_validator("volume", mode="before")
    @classmethod
    def _normalise_volume(cls, v: Any) -> Any:
        return normalize_volume(v)

    def first_series_value(self) -> Optional[float]:
        """First explicit time-series value, if the segment has one."""
        if isinstance(self.volume, TimeSeriesVolume) and self.volume.series:
            return self.volume.series[0].value
        return None

    def market_monthly_volume(self) -> Optional[float]:
        """Monthly volume of a transferred market source while it is active.

        Yearly units are spread evenly over twelve months.  None when the
        segment's own ``volume`` is in charge.
        """
        source = self.volume_source
        if source is None or source.active_source != "market_analysis":
            return None
        return monthly_equivalent(source.value, source.unit)

    def has_growth_pattern(self) -> bool:
        if isinstance(self.volume, PatternVolume):
            return self.volume.pattern_type is not None
        if isinstance(self.volume, TimeSeriesVolume):
            return len(self.volume.series) > 0
        return False


# ============================================================
# 4.  Costs: opex, capex, cost savings
# ============================================================


class OpexItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    value: ValueWithRationale = Field(default_factory=ValueWithRationale)


class CapexItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    timeline: Optional[Dict[str, Any]] = None


class ImplementationTimeline(BaseModel):
    """When a cost-savings measure starts and how long it ramps up (months, 1-based)."""

    start_month: int = 1
    ramp_up_months: int = 0
    full_implementation_month: Optional[int] = None


class BaselineCost(BaseModel):
    """A current cost line that the initiative reduces by a percentage."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    label: str = ""
    category: str = "other"
    current_monthly_cost: Optional[ValueWithRationale] = None
    savings_potential_pct: Optional[ValueWithRationale] = None
    implementation_timeline: Optional[ImplementationTimeline] = None


class EfficiencyGain(BaseModel):
    """A process metric improved by the initiative.

    The monthly contribution is ``improved_value * value_per_unit``: the
    ongoing value of the improved process, not the baseline-minus-improved
    delta (that delta is a cost saving).
    """

    model_config = ConfigDict(extra="allow")

    id: str = ""
    label: str = ""
    metric: str = ""
    baseline_value: Optional[ValueWithRationale] = None
    improved_value: Optional[ValueWithRationale] = None
    value_per_unit: Optional[ValueWithRationale] = None
    implementation_timeline: Optional[ImplementationTimeline] = None


class CostSavingsAssumptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    baseline_costs: List[BaselineCost] = Field(default_factory=list)
    efficiency_gains: List[EfficiencyGain] = Field(default_factory=list)


# ============================================================
# 5.  Growth settings and the remaining assumption sections
# ============================================================


class GeomGrowthSettings(BaseModel):
    start: Optional[ValueWithRationale] = None
    monthly_growth: Optional[ValueWithRationale] = None


class SeasonalGrowthSettings(BaseModel):
    base_year_total: Optional[ValueWithRationale] = None
    seasonality_index_12: Optional[ValueWithRationale] = None
    yoy_growth: Optional[ValueWithRationale] = None


class LinearGrowthSettings(BaseModel):
    start: Optional[ValueWithRationale] = None
    monthly_flat_increase: Optional[ValueWithRationale] = None


class GrowthSettings(BaseModel):
    """Global growth patterns; at most one should be populated."""

    model_config = ConfigDict(extra="allow")

    geom_growth: Optional[GeomGrowthSettings] = None
    seasonal_growth: Optional[SeasonalGrowthSettings] = None
    linear_growth: Optional[LinearGrowthSettings] = None

    def populated_patterns(self) -> List[str]:
        """Names of the patterns carrying a positive base or growth value."""
        populated: List[str] = []
        if self.geom_growth and (
            value_or(self.geom_growth.start, 0) > 0
            or value_or(self.geom_growth.monthly_growth, 0) > 0
        ):
            populated.append("geom_growth")
        if self.seasonal_growth and value_or(self.seasonal_growth.base_year_total, 0) > 0:
            populated.append("seasonal_growth")
        if self.linear_growth and (
            value_or(self.linear_growth.start, 0) > 0
            or value_or(self.linear_growth.monthly_flat_increase, 0) > 0
        ):
            populated.append("linear_growth")
        return populated


class PricingAssumptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    avg_unit_price: Optional[ValueWithRationale] = None
    discount_pct: Optional[ValueWithRationale] = None
    yearly_adjustments: Optional[Dict[str, Any]] = None


class FinancialAssumptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    interest_rate: Optional[ValueWithRationale] = None


class CustomerAssumptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    churn_pct: Optional[ValueWithRationale] = None
    segments: List[CustomerSegment] = Field(default_factory=list)


class UnitEconomicsAssumptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    cogs_pct: Optional[ValueWithRationale] = None
    cac: Optional[ValueWithRationale] = None


class BusinessAssumptions(BaseModel):
    """The nested assumption tree consumed by the projection engine."""

    model_config = ConfigDict(extra="allow")

    pricing: PricingAssumptions = Field(default_factory=PricingAssumptions)
    financial: FinancialAssumptions = Field(default_factory=FinancialAssumptions)
    customers: CustomerAssumptions = Field(default_factory=CustomerAssumptions)
    unit_economics: UnitEconomicsAssumptions = Field(
        default_factory=UnitEconomicsAssumptions
    )
    opex: List[OpexItem] = Field(default_factory=list)
    capex: List[CapexItem] = Field(default_factory=list)
    cost_savings: CostSavingsAssumptions = Field(default_factory=CostSavingsAssumptions)
    growth_settings: Optional[GrowthSettings] = None
    market_analysis: Optional[Dict[str, Any]] = None


# ============================================================
# 6.  Root document
# ============================================================


class BusinessMeta(BaseModel):
    """Document-level metadata.

    ``business_model`` is kept as a free string so an unknown model is
    reported by the validator instead of rejecting the whole document.
    """

    model_config = ConfigDict(extra="allow")

    title: str = ""
    description: str = ""
    business_model: Optional[str] = None
    archetype: Optional[str] = None
    currency: str = "EUR"
    periods: int = DEFAULT_PERIODS
    frequency: str = "monthly"
    start_date: Optional[date] = None


class Driver(BaseModel):
    """Sensitivity-analysis override pointing at a numeric field by path."""

    model_config = ConfigDict(extra="allow")

    key: str
    path: str = ""
    range: List[float] = Field(default_factory=list)
    rationale: str = ""
    unit: Optional[str] = None
    label: Optional[str] = None


class BusinessData(BaseModel):
    """Root aggregate of the business-case tool."""

    model_config = ConfigDict(extra="allow")

    schema_version: Optional[str] = None
    meta: BusinessMeta = Field(default_factory=BusinessMeta)
    assumptions: BusinessAssumptions = Field(default_factory=BusinessAssumptions)
    drivers: List[Driver] = Field(default_factory=list)

    @field_validator("drivers", mode="before")
    @classmethod
    def _none_drivers(cls, v: Any) -> Any:
        return [] if v is None else v

    # -- helpers -------------------------------------------------------------

    @property
    def business_model(self) -> Optional[str]:
        return self.meta.business_model

    def is_cost_savings(self) -> bool:
        return self.meta.business_model == "cost_savings"

    def segment_by_id(self, segment_id: str) -> Optional[CustomerSegment]:
        for segment in self.assumptions.customers.segments:
            if segment.id == segment_id:
                return segment
        return None

    def driver_by_key(self, key: str) -> Optional[Driver]:
        for driver in self.drivers:
            if driver.key == key:
                return driver
        return None
