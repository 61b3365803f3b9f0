"""
bizcase - Market Analysis Data Models
=====================================

Pydantic v2 models for the market-analysis document.  The document is a set
of independently optional top-level modules:

  market_sizing          TAM / SAM / SOM tree
  market_share           current and target position, milestones
  competitive_landscape  market structure, competitors, advantages
  customer_analysis      market segments and customer economics
  strategic_planning     entry strategies and go-to-market roadmap

Module identifiers used by import / template callers map onto one or more of
these document keys through :data:`MODULE_KEYS`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .models import ValueWithRationale


# ============================================================
# 1.  Module registry
# ============================================================

# Module id -> document keys owned by that module.  market_share travels with
# market_sizing; customer_segments is the legacy customer-analysis key.
MODULE_KEYS: Dict[str, Tuple[str, ...]] = {
    "market_sizing": ("market_sizing", "market_share"),
    "competitive_intelligence": ("competitive_landscape",),
    "customer_analysis": ("customer_analysis", "customer_segments"),
    "strategic_planning": ("strategic_planning",),
}

MODULE_LABELS: Dict[str, str] = {
    "market_sizing": "market sizing",
    "competitive_intelligence": "competitive intelligence",
    "customer_analysis": "customer analysis",
    "strategic_planning": "strategic planning",
}

SHARED_KEYS: Tuple[str, ...] = ("schema_version", "meta", "instructions")


def module_for_key(key: str) -> Optional[str]:
    """Return the module id owning document *key*, or None."""
    for module_id, keys in MODULE_KEYS.items():
        if key in keys:
            return module_id
    return None


# ============================================================
# 2.  Meta
# ============================================================


class MarketMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = ""
    description: str = ""
    currency: str = "EUR"
    base_year: Optional[int] = None
    analysis_horizon_years: Optional[int] = None
    created_date: Optional[str] = None
    analyst: Optional[str] = None


# ============================================================
# 3.  Market sizing and market share
# ============================================================


class TotalAddressableMarket(BaseModel):
    model_config = ConfigDict(extra="allow")

    base_value: Optional[ValueWithRationale] = None
    growth_rate: Optional[ValueWithRationale] = None
    market_definition: str = ""
    data_sources: List[str] = Field(default_factory=list)


class ServiceableAddressableMarket(BaseModel):
    model_config = ConfigDict(extra="allow")

    percentage_of_tam: Optional[ValueWithRationale] = None
    geographic_constraints: Optional[str] = None
    regulatory_constraints: Optional[str] = None
    capability_constraints: Optional[str] = None


class ServiceableObtainableMarket(BaseModel):
    model_config = ConfigDict(extra="allow")

    percentage_of_sam: Optional[ValueWithRationale] = None
    resource_constraints: Optional[str] = None
    competitive_barriers: Optional[str] = None
    time_constraints: Optional[str] = None


class MarketSizing(BaseModel):
    """TAM -> SAM (% of TAM) -> SOM (% of SAM)."""

    model_config = ConfigDict(extra="allow")

    total_addressable_market: Optional[TotalAddressableMarket] = None
    serviceable_addressable_market: Optional[ServiceableAddressableMarket] = None
    serviceable_obtainable_market: Optional[ServiceableObtainableMarket] = None


class CurrentPosition(BaseModel):
    model_config = ConfigDict(extra="allow")

    current_share: Optional[ValueWithRationale] = None
    market_entry_date: Optional[str] = None
    current_revenue: Optional[ValueWithRationale] = None


class Milestone(BaseModel):
    model_config = ConfigDict(extra="allow")

    year: Optional[int] = None
    milestone: str = ""
    target_share: Optional[float] = None
    rationale: str = ""


class TargetPosition(BaseModel):
    model_config = ConfigDict(extra="allow")

    target_share: Optional[ValueWithRationale] = None
    target_timeframe: Optional[ValueWithRationale] = None
    penetration_strategy: Optional[str] = None
    key_milestones: List[Milestone] = Field(default_factory=list)


class MarketShare(BaseModel):
    model_config = ConfigDict(extra="allow")

    current_position: Optional[CurrentPosition] = None
    target_position: Optional[TargetPosition] = None
    penetration_drivers: List[Dict[str, Any]] = Field(default_factory=list)


# ============================================================
# 4.  Competitive landscape
# ============================================================


class Competitor(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    market_share: Optional[ValueWithRationale] = None
    positioning: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    threat_level: Optional[str] = None
    competitive_response: Optional[str] = None


class CompetitiveLandscape(BaseModel):
    model_config = ConfigDict(extra="allow")

    market_structure: Dict[str, Any] = Field(default_factory=dict)
    competitors: List[Competitor] = Field(default_factory=list)
    competitive_advantages: List[Dict[str, Any]] = Field(default_factory=list)


# ============================================================
# 5.  Customer analysis
# ============================================================


class MarketSegment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    name: str = ""
    size_percentage: Optional[ValueWithRationale] = None
    growth_rate: Optional[ValueWithRationale] = None
    target_share: Optional[ValueWithRationale] = None
    customer_profile: str = ""
    value_drivers: List[str] = Field(default_factory=list)
    entry_strategy: str = ""


class CustomerAnalysis(BaseModel):
    model_config = ConfigDict(extra="allow")

    market_segments: List[MarketSegment] = Field(default_factory=list)
    customer_economics: Dict[str, Any] = Field(default_factory=dict)


# ============================================================
# 6.  Strategic planning
# ============================================================


class MarketEntryStrategy(BaseModel):
    """One market-entry option; required fields are checked by validation."""

    model_config = ConfigDict(extra="allow")

    strategy_name: Optional[str] = None
    description: Optional[str] = None
    feasibility_score: Optional[ValueWithRationale] = None
    timeline: Optional[ValueWithRationale] = None
    required_investment: Optional[ValueWithRationale] = None
    expected_market_share: Optional[ValueWithRationale] = None
    risk_level: Optional[str] = None
    key_success_factors: List[str] = Field(default_factory=list)


class StrategicPlanning(BaseModel):
    model_config = ConfigDict(extra="allow")

    market_entry_strategies: List[MarketEntryStrategy] = Field(default_factory=list)
    go_to_market_roadmap: List[Dict[str, Any]] = Field(default_factory=list)
    data_sources: List[str] = Field(default_factory=list)


# ============================================================
# 7.  Root document
# ============================================================


class MarketData(BaseModel):
    """Root aggregate of the market-analysis tool.

    Every module is optional; ``model_dump(exclude_unset=True)`` returns only
    the modules the document actually carries, which is what the merge
    resolver and module discovery work on.
    """

    model_config = ConfigDict(extra="allow")

    schema_version: Optional[str] = None
    meta: Optional[MarketMeta] = None
    instructions: Optional[Dict[str, Any]] = None
    market_sizing: Optional[MarketSizing] = None
    market_share: Optional[MarketShare] = None
    competitive_landscape: Optional[CompetitiveLandscape] = None
    customer_analysis: Optional[CustomerAnalysis] = None
    customer_segments: Optional[List[Dict[str, Any]]] = None
    strategic_planning: Optional[StrategicPlanning] = None

    def tam_value(self) -> Optional[ValueWithRationale]:
        sizing = self.market_sizing
        if sizing is None or sizing.total_addressable_market is None:
            return None
        return sizing.total_addressable_market.base_value

    def sam_percentage(self) -> Optional[ValueWithRationale]:
        sizing = self.market_sizing
        if sizing is None or sizing.serviceable_addressable_market is None:
            return None
        return sizing.serviceable_addressable_market.percentage_of_tam

    def som_percentage(self) -> Optional[ValueWithRationale]:
        sizing = self.market_sizing
        if sizing is None or sizing.serviceable_obtainable_market is None:
            return None
        return sizing.serviceable_obtainable_market.percentage_of_sam

    def target_share(self) -> Optional[ValueWithRationale]:
        share = self.market_share
        if share is None or share.target_position is None:
            return None
        return share.target_position.target_share

    def market_growth_rate(self) -> Optional[ValueWithRationale]:
        sizing = self.market_sizing
        if sizing is None or sizing.total_addressable_market is None:
            return None
        return sizing.total_addressable_market.growth_rate
