"""Cross-tool transfer schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ConfidenceLevel = Literal["high", "medium", "low"]


class TransferOptions(BaseModel):
    """Caller options for a market -> business transfer."""

    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    auto_accept: bool = Field(
        default=False,
        description="Mark the market source accepted when its confidence meets the threshold",
    )
    user_notes: str = ""


class VolumeProjection(BaseModel):
    base_year_total: float = 0.0
    unit: str = "units_per_year"
    growth_pattern: Literal["linear", "exponential", "seasonal"] = "linear"
    yoy_growth_rate: Optional[float] = None
    monthly_pattern: Optional[List[float]] = None


class SourceAnalysis(BaseModel):
    tam_value: float = 0.0
    sam_percentage: float = 0.0
    som_percentage: float = 0.0
    target_market_share: float = 0.0
    confidence_level: ConfidenceLevel = "low"


class AnalysisMetadata(BaseModel):
    analysis_title: str = "Market Analysis"
    analyst: str = "Unknown"
    analysis_date: str = ""
    methodology: str = "TAM-SAM-SOM analysis with market share projections"


class MarketVolumeTransfer(BaseModel):
    """Projected volume extracted from a market-analysis document."""

    volume_projection: VolumeProjection = Field(default_factory=VolumeProjection)
    source_analysis: SourceAnalysis = Field(default_factory=SourceAnalysis)
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
    confidence_score: float = Field(default=0.5, ge=0.0, le=1.0)


class TransferResult(BaseModel):
    """Outcome of a transfer trigger, the sole contract with the caller."""

    success: bool
    message: str


class AlignmentReport(BaseModel):
    is_aligned: bool
    variance_percentage: float
    recommendation: str
