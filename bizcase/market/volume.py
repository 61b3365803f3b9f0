"""Market volume extractor.

Derives one projected yearly volume from the market-sizing tree:

    volume = TAM x SAM% / 100 x SOM% / 100 x target share% / 100

Absent percentages count as 0, so an incomplete model yields a volume of 0.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional, Tuple, Union

from bizcase.config.market import MarketData
from bizcase.config.models import value_or
from bizcase.config.settings import (
    CONFIDENCE_BASE_SCORE,
    CONFIDENCE_INCREMENTS,
    DEFAULT_MARKET_GROWTH_RATE,
    MARKET_VOLUME_UNIT,
)
from bizcase.schemas.transfer import (
    AnalysisMetadata,
    ConfidenceLevel,
    MarketVolumeTransfer,
    SourceAnalysis,
    VolumeProjection,
)

logger = logging.getLogger(__name__)

MarketInput = Union[MarketData, Mapping[str, Any]]


def as_market_data(data: Optional[MarketInput]) -> MarketData:
    """Accept a model or a raw mapping; None becomes an empty document."""
    if data is None:
        return MarketData()
    if isinstance(data, MarketData):
        return data
    return MarketData.model_validate(data)


def market_inputs(market: MarketData) -> Tuple[float, float, float, float]:
    """TAM, SAM %, SOM % and target share %, each 0 when absent."""
    return (
        value_or(market.tam_value(), 0.0),
        value_or(market.sam_percentage(), 0.0),
        value_or(market.som_percentage(), 0.0),
        value_or(market.target_share(), 0.0),
    )


def calculate_projected_volume(data: Optional[MarketInput]) -> float:
    tam, sam_pct, som_pct, share_pct = market_inputs(as_market_data(data))
    return tam * (sam_pct / 100) * (som_pct / 100) * (share_pct / 100)


def assess_confidence_level(data: Optional[MarketInput]) -> ConfidenceLevel:
    """``high`` with all four inputs present, ``medium`` with two or more."""
    present = sum(1 for v in market_inputs(as_market_data(data)) if v > 0)
    if present >= 4:
        return "high"
    if present >= 2:
        return "medium"
    return "low"


def calculate_confidence_score(data: Optional[MarketInput]) -> float:
    """0.5 plus a fixed increment per present input, capped at 1."""
    score = CONFIDENCE_BASE_SCORE
    for v, increment in zip(market_inputs(as_market_data(data)), CONFIDENCE_INCREMENTS):
        if v > 0:
            score += increment
    return min(round(score, 10), 1.0)


def extract_volume_from_market(
    data: Optional[MarketInput], today: Optional[date] = None
) -> MarketVolumeTransfer:
    """Build the volume projection and its provenance from a market document."""
    market = as_market_data(data)
    tam, sam_pct, som_pct, share_pct = market_inputs(market)
    projected = tam * (sam_pct / 100) * (som_pct / 100) * (share_pct / 100)
    meta = market.meta

    transfer = MarketVolumeTransfer(
        volume_projection=VolumeProjection(
            base_year_total=projected,
            unit=MARKET_VOLUME_UNIT,
            growth_pattern="linear",
            yoy_growth_rate=value_or(market.market_growth_rate(), DEFAULT_MARKET_GROWTH_RATE),
        ),
        source_analysis=SourceAnalysis(
            tam_value=tam,
            sam_percentage=sam_pct,
            som_percentage=som_pct,
            target_market_share=share_pct,
            confidence_level=assess_confidence_level(market),
        ),
        metadata=AnalysisMetadata(
            analysis_title=(meta.title if meta and meta.title else "Market Analysis"),
            analyst=(meta.analyst if meta and meta.analyst else "Unknown"),
            analysis_date=(
                meta.created_date
                if meta and meta.created_date
                else (today or date.today()).isoformat()
            ),
        ),
        confidence_score=calculate_confidence_score(market),
    )
    logger.debug(f"Extracted market volume {projected:.2f} ({transfer.source_analysis.confidence_level})")
    return transfer
