"""Partial-data merge for market-analysis documents.

Merging works at module granularity: every top-level section present in
the incoming document replaces the existing one wholesale, every section
absent from it is carried over untouched.  ``market_share`` therefore
survives a ``market_sizing`` re-import unless the incoming payload carries
its own ``market_share``.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from bizcase.config.market import MODULE_KEYS, MarketData
from bizcase.config.models import ValueWithRationale
from bizcase.schemas.validation import ValidationFindings

logger = logging.getLogger(__name__)

MarketInput = Union[MarketData, Mapping[str, Any], None]

REQUIRED_STRATEGY_FIELDS = (
    "strategy_name",
    "description",
    "feasibility_score",
    "timeline",
    "required_investment",
    "expected_market_share",
    "risk_level",
)


def _as_dict(data: MarketInput) -> Dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, MarketData):
        return data.model_dump(exclude_unset=True)
    return dict(data)


def merge_market_data(existing: MarketInput, incoming: MarketInput) -> MarketData:
    """Merge *incoming* into *existing* one top-level section at a time.

    ``schema_version`` is kept from *existing* when it has one.
    """
    merged = copy.deepcopy(_as_dict(existing))
    new = _as_dict(incoming)

    replaced = []
    for key, value in new.items():
        if key == "schema_version" or value is None:
            continue
        merged[key] = copy.deepcopy(value)
        replaced.append(key)

    if not merged.get("schema_version") and new.get("schema_version"):
        merged["schema_version"] = new["schema_version"]

    logger.debug(f"Merged market data; replaced sections: {replaced or 'none'}")
    return MarketData.model_validate(merged)


def get_available_modules(data: MarketInput) -> List[str]:
    """Module ids whose document keys are present, in registry order.

    An empty section (``{}`` or ``[]``) still counts as present.
    """
    doc = _as_dict(data)
    return [
        module_id
        for module_id, keys in MODULE_KEYS.items()
        if any(doc.get(key) is not None for key in keys)
    ]


# ============================================================
# Validation
# ============================================================


def _check_percentage(findings: ValidationFindings, label: str, field: Optional[ValueWithRationale]) -> None:
    if field is None:
        findings.error(f"{label} is required")
        return
    value = field.as_float()
    if value is None:
        findings.error(f"{label} must be numeric")
    elif not 0 <= value <= 100:
        findings.error(f"{label} must be between 0 and 100 (got {value})")


def validate_market_data(data: MarketInput) -> ValidationFindings:
    """Check the required fields of every module present in *data*."""
    market = data if isinstance(data, MarketData) else MarketData.model_validate(_as_dict(data))
    findings = ValidationFindings()

    if market.market_sizing is not None:
        tam = market.tam_value()
        if tam is None or tam.as_float() is None:
            findings.error("market_sizing.total_addressable_market.base_value is required")
        elif tam.as_float() < 0:
            findings.error("market_sizing.total_addressable_market.base_value must not be negative")
        _check_percentage(
            findings,
            "market_sizing.serviceable_addressable_market.percentage_of_tam",
            market.sam_percentage(),
        )
        _check_percentage(
            findings,
            "market_sizing.serviceable_obtainable_market.percentage_of_sam",
            market.som_percentage(),
        )

    if market.market_share is not None:
        position = market.market_share.target_position
        if position is not None and position.target_share is not None:
            _check_percentage(findings, "market_share.target_position.target_share", position.target_share)
        else:
            findings.warn("market_share.target_position.target_share is not set")

    if market.competitive_landscape is not None:
        for idx, competitor in enumerate(market.competitive_landscape.competitors):
            if not competitor.name:
                findings.error(f"competitive_landscape.competitors[{idx}].name is required")
            if competitor.market_share is not None:
                _check_percentage(
                    findings,
                    f"competitive_landscape.competitors[{idx}].market_share",
                    competitor.market_share,
                )

    if market.strategic_planning is not None:
        for idx, strategy in enumerate(market.strategic_planning.market_entry_strategies):
            for field_name in REQUIRED_STRATEGY_FIELDS:
                if getattr(strategy, field_name) in (None, ""):
                    findings.error(
                        f"strategic_planning.market_entry_strategies[{idx}].{field_name} is required"
                    )

    if not get_available_modules(market):
        findings.warn("No market analysis modules present")

    return findings
