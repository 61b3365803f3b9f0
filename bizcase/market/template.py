"""Module-filtered market-analysis JSON template.

The template carries the shared sections (``schema_version``, ``meta``,
``instructions``) plus only the document keys of the selected modules.  The
embedded instructions name exactly the selected modules.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from bizcase.config.market import MODULE_KEYS, MODULE_LABELS
from bizcase.errors import UnknownModuleError

logger = logging.getLogger(__name__)

TEMPLATE_SCHEMA_VERSION = "2.0"


def _vwr(value: Any, unit: str, rationale: str) -> Dict[str, Any]:
    return {"value": value, "unit": unit, "rationale": f"TODO-{rationale}"}


# ============================================================
# Module sections
# ============================================================


def _market_sizing_sections() -> Dict[str, Any]:
    return {
        "market_sizing": {
            "total_addressable_market": {
                "base_value": _vwr(0.0, "EUR", "Total market size in base year with supporting data sources"),
                "growth_rate": _vwr(0.0, "percentage_per_year", "Annual market growth rate with historical trends and forecasts"),
                "market_definition": "TODO-Clear definition of what constitutes the total addressable market",
                "data_sources": [
                    "TODO-Source 1 (e.g., Industry reports, government data)",
                    "TODO-Source 2 (e.g., Company research, analyst reports)",
                ],
            },
            "serviceable_addressable_market": {
                "percentage_of_tam": _vwr(0.0, "percentage", "Portion of TAM addressable given geographic, regulatory or capability constraints"),
                "geographic_constraints": "TODO-Geographic limitations",
                "regulatory_constraints": "TODO-Regulatory or compliance limitations",
                "capability_constraints": "TODO-Technical or operational capability limitations",
            },
            "serviceable_obtainable_market": {
                "percentage_of_sam": _vwr(0.0, "percentage", "Realistic obtainable portion considering competition and resources"),
                "resource_constraints": "TODO-Financial, human, or operational resource limitations",
                "competitive_barriers": "TODO-Competitive barriers to market entry or expansion",
                "time_constraints": "TODO-Time-to-market or timing considerations",
            },
        },
        "market_share": {
            "current_position": {
                "current_share": _vwr(0.0, "percentage", "Current market position with supporting data"),
                "market_entry_date": "TODO-When did you enter this market",
                "current_revenue": _vwr(0.0, "EUR_per_year", "Current annual revenue from this market"),
            },
            "target_position": {
                "target_share": _vwr(0.0, "percentage", "Target market share with justification for achievability"),
                "target_timeframe": _vwr(5, "years", "Timeframe to reach target with supporting strategy"),
                "penetration_strategy": "linear",
                "key_milestones": [
                    {"year": 1, "milestone": "TODO-Year 1 milestone", "target_share": 0.0,
                     "rationale": "TODO-Why this milestone is achievable"},
                    {"year": 3, "milestone": "TODO-Year 3 milestone", "target_share": 0.0,
                     "rationale": "TODO-Mid-term progress expectations"},
                ],
            },
            "penetration_drivers": [
                {
                    "driver": "TODO-Driver name (e.g., Product differentiation)",
                    "impact": "high|medium|low",
                    "description": "TODO-How this driver will help gain market share",
                    "timeline": "TODO-When this driver becomes effective",
                }
            ],
        },
    }


def _competitive_sections() -> Dict[str, Any]:
    return {
        "competitive_landscape": {
            "market_structure": {
                "concentration_level": "fragmented|moderately_concentrated|highly_concentrated",
                "concentration_rationale": "TODO-Explanation of market concentration level",
                "barriers_to_entry": "low|medium|high",
                "barriers_description": "TODO-Description of entry barriers",
            },
            "competitors": [
                {
                    "name": "TODO-Competitor name",
                    "market_share": _vwr(0.0, "percentage", "Competitor's market position and trend"),
                    "positioning": "TODO-Competitor's positioning strategy and value proposition",
                    "strengths": ["TODO-Key strength 1", "TODO-Key strength 2"],
                    "weaknesses": ["TODO-Key weakness 1", "TODO-Key weakness 2"],
                    "threat_level": "high|medium|low",
                    "competitive_response": "TODO-Expected response to your market entry/expansion",
                }
            ],
            "competitive_advantages": [
                {
                    "advantage": "TODO-Your competitive advantage",
                    "sustainability": "high|medium|low",
                    "rationale": "TODO-Why this advantage is sustainable and valuable",
                }
            ],
        },
    }


def _customer_sections() -> Dict[str, Any]:
    return {
        "customer_analysis": {
            "market_segments": [
                {
                    "id": "segment_1",
                    "name": "TODO-Market segment name",
                    "size_percentage": _vwr(0.0, "percentage", "Segment size as % of TAM"),
                    "growth_rate": _vwr(0.0, "percentage_per_year", "Segment-specific growth rate"),
                    "target_share": _vwr(0.0, "percentage", "Target share in this segment"),
                    "customer_profile": "TODO-Description of typical customers in this segment",
                    "value_drivers": ["TODO-What drives value for these customers"],
                    "entry_strategy": "TODO-How you plan to enter/expand in this segment",
                }
            ],
            "customer_economics": {
                "average_customer_value": {
                    "annual_value": _vwr(0.0, "EUR_per_customer_per_year", "Average annual customer value with calculation basis"),
                    "lifetime_value": _vwr(0.0, "EUR_per_customer", "Customer lifetime value calculation"),
                    "acquisition_cost": _vwr(0.0, "EUR_per_customer", "Estimated customer acquisition cost in this market"),
                },
                "customer_behavior": {
                    "purchase_frequency": _vwr(0.0, "purchases_per_year", "How often customers make purchases"),
                    "loyalty_rate": _vwr(0.0, "percentage", "Customer retention/loyalty rate"),
                    "referral_rate": _vwr(0.0, "percentage", "Rate at which customers refer others"),
                },
            },
        },
    }


def _strategic_sections() -> Dict[str, Any]:
    return {
        "strategic_planning": {
            "market_entry_strategies": [
                {
                    "strategy_name": "TODO-Strategy name",
                    "description": "TODO-How this strategy wins customers",
                    "feasibility_score": _vwr(0, "scale_1_10", "Feasibility given resources and capabilities"),
                    "timeline": _vwr(0, "months", "Time needed to execute"),
                    "required_investment": _vwr(0.0, "EUR", "Investment needed for this strategy"),
                    "expected_market_share": _vwr(0.0, "percentage", "Share expected from this strategy"),
                    "risk_level": "high|medium|low",
                    "key_success_factors": ["TODO-Success factor"],
                }
            ],
            "go_to_market_roadmap": [
                {
                    "phase": "TODO-Phase name",
                    "description": "TODO-What happens in this phase",
                    "duration_months": 0,
                    "key_activities": ["TODO-Activity"],
                    "success_metrics": ["TODO-Metric"],
                }
            ],
            "data_sources": ["TODO-Strategy source"],
        },
    }


MODULE_SECTIONS: Dict[str, Callable[[], Dict[str, Any]]] = {
    "market_sizing": _market_sizing_sections,
    "competitive_intelligence": _competitive_sections,
    "customer_analysis": _customer_sections,
    "strategic_planning": _strategic_sections,
}

MODULE_DESCRIPTIONS: Dict[str, str] = {
    "market_sizing": "TAM/SAM/SOM sizing plus current and target market share",
    "competitive_intelligence": "Market structure, competitors and competitive advantages",
    "customer_analysis": "Market segments and customer economics",
    "strategic_planning": "Market entry strategies and go-to-market roadmap",
}

PRESENTATION_STEPS: Dict[str, str] = {
    "market_sizing": "Present TAM, SAM and SOM with sources, then current and target share",
    "competitive_intelligence": "Present market structure and the main competitors",
    "customer_analysis": "Present segments with size, growth and target share",
    "strategic_planning": "Present entry strategies ranked by feasibility, then the roadmap",
}


# ============================================================
# Generator
# ============================================================


def _resolve_modules(modules: Optional[Iterable[str]]) -> List[str]:
    selected = list(modules) if modules is not None else []
    if not selected:
        return list(MODULE_KEYS)
    for module_id in selected:
        if module_id not in MODULE_KEYS:
            raise UnknownModuleError(module_id)
    # registry order, duplicates dropped
    return [m for m in MODULE_KEYS if m in selected]


def _join_labels(labels: List[str]) -> str:
    if len(labels) == 1:
        return labels[0]
    return ", ".join(labels[:-1]) + " and " + labels[-1]


def _instructions(selected: List[str]) -> Dict[str, Any]:
    labels = [MODULE_LABELS[m] for m in selected]
    return {
        "purpose": (
            "Populate this JSON with market analysis data to understand market "
            "opportunities and derive realistic volume estimates."
        ),
        "rules": [
            "Replace TODOs with actual values.",
            "Every numeric datum must have value, unit, and rationale.",
            f"Focus on {_join_labels(labels)}.",
            "Percentages are expressed as 0-100, not as ratios.",
        ],
        "module_independence": {
            "note": (
                f"This template covers {_join_labels(labels)}. Each module can be "
                "imported on its own; modules already loaded are kept."
            ),
            "modules": {m: MODULE_DESCRIPTIONS[m] for m in selected},
        },
        "ai_workflow_protocol": {
            "collaborative_mode": {
                "presentation_order": {
                    m: f"Step {idx}: {PRESENTATION_STEPS[m]}"
                    for idx, m in enumerate(selected, start=1)
                },
            },
        },
    }


def generate_market_template(modules: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Template dict for *modules*; no selection means every module.

    Raises:
        UnknownModuleError: if a module id is not in the registry.
    """
    selected = _resolve_modules(modules)
    template: Dict[str, Any] = {
        "schema_version": TEMPLATE_SCHEMA_VERSION,
        "instructions": _instructions(selected),
        "meta": {
            "title": "TODO-Market Analysis Title",
            "description": "TODO-Market analysis description",
            "currency": "EUR",
            "base_year": 2024,
            "analysis_horizon_years": 5,
            "created_date": "TODO-YYYY-MM-DD",
            "analyst": "TODO-Analyst Name",
        },
    }
    for module_id in selected:
        template.update(MODULE_SECTIONS[module_id]())
    logger.debug(f"Generated market template for {selected}")
    return template


def render_market_template(modules: Optional[Iterable[str]] = None) -> str:
    """The template as indented JSON text."""
    return json.dumps(generate_market_template(modules), indent=2, ensure_ascii=False)
