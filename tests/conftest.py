"""Shared fixtures for the bizcase test suite.

Provides a small unit-sales business case and a market analysis whose
TAM/SAM/SOM/target-share chain yields exactly 36,000 units per year.
"""

import copy
import json
from datetime import datetime, timezone

import pytest

from bizcase.config.market import MarketData
from bizcase.config.models import BusinessData
from bizcase.store.persistence import InMemoryPersistence


# ---------------------------------------------------------------------------
# Raw documents
# ---------------------------------------------------------------------------

def vwr(value, unit="", rationale="Documented assumption"):
    return {"value": value, "unit": unit, "rationale": rationale}


SAMPLE_BUSINESS = {
    "schema_version": "1.0",
    "meta": {
        "title": "Widget Launch",
        "description": "Direct sales of widgets to small businesses",
        "business_model": "unit_sales",
        "currency": "EUR",
        "periods": 24,
        "frequency": "monthly",
        "start_date": "2025-01-01",
    },
    "assumptions": {
        "pricing": {"avg_unit_price": vwr(40, "EUR", "List price after launch discount")},
        "financial": {"interest_rate": vwr(0.10, "ratio", "Company WACC")},
        "customers": {
            "segments": [
                {
                    "id": "smb",
                    "label": "Small business",
                    "rationale": "Core segment from pilot",
                    "volume": {
                        "type": "time_series",
                        "series": [
                            {"period": 1, "value": 1500, "unit": "units", "rationale": "Pilot orders"},
                        ],
                    },
                }
            ]
        },
        "unit_economics": {
            "cogs_pct": vwr(0.3, "ratio", "Supplier quote"),
            "cac": vwr(2, "EUR", "Paid search benchmark"),
        },
        "opex": [
            {"name": "Sales & Marketing", "value": vwr(10000, "EUR_per_month", "Two sales reps")},
            {"name": "R&D", "value": vwr(6000, "EUR_per_month", "One engineer")},
            {"name": "G&A", "value": vwr(4000, "EUR_per_month", "Office and accounting")},
        ],
    },
    "drivers": [
        {
            "key": "price",
            "path": "assumptions.pricing.avg_unit_price.value",
            "range": [30, 40, 50],
            "rationale": "Price elasticity test",
            "unit": "EUR",
        }
    ],
}


SAMPLE_MARKET = {
    "schema_version": "2.0",
    "meta": {
        "title": "EU Widgets",
        "description": "Widget demand in the EU",
        "currency": "EUR",
        "created_date": "2025-03-01",
        "analyst": "Market Team",
    },
    "market_sizing": {
        "total_addressable_market": {
            "base_value": vwr(2500000, "units", "Industry report 2024"),
            "growth_rate": vwr(7, "percentage_per_year", "Five-year CAGR"),
        },
        "serviceable_addressable_market": {
            "percentage_of_tam": vwr(60, "percentage", "Countries we ship to"),
        },
        "serviceable_obtainable_market": {
            "percentage_of_sam": vwr(30, "percentage", "Channels we can reach"),
        },
    },
    "market_share": {
        "target_position": {
            "target_share": vwr(8, "percentage", "Comparable entrants"),
        },
    },
}


def market_with_volume(tam, sam_pct, som_pct, share_pct, title="Scenario"):
    """Market document whose projected volume is tam * sam * som * share / 100^3."""
    return {
        "meta": {"title": title},
        "market_sizing": {
            "total_addressable_market": {"base_value": vwr(tam, "units")},
            "serviceable_addressable_market": {"percentage_of_tam": vwr(sam_pct, "percentage")},
            "serviceable_obtainable_market": {"percentage_of_sam": vwr(som_pct, "percentage")},
        },
        "market_share": {"target_position": {"target_share": vwr(share_pct, "percentage")}},
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def business_dict():
    """A fresh copy of the sample business case as a raw dict."""
    return copy.deepcopy(SAMPLE_BUSINESS)


@pytest.fixture
def business_data(business_dict):
    return BusinessData.model_validate(business_dict)


@pytest.fixture
def market_dict():
    """A fresh copy of the sample market analysis as a raw dict."""
    return copy.deepcopy(SAMPLE_MARKET)


@pytest.fixture
def market_data(market_dict):
    return MarketData.model_validate(market_dict)


@pytest.fixture
def cost_savings_dict():
    """Cost-savings case with one ramped baseline cost and one efficiency gain."""
    return {
        "meta": {"title": "Process Automation", "business_model": "cost_savings", "periods": 12},
        "assumptions": {
            "cost_savings": {
                "baseline_costs": [
                    {
                        "id": "manual_processing",
                        "label": "Manual invoice processing",
                        "category": "operations",
                        "current_monthly_cost": vwr(10000, "EUR_per_month", "Two FTE"),
                        "savings_potential_pct": vwr(20, "percentage", "Vendor case study"),
                        "implementation_timeline": {"start_month": 3, "ramp_up_months": 2},
                    }
                ],
                "efficiency_gains": [
                    {
                        "id": "review_hours",
                        "label": "Review time",
                        "metric": "hours_per_month",
                        "baseline_value": vwr(40, "hours", "Time study"),
                        "improved_value": vwr(8, "hours", "Pilot measurement"),
                        "value_per_unit": vwr(50, "EUR_per_hour", "Loaded hourly rate"),
                    }
                ],
            }
        },
    }


@pytest.fixture
def memory_port():
    return InMemoryPersistence()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def business_file(tmp_path, business_dict):
    path = tmp_path / "business.json"
    path.write_text(json.dumps(business_dict), encoding="utf-8")
    return path


@pytest.fixture
def market_file(tmp_path, market_dict):
    path = tmp_path / "market.json"
    path.write_text(json.dumps(market_dict), encoding="utf-8")
    return path
