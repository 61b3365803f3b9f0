"""Tests for bizcase.market.merge -- partial-data merge and market validation.

Merging replaces whole modules; absent modules, including ``market_share``
when only ``market_sizing`` is re-imported, are carried over verbatim.
"""

import copy

from bizcase.config.market import MarketData
from bizcase.market.merge import get_available_modules, merge_market_data, validate_market_data


STRATEGY = {
    "strategy_name": "Direct sales",
    "description": "Field sales to mid-sized firms",
    "feasibility_score": {"value": 7, "unit": "scale_1_10", "rationale": "Existing team"},
    "timeline": {"value": 9, "unit": "months", "rationale": "Hiring plan"},
    "required_investment": {"value": 250000, "unit": "EUR", "rationale": "Budget"},
    "expected_market_share": {"value": 3, "unit": "percentage", "rationale": "Pilot"},
    "risk_level": "medium",
}


def _dump(market: MarketData) -> dict:
    return market.model_dump(exclude_unset=True)


# ===================================================================
# Merge
# ===================================================================

class TestMergeMarketData:

    def test_disjoint_modules_both_survive(self, market_dict):
        existing = {"schema_version": "2.0", "market_sizing": market_dict["market_sizing"]}
        incoming = {"strategic_planning": {"market_entry_strategies": [STRATEGY]}}

        merged = _dump(merge_market_data(existing, incoming))
        assert merged["market_sizing"] == market_dict["market_sizing"]
        assert merged["strategic_planning"] == incoming["strategic_planning"]

    def test_empty_incoming_returns_existing(self, market_dict):
        merged = merge_market_data(market_dict, {"schema_version": "2.0"})
        assert _dump(merged) == _dump(MarketData.model_validate(market_dict))

    def test_merge_is_repeatable(self, market_dict):
        incoming = {"strategic_planning": {"market_entry_strategies": [STRATEGY]}}
        once = merge_market_data(market_dict, incoming)
        twice = merge_market_data(once, incoming)
        assert _dump(once) == _dump(twice)

    def test_module_replaced_not_deep_merged(self, market_dict):
        incoming = {
            "market_sizing": {
                "total_addressable_market": {
                    "base_value": {"value": 4000000, "unit": "units", "rationale": "Updated report"},
                },
            },
        }
        merged = merge_market_data(market_dict, incoming)

        tam = merged.market_sizing.total_addressable_market
        assert tam.base_value.value == 4000000
        assert tam.growth_rate is None
        assert merged.market_sizing.serviceable_addressable_market is None
        assert _dump(merged)["market_share"] == market_dict["market_share"]

    def test_market_share_replaced_when_present(self, market_dict):
        incoming = {
            "market_sizing": market_dict["market_sizing"],
            "market_share": {"target_position": {"target_share": {"value": 12, "unit": "percentage", "rationale": "x"}}},
        }
        merged = merge_market_data(market_dict, incoming)
        assert merged.target_share().value == 12

    def test_meta_from_incoming_when_present(self, market_dict):
        merged = merge_market_data(market_dict, {"meta": {"title": "Refreshed"}})
        assert merged.meta.title == "Refreshed"
        assert merge_market_data(market_dict, {}).meta.title == "EU Widgets"

    def test_schema_version_kept_from_existing(self, market_dict):
        merged = merge_market_data(market_dict, {"schema_version": "3.0"})
        assert merged.schema_version == "2.0"
        assert merge_market_data({}, {"schema_version": "3.0"}).schema_version == "3.0"

    def test_inputs_not_mutated(self, market_dict):
        before = copy.deepcopy(market_dict)
        incoming = {"strategic_planning": {"market_entry_strategies": [STRATEGY]}}
        merge_market_data(market_dict, incoming)
        assert market_dict == before

    def test_none_existing(self, market_dict):
        merged = merge_market_data(None, market_dict)
        assert merged.tam_value().value == 2500000


class TestAvailableModules:

    def test_registry_order(self, market_dict):
        market_dict["strategic_planning"] = {"market_entry_strategies": [STRATEGY]}
        assert get_available_modules(market_dict) == ["market_sizing", "strategic_planning"]

    def test_empty_section_counts(self):
        assert get_available_modules({"competitive_landscape": {}}) == ["competitive_intelligence"]
        assert get_available_modules({"customer_segments": []}) == ["customer_analysis"]

    def test_market_share_alone_is_market_sizing(self):
        assert get_available_modules({"market_share": {}}) == ["market_sizing"]

    def test_nothing(self):
        assert get_available_modules({"meta": {"title": "x"}}) == []
        assert get_available_modules(None) == []


# ===================================================================
# Validation
# ===================================================================

class TestValidateMarketData:

    def test_sample_is_valid(self, market_data):
        findings = validate_market_data(market_data)
        assert findings.is_valid
        assert findings.errors == []

    def test_percentage_out_of_range(self, market_dict):
        market_dict["market_sizing"]["serviceable_addressable_market"]["percentage_of_tam"]["value"] = 120
        findings = validate_market_data(market_dict)
        assert not findings.is_valid
        assert any("percentage_of_tam" in e for e in findings.errors)

    def test_missing_tam(self, market_dict):
        del market_dict["market_sizing"]["total_addressable_market"]
        findings = validate_market_data(market_dict)
        assert any("base_value is required" in e for e in findings.errors)

    def test_missing_target_share_is_warning(self, market_dict):
        market_dict["market_share"] = {}
        findings = validate_market_data(market_dict)
        assert findings.is_valid
        assert any("target_share" in w for w in findings.warnings)

    def test_incomplete_strategy(self):
        partial = {k: v for k, v in STRATEGY.items() if k != "risk_level"}
        findings = validate_market_data({"strategic_planning": {"market_entry_strategies": [partial]}})
        assert findings.errors == ["strategic_planning.market_entry_strategies[0].risk_level is required"]

    def test_complete_strategy(self):
        findings = validate_market_data({"strategic_planning": {"market_entry_strategies": [STRATEGY]}})
        assert findings.is_valid

    def test_competitor_needs_name(self):
        findings = validate_market_data({"competitive_landscape": {"competitors": [{"positioning": "cheap"}]}})
        assert findings.errors == ["competitive_landscape.competitors[0].name is required"]

    def test_no_modules_warns(self):
        findings = validate_market_data({})
        assert findings.is_valid
        assert findings.warnings == ["No market analysis modules present"]
