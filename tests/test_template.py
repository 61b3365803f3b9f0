"""Tests for bizcase.market.template -- module-filtered market templates."""

import json

import pytest

from bizcase.config.market import MODULE_KEYS, MarketData
from bizcase.errors import UnknownModuleError
from bizcase.market.template import generate_market_template, render_market_template

SHARED = {"schema_version", "meta", "instructions"}


class TestModuleFiltering:

    @pytest.mark.parametrize("module_id", list(MODULE_KEYS))
    def test_single_module_only_has_its_keys(self, module_id):
        template = generate_market_template([module_id])
        assert set(template) == SHARED | set(k for k in MODULE_KEYS[module_id] if k != "customer_segments")

        instructions = template["instructions"]
        assert list(instructions["module_independence"]["modules"]) == [module_id]
        order = instructions["ai_workflow_protocol"]["collaborative_mode"]["presentation_order"]
        assert list(order) == [module_id]

    def test_strategic_planning_names_only_itself(self):
        instructions = generate_market_template(["strategic_planning"])["instructions"]
        assert "Focus on strategic planning." in instructions["rules"]
        note = instructions["module_independence"]["note"]
        assert "strategic planning" in note
        assert "market sizing" not in note

    def test_two_modules_in_registry_order(self):
        template = generate_market_template(["strategic_planning", "market_sizing"])
        assert "market_sizing" in template and "market_share" in template
        assert "competitive_landscape" not in template
        modules = template["instructions"]["module_independence"]["modules"]
        assert list(modules) == ["market_sizing", "strategic_planning"]
        assert "Focus on market sizing and strategic planning." in template["instructions"]["rules"]

    def test_no_selection_means_all(self):
        for selection in (None, []):
            template = generate_market_template(selection)
            for keys in MODULE_KEYS.values():
                assert keys[0] in template

    def test_unknown_module(self):
        with pytest.raises(UnknownModuleError, match="pricing_study"):
            generate_market_template(["pricing_study"])


class TestRenderedTemplate:

    def test_renders_json_that_loads_as_market_data(self):
        parsed = json.loads(render_market_template())
        market = MarketData.model_validate(parsed)
        assert market.schema_version == "2.0"
        assert market.tam_value().rationale.startswith("TODO-")

    def test_numeric_placeholders_are_zero(self):
        parsed = json.loads(render_market_template(["market_sizing"]))
        assert parsed["market_sizing"]["total_addressable_market"]["base_value"]["value"] == 0.0
