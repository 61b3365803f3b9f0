"""Tests for bizcase.market.volume -- TAM/SAM/SOM volume extraction."""

from datetime import date

import pytest

from bizcase.market.volume import (
    assess_confidence_level,
    calculate_confidence_score,
    calculate_projected_volume,
    extract_volume_from_market,
)


class TestProjectedVolume:

    def test_full_chain(self, market_data):
        # 2,500,000 x 0.6 x 0.3 x 0.08
        assert calculate_projected_volume(market_data) == pytest.approx(36000)

    def test_accepts_raw_mapping(self, market_dict):
        assert calculate_projected_volume(market_dict) == pytest.approx(36000)

    def test_missing_share_yields_zero(self, market_dict):
        del market_dict["market_share"]
        assert calculate_projected_volume(market_dict) == 0

    def test_empty_and_none(self):
        assert calculate_projected_volume({}) == 0
        assert calculate_projected_volume(None) == 0


class TestConfidence:

    def test_all_inputs_high(self, market_data):
        assert assess_confidence_level(market_data) == "high"
        assert calculate_confidence_score(market_data) == 1.0

    def test_three_inputs_medium(self, market_dict):
        del market_dict["market_share"]
        assert assess_confidence_level(market_dict) == "medium"
        assert calculate_confidence_score(market_dict) == pytest.approx(0.9)

    def test_tam_only_low(self, market_dict):
        sizing = market_dict["market_sizing"]
        del sizing["serviceable_addressable_market"]
        del sizing["serviceable_obtainable_market"]
        del market_dict["market_share"]
        assert assess_confidence_level(market_dict) == "low"
        assert calculate_confidence_score(market_dict) == pytest.approx(0.65)

    def test_empty(self):
        assert assess_confidence_level({}) == "low"
        assert calculate_confidence_score({}) == 0.5


class TestExtractVolume:

    def test_projection_and_provenance(self, market_data):
        transfer = extract_volume_from_market(market_data)
        assert transfer.volume_projection.base_year_total == pytest.approx(36000)
        assert transfer.volume_projection.unit == "units_per_year"
        assert transfer.volume_projection.growth_pattern == "linear"
        assert transfer.volume_projection.yoy_growth_rate == 7

        source = transfer.source_analysis
        assert (source.tam_value, source.sam_percentage, source.som_percentage,
                source.target_market_share) == (2500000, 60, 30, 8)
        assert source.confidence_level == "high"

        assert transfer.metadata.analysis_title == "EU Widgets"
        assert transfer.metadata.analyst == "Market Team"
        assert transfer.metadata.analysis_date == "2025-03-01"
        assert transfer.metadata.methodology == "TAM-SAM-SOM analysis with market share projections"
        assert transfer.confidence_score == 1.0

    def test_defaults_for_bare_document(self):
        transfer = extract_volume_from_market({}, today=date(2025, 7, 4))
        assert transfer.volume_projection.base_year_total == 0
        assert transfer.volume_projection.yoy_growth_rate == 5.0
        assert transfer.metadata.analysis_title == "Market Analysis"
        assert transfer.metadata.analyst == "Unknown"
        assert transfer.metadata.analysis_date == "2025-07-04"
