"""Tests for bizcase.sync.sourced -- market -> business volume transfer.

Covers the sourced-assumption lifecycle: transfer, source switching,
staleness, re-sync, alignment checks and applying a transfer to a segment.
"""

import pytest

from bizcase.config.models import (
    DataSource,
    SourceEntry,
    SourcedBusinessAssumption,
    TimeSeriesVolume,
    ValueWithRationale,
)
from bizcase.errors import SegmentNotFoundError, SourceNotAvailableError
from bizcase.projection.engine import generate_monthly_data
from bizcase.schemas.transfer import TransferOptions
from bizcase.sync.sourced import CrossToolService

from conftest import market_with_volume

NOW = "2025-06-01T12:00:00+00:00"

# 1,000,000 x 0.5 x 0.4 x share
MARKET_40K = market_with_volume(1000000, 50, 40, 20)
MARKET_30K = market_with_volume(1000000, 50, 40, 15)


@pytest.fixture
def service():
    return CrossToolService()


@pytest.fixture
def transferred(service, market_data):
    return service.transfer_market_volume(market_data, "smb", now=NOW)


def _user_assumption(value):
    entry = SourceEntry(
        data=ValueWithRationale(value=value, unit="units_per_year", rationale="Sales estimate"),
        source_metadata=DataSource(type="user_input", timestamp=NOW),
        user_accepted=True,
    )
    return SourcedBusinessAssumption(
        value=value, unit="units_per_year", rationale="Sales estimate",
        active_source="user_input", sources={"user_input": entry},
    )


# ===================================================================
# Transfer
# ===================================================================

class TestTransferMarketVolume:

    def test_market_source_active(self, transferred):
        assert transferred.active_source == "market_analysis"
        assert transferred.value == pytest.approx(36000)
        assert transferred.unit == "units_per_year"
        assert transferred.sync_status == "current"
        assert transferred.last_sync_timestamp == NOW
        assert set(transferred.available_sources()) == {"market_analysis", "user_input"}

    def test_rationale_describes_derivation(self, transferred):
        assert transferred.rationale.startswith(
            "Market-based projection: TAM-SAM-SOM analysis with market share projections."
        )
        assert 'Derived from market analysis "EU Widgets"' in transferred.rationale
        assert "TAM: 2500000, Target share: 8%" in transferred.rationale
        assert transferred.sources["market_analysis"].data.rationale == transferred.rationale

    def test_user_placeholder_seeded(self, transferred):
        placeholder = transferred.sources["user_input"]
        assert placeholder.data.value == 0
        assert placeholder.data.rationale == "User input placeholder"
        assert placeholder.user_accepted is True

    def test_market_metadata(self, transferred):
        meta = transferred.sources["market_analysis"].source_metadata
        assert meta.type == "market_analysis"
        assert meta.source_id == "EU Widgets"
        assert meta.confidence_score == 1.0
        assert meta.timestamp == NOW

    def test_existing_user_input_preserved(self, service, market_data):
        result = service.transfer_market_volume(market_data, "smb", existing=_user_assumption(500), now=NOW)
        assert result.sources["user_input"].data.value == 500

    def test_existing_user_input_never_replaced(self, service, market_data):
        seed = ValueWithRationale(value=900, unit="units", rationale="Newer guess")
        result = service.transfer_market_volume(
            market_data, "smb", existing=_user_assumption(500), now=NOW, user_value=seed
        )
        assert result.sources["user_input"].data.value == 500
        assert result.sources["user_input"].data.rationale == "Sales estimate"

    def test_user_source_seeded_from_prior_value(self, service, market_data):
        seed = ValueWithRationale(value=1500, unit="units", rationale="Pilot orders")
        result = service.transfer_market_volume(market_data, "smb", now=NOW, user_value=seed)
        assert result.sources["user_input"].data == seed
        assert result.active_source == "market_analysis"

    def test_auto_accept_by_confidence(self, service, market_data, market_dict):
        accepted = service.transfer_market_volume(market_data, "smb", TransferOptions(auto_accept=True))
        assert accepted.sources["market_analysis"].user_accepted is True

        del market_dict["market_share"]
        low = service.transfer_market_volume(market_dict, "smb", TransferOptions(auto_accept=True, confidence_threshold=0.95))
        assert low.sources["market_analysis"].user_accepted is False

    def test_not_accepted_by_default(self, transferred):
        assert transferred.sources["market_analysis"].user_accepted is False


# ===================================================================
# Switching and staleness
# ===================================================================

class TestSwitchDataSource:

    def test_round_trip_restores_value(self, service, transferred):
        as_user = service.switch_data_source(transferred, "user_input")
        assert as_user.value == 0
        assert as_user.active_source == "user_input"
        assert as_user.sync_status == "never_synced"

        back = service.switch_data_source(as_user, "market_analysis")
        assert back.value == transferred.value
        assert back.unit == transferred.unit
        assert back.rationale == transferred.rationale
        assert back.sync_status == "current"
        assert back.sources == transferred.sources

    def test_missing_source(self, service, transferred):
        with pytest.raises(SourceNotAvailableError, match="Data source external_api not available"):
            service.switch_data_source(transferred, "external_api")

    def test_input_unchanged(self, service, transferred):
        service.switch_data_source(transferred, "user_input")
        assert transferred.active_source == "market_analysis"


class TestMarkAsStale:

    def test_only_market_sourced_flagged(self, service, transferred):
        user = _user_assumption(500)
        stale, untouched = service.mark_as_stale([transferred, user])
        assert stale.sync_status == "stale"
        assert stale.value == transferred.value
        assert untouched is user

    def test_resync_returns_to_current(self, service, transferred):
        (stale,) = service.mark_as_stale([transferred])
        refreshed = service.resync(stale, MARKET_40K, now=NOW)
        assert refreshed.sync_status == "current"
        assert refreshed.value == pytest.approx(40000)

    def test_resync_keeps_user_value_active(self, service, transferred):
        as_user = service.switch_data_source(transferred, "user_input")
        refreshed = service.resync(as_user, MARKET_40K, now=NOW)
        assert refreshed.active_source == "user_input"
        assert refreshed.value == 0
        assert refreshed.sources["market_analysis"].data.value == pytest.approx(40000)


# ===================================================================
# Alignment
# ===================================================================

class TestValidateAlignment:

    def test_within_threshold(self, service, transferred):
        report = service.validate_alignment(transferred, MARKET_40K)
        assert report.variance_percentage == pytest.approx(10.0)
        assert report.is_aligned is True
        assert report.recommendation == "Volume assumptions are well-aligned with market analysis."

    def test_outside_threshold(self, service):
        assumption = service.transfer_market_volume(MARKET_30K, "smb", now=NOW)
        report = service.validate_alignment(assumption, MARKET_40K)
        assert report.variance_percentage == pytest.approx(25.0)
        assert report.is_aligned is False
        assert report.recommendation == (
            "Business volume differs by 25.0% from market analysis. Consider re-syncing."
        )

    def test_user_sourced_always_aligned(self, service):
        report = service.validate_alignment(_user_assumption(1), MARKET_40K)
        assert report.is_aligned is True
        assert report.variance_percentage == 0
        assert report.recommendation == "Using user input - consider validating against market analysis"

    def test_empty_market(self, service, transferred):
        report = service.validate_alignment(transferred, {})
        assert report.is_aligned is False
        assert report.variance_percentage == 100

    def test_custom_threshold(self, transferred):
        report = CrossToolService(alignment_threshold=0.05).validate_alignment(transferred, MARKET_40K)
        assert report.is_aligned is False


# ===================================================================
# Applying a transfer
# ===================================================================

class TestApplyTransfer:

    def test_success(self, service, business_data, market_data):
        updated, result = service.apply_transfer(business_data, market_data, "smb", now=NOW)

        assert result.success is True
        assert result.message == "Transferred 36,000 units_per_year from market analysis to segment 'Small business'"

        segment = updated.segment_by_id("smb")
        assert segment.volume_source.active_source == "market_analysis"
        assert segment.volume_source.value == pytest.approx(36000)
        assert segment.market_monthly_volume() == pytest.approx(3000)

    def test_segment_volume_kept(self, service, business_data, market_data):
        updated, _ = service.apply_transfer(business_data, market_data, "smb", now=NOW)
        segment = updated.segment_by_id("smb")
        assert isinstance(segment.volume, TimeSeriesVolume)
        assert segment.first_series_value() == 1500

    def test_user_source_seeded_from_segment(self, service, business_data, market_data):
        updated, _ = service.apply_transfer(business_data, market_data, "smb", now=NOW)
        user = updated.segment_by_id("smb").volume_source.sources["user_input"]
        assert user.data.value == 1500
        assert user.data.unit == "units"
        assert user.data.rationale == "Pilot orders"

    def test_projection_uses_transferred_volume(self, service, business_data, market_data):
        assert generate_monthly_data(business_data)[0].sales_volume == 1500
        updated, _ = service.apply_transfer(business_data, market_data, "smb", now=NOW)
        assert generate_monthly_data(updated)[0].sales_volume == 3000

    def test_input_untouched(self, service, business_data, market_data):
        service.apply_transfer(business_data, market_data, "smb", now=NOW)
        segment = business_data.segment_by_id("smb")
        assert isinstance(segment.volume, TimeSeriesVolume)
        assert segment.volume_source is None

    def test_unknown_segment(self, service, business_data, market_data):
        updated, result = service.apply_transfer(business_data, market_data, "enterprise")
        assert updated is None
        assert result.success is False
        assert result.message == "Segment 'enterprise' not found"

    def test_zero_market_volume(self, service, business_data):
        updated, result = service.apply_transfer(business_data, {}, "smb")
        assert updated is None
        assert result.success is False
        assert result.message == "Market analysis yields no volume to transfer"

    def test_no_business_data(self, service, market_data):
        updated, result = service.apply_transfer(None, market_data, "smb")
        assert updated is None
        assert result.success is False

    def test_repeat_transfer_keeps_user_source(self, service, business_data, market_data):
        first, _ = service.apply_transfer(business_data, market_data, "smb", now=NOW)
        second, result = service.apply_transfer(first, MARKET_40K, "smb", now=NOW)
        assert result.success is True
        source = second.segment_by_id("smb").volume_source
        assert source.value == pytest.approx(40000)
        assert source.sources["user_input"].data.value == 1500

    def test_pattern_segment_seeds_start(self, service, business_dict, market_data):
        business_dict["assumptions"]["customers"]["segments"][0]["volume"] = {
            "type": "pattern",
            "pattern_type": "geom_growth",
            "start": {"value": 200, "unit": "units_per_month", "rationale": "Launch cohort"},
            "monthly_growth": {"value": 0.05, "unit": "ratio", "rationale": "Referral growth"},
        }
        updated, _ = service.apply_transfer(business_dict, market_data, "smb", now=NOW)
        user = updated.segment_by_id("smb").volume_source.sources["user_input"]
        assert user.data.value == 200
        assert user.data.rationale == "Launch cohort"


class TestSwitchSegmentSource:

    def test_round_trip(self, service, business_data, market_data):
        transferred, _ = service.apply_transfer(business_data, market_data, "smb", now=NOW)

        as_user = service.switch_segment_source(transferred, "smb", "user_input")
        source = as_user.segment_by_id("smb").volume_source
        assert source.active_source == "user_input"
        assert source.value == 1500
        assert generate_monthly_data(as_user)[0].sales_volume == 1500

        back = service.switch_segment_source(as_user, "smb", "market_analysis")
        assert back.segment_by_id("smb").volume_source == transferred.segment_by_id("smb").volume_source
        assert generate_monthly_data(back)[0].sales_volume == 3000

    def test_unknown_segment(self, service, business_data):
        with pytest.raises(SegmentNotFoundError):
            service.switch_segment_source(business_data, "enterprise", "user_input")

    def test_segment_without_sources(self, service, business_data):
        with pytest.raises(SourceNotAvailableError):
            service.switch_segment_source(business_data, "smb", "market_analysis")
