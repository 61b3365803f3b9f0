"""
bizcase - Cross-Tool Sourced Assumptions
========================================

Moves a projected market volume into the business case while keeping the
provenance of every value it ever had.

- :meth:`CrossToolService.transfer_market_volume` builds a
  :class:`SourcedBusinessAssumption` whose active source is the market
  analysis; it never touches the business document.
- :meth:`CrossToolService.apply_transfer` attaches that assumption to a
  customer segment as ``volume_source`` and reports ``{success, message}``.
  The segment's own volume is never overwritten, so switching back to
  ``user_input`` restores it.
- Switching, staleness and alignment checks operate on the assumption alone.

``sync_status`` moves ``never_synced -> current -> stale -> current``.
``conflict`` exists in the type but nothing here produces it yet.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bizcase.config.market import MarketData
from bizcase.config.models import (
    BusinessData,
    CustomerSegment,
    DataSource,
    PatternVolume,
    SourceEntry,
    SourcedBusinessAssumption,
    SourceType,
    TimeSeriesVolume,
    ValueWithRationale,
)
from bizcase.config.settings import ALIGNMENT_THRESHOLD, MARKET_VOLUME_UNIT
from bizcase.errors import BizcaseError, SegmentNotFoundError, SourceNotAvailableError
from bizcase.market.volume import MarketInput, as_market_data, extract_volume_from_market
from bizcase.projection.engine import BusinessInput, as_business_data
from bizcase.schemas.transfer import (
    AlignmentReport,
    MarketVolumeTransfer,
    TransferOptions,
    TransferResult,
)

logger = logging.getLogger(__name__)

USER_PLACEHOLDER_RATIONALE = "User input placeholder"
MONTHLY_VOLUME_UNIT = "units_per_month"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _num(x: float) -> str:
    """Render a number without a trailing ``.0`` for whole values."""
    return str(int(x)) if float(x).is_integer() else str(x)


def market_rationale(volume: MarketVolumeTransfer) -> str:
    source = volume.source_analysis
    return (
        f"Market-based projection: {volume.metadata.methodology}. "
        f'Derived from market analysis "{volume.metadata.analysis_title}". '
        f"TAM: {_num(source.tam_value)}, Target share: {_num(source.target_market_share)}%"
    )


def segment_volume_value(segment: CustomerSegment) -> Optional[ValueWithRationale]:
    """The segment's own starting volume as a value triple, if it has one."""
    volume = segment.volume
    if isinstance(volume, TimeSeriesVolume) and volume.series:
        point = volume.series[0]
        return ValueWithRationale(
            value=point.value,
            unit=point.unit or MONTHLY_VOLUME_UNIT,
            rationale=point.rationale or segment.rationale,
        )
    if isinstance(volume, PatternVolume):
        if volume.start is not None:
            return volume.start
        if volume.base_year_total is not None:
            return volume.base_year_total
    return None


class CrossToolService:
    """Stateless operations between the market-analysis and business-case tools."""

    def __init__(self, alignment_threshold: float = ALIGNMENT_THRESHOLD):
        self.alignment_threshold = alignment_threshold

    # ------------------------------------------------------------------
    # Building and switching sources
    # ------------------------------------------------------------------

    def _market_entry(
        self,
        market: MarketData,
        volume: MarketVolumeTransfer,
        options: TransferOptions,
        timestamp: str,
    ) -> SourceEntry:
        accepted = options.auto_accept and volume.confidence_score >= options.confidence_threshold
        return SourceEntry(
            data=ValueWithRationale(
                value=volume.volume_projection.base_year_total,
                unit=volume.volume_projection.unit,
                rationale=market_rationale(volume),
            ),
            source_metadata=DataSource(
                type="market_analysis",
                timestamp=timestamp,
                source_id=(market.meta.title if market.meta and market.meta.title else "market_analysis"),
                confidence_score=volume.confidence_score,
                user_notes=options.user_notes,
            ),
            user_accepted=accepted,
            user_modified=False,
        )

    def transfer_market_volume(
        self,
        market_data: MarketInput,
        target_segment_id: str,
        options: Optional[TransferOptions] = None,
        existing: Optional[SourcedBusinessAssumption] = None,
        now: Optional[str] = None,
        user_value: Optional[ValueWithRationale] = None,
    ) -> SourcedBusinessAssumption:
        """Wrap the current market volume as a market-sourced assumption.

        Sources already held by *existing* are kept as they are.  When there
        is no ``user_input`` source yet it is seeded from *user_value*, or
        with a zero placeholder when the caller has no prior value.
        """
        options = options or TransferOptions()
        timestamp = now or _utc_now()
        market = as_market_data(market_data)
        volume = extract_volume_from_market(market)
        entry = self._market_entry(market, volume, options, timestamp)

        sources: Dict[SourceType, SourceEntry] = dict(existing.sources) if existing else {}
        sources["market_analysis"] = entry
        if "user_input" not in sources:
            sources["user_input"] = SourceEntry(
                data=user_value or ValueWithRationale(
                    value=0, unit=MARKET_VOLUME_UNIT, rationale=USER_PLACEHOLDER_RATIONALE
                ),
                source_metadata=DataSource(type="user_input", timestamp=timestamp),
                user_accepted=True,
                user_modified=False,
            )

        logger.info(
            f"Market volume {volume.volume_projection.base_year_total:.0f} prepared for segment "
            f"'{target_segment_id}' (confidence {volume.confidence_score:.2f})"
        )
        return SourcedBusinessAssumption(
            value=entry.data.as_float(0.0),
            unit=entry.data.unit,
            rationale=entry.data.rationale,
            active_source="market_analysis",
            sources=sources,
            sync_status="current",
            last_sync_timestamp=timestamp,
        )

    @staticmethod
    def switch_data_source(
        assumption: SourcedBusinessAssumption, target_source: SourceType
    ) -> SourcedBusinessAssumption:
        """Make *target_source* active, copying its value triple to the top level.

        Raises:
            SourceNotAvailableError: if the assumption holds no such source.
        """
        entry = assumption.sources.get(target_source)
        if entry is None:
            raise SourceNotAvailableError(target_source)
        return SourcedBusinessAssumption(
            value=entry.data.as_float(0.0),
            unit=entry.data.unit,
            rationale=entry.data.rationale,
            active_source=target_source,
            sources=dict(assumption.sources),
            sync_status="current" if target_source == "market_analysis" else "never_synced",
            last_sync_timestamp=assumption.last_sync_timestamp,
        )

    @staticmethod
    def mark_as_stale(
        assumptions: Iterable[SourcedBusinessAssumption],
    ) -> List[SourcedBusinessAssumption]:
        """Flag every market-sourced assumption as stale; others pass through."""
        return [
            a.model_copy(update={"sync_status": "stale"})
            if a.active_source == "market_analysis"
            else a
            for a in assumptions
        ]

    def resync(
        self,
        assumption: SourcedBusinessAssumption,
        market_data: MarketInput,
        options: Optional[TransferOptions] = None,
        now: Optional[str] = None,
    ) -> SourcedBusinessAssumption:
        """Refresh the market source from current market data.

        If the market source is active its value becomes the new top-level
        value and the status returns to ``current``.
        """
        options = options or TransferOptions()
        timestamp = now or _utc_now()
        market = as_market_data(market_data)
        entry = self._market_entry(market, extract_volume_from_market(market), options, timestamp)

        sources = dict(assumption.sources)
        sources["market_analysis"] = entry
        if assumption.active_source != "market_analysis":
            return SourcedBusinessAssumption(
                **assumption.model_dump(exclude={"sources"}), sources=sources
            )
        return SourcedBusinessAssumption(
            value=entry.data.as_float(0.0),
            unit=entry.data.unit,
            rationale=entry.data.rationale,
            active_source="market_analysis",
            sources=sources,
            sync_status="current",
            last_sync_timestamp=timestamp,
        )

    # ------------------------------------------------------------------
    # Alignment
    # ------------------------------------------------------------------

    def validate_alignment(
        self, assumption: SourcedBusinessAssumption, current_market_data: MarketInput
    ) -> AlignmentReport:
        """Compare the stored value with a freshly computed market volume.

        The variance is relative to the market volume.  Assumptions not sourced
        from the market are aligned by definition.
        """
        if assumption.active_source != "market_analysis":
            return AlignmentReport(
                is_aligned=True,
                variance_percentage=0.0,
                recommendation="Using user input - consider validating against market analysis",
            )

        market_volume = extract_volume_from_market(current_market_data).volume_projection.base_year_total
        business_volume = assumption.value
        if market_volume == 0:
            variance = 0.0 if business_volume == 0 else 1.0
        else:
            variance = abs(business_volume - market_volume) / market_volume

        aligned = variance < self.alignment_threshold
        if aligned:
            recommendation = "Volume assumptions are well-aligned with market analysis."
        else:
            recommendation = (
                f"Business volume differs by {variance * 100:.1f}% from market analysis. "
                "Consider re-syncing."
            )
        return AlignmentReport(
            is_aligned=aligned,
            variance_percentage=variance * 100,
            recommendation=recommendation,
        )

    # ------------------------------------------------------------------
    # Applying a transfer to the business case
    # ------------------------------------------------------------------

    @staticmethod
    def _with_volume_source(
        business: BusinessData, segment_id: str, source: SourcedBusinessAssumption
    ) -> BusinessData:
        tree: Dict[str, Any] = business.model_dump()
        for seg in tree["assumptions"]["customers"]["segments"]:
            if seg["id"] == segment_id:
                seg["volume_source"] = source.model_dump()
                break
        return BusinessData.model_validate(tree)

    def apply_transfer(
        self,
        business_data: BusinessInput,
        market_data: MarketInput,
        segment_id: str,
        options: Optional[TransferOptions] = None,
        now: Optional[str] = None,
    ) -> Tuple[Optional[BusinessData], TransferResult]:
        """Attach the market volume to segment *segment_id*.

        The sourced assumption lands on ``segment.volume_source``; the
        segment's own ``volume`` is left as it was and seeds the
        ``user_input`` source on the first transfer.  While the market source
        is active the projection uses its yearly value spread over twelve
        months.

        Returns:
            ``(new_business_data, result)``; the data is None on failure and
            the input is never modified.
        """
        try:
            business = as_business_data(business_data)
            if business is None:
                raise BizcaseError("No business data loaded")
            segment = business.segment_by_id(segment_id)
            if segment is None:
                raise SegmentNotFoundError(segment_id)

            assumption = self.transfer_market_volume(
                market_data,
                segment_id,
                options=options,
                existing=segment.volume_source,
                now=now,
                user_value=segment_volume_value(segment),
            )
            if assumption.value <= 0:
                raise BizcaseError("Market analysis yields no volume to transfer")
        except BizcaseError as e:
            logger.warning(f"Transfer to segment '{segment_id}' failed: {e}")
            return None, TransferResult(success=False, message=str(e))

        updated = self._with_volume_source(business, segment_id, assumption)
        label = segment.label or segment_id
        message = (
            f"Transferred {assumption.value:,.0f} {assumption.unit} from market analysis "
            f"to segment '{label}'"
        )
        logger.info(message)
        return updated, TransferResult(success=True, message=message)

    def switch_segment_source(
        self, business_data: BusinessInput, segment_id: str, target_source: SourceType
    ) -> BusinessData:
        """Switch the active source of a segment's transferred volume.

        Raises:
            SegmentNotFoundError: unknown segment.
            SourceNotAvailableError: the segment holds no such source.
        """
        business = as_business_data(business_data)
        segment = business.segment_by_id(segment_id) if business is not None else None
        if segment is None:
            raise SegmentNotFoundError(segment_id)
        if segment.volume_source is None:
            raise SourceNotAvailableError(target_source)
        switched = self.switch_data_source(segment.volume_source, target_source)
        logger.info(f"Segment '{segment_id}' volume now sourced from {target_source}")
        return self._with_volume_source(business, segment_id, switched)
