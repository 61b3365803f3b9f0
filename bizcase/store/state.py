"""
bizcase - State Store
=====================

Holds the loaded business case, market analysis, active mode and the named
project list, and persists every successful mutation through an injected
:class:`PersistencePort`.

Rules
-----
- The engine never touches persistence; only this store does.
- Every mutation either fully succeeds and persists, or leaves state as it was.
- Mutations that need data while none is loaded log a warning and no-op.
- Malformed imports raise :class:`ImportFormatError` with state untouched.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from bizcase.config.market import MarketData
from bizcase.config.models import BusinessData, Driver, SourceType
from bizcase.errors import ImportFormatError
from bizcase.market.merge import merge_market_data
from bizcase.patch import set_path
from bizcase.projection.metrics import calculate_business_metrics
from bizcase.schemas.projection import FinancialMetrics
from bizcase.schemas.projects import ProjectMetadata, UnifiedProject
from bizcase.schemas.transfer import TransferOptions, TransferResult
from bizcase.sync.sourced import CrossToolService

from .persistence import (
    ACTIVE_MODE_KEY,
    BUSINESS_DATA_KEY,
    CURRENT_PROJECT_KEY,
    MARKET_DATA_KEY,
    PROJECTS_KEY,
    PersistencePort,
)

logger = logging.getLogger(__name__)

ActiveMode = Literal["landing", "business", "market"]
ACTIVE_MODES = ("landing", "business", "market")
EXPORT_VERSION = "1.0"

JsonInput = Union[str, bytes, Mapping[str, Any]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_json(payload: JsonInput, label: str) -> Dict[str, Any]:
    if isinstance(payload, Mapping):
        return dict(payload)
    try:
        parsed = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Invalid {label} JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ImportFormatError(f"Invalid {label} JSON: expected an object at the top level")
    return parsed


def _dump(model: Union[BusinessData, MarketData]) -> Dict[str, Any]:
    return model.model_dump(mode="json", exclude_none=True)


class StateStore:
    """Single-user application state backed by a key/value port."""

    def __init__(
        self,
        port: PersistencePort,
        service: Optional[CrossToolService] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.port = port
        self.service = service or CrossToolService()
        self.clock = clock

        self.business_data: Optional[BusinessData] = None
        self.market_data: Optional[MarketData] = None
        self.active_mode: ActiveMode = "landing"
        self.projects: List[UnifiedProject] = []
        self.current_project_id: Optional[str] = None
        self.restore()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_key(self, key: str) -> Any:
        raw = self.port.load(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupt stored value for {key}: {e}")
            return None

    def _save_key(self, key: str, value: Any) -> None:
        if not self.port.save(key, json.dumps(value, ensure_ascii=False)):
            logger.warning(f"Failed to persist {key}")

    def restore(self) -> None:
        """Reload all state from the port; corrupt entries are skipped."""
        business = self._load_key(BUSINESS_DATA_KEY)
        market = self._load_key(MARKET_DATA_KEY)
        mode = self._load_key(ACTIVE_MODE_KEY)
        projects = self._load_key(PROJECTS_KEY) or []

        try:
            self.business_data = BusinessData.model_validate(business) if business else None
        except ValidationError as e:
            logger.warning(f"Stored business data is invalid, ignoring: {e.error_count()} errors")
            self.business_data = None
        try:
            self.market_data = MarketData.model_validate(market) if market else None
        except ValidationError as e:
            logger.warning(f"Stored market data is invalid, ignoring: {e.error_count()} errors")
            self.market_data = None

        self.active_mode = mode if mode in ACTIVE_MODES else "landing"
        self.projects = []
        for item in projects:
            try:
                self.projects.append(UnifiedProject.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid stored project: {e.error_count()} errors")
        self.current_project_id = self._load_key(CURRENT_PROJECT_KEY)

    def _persist_business(self) -> None:
        if self.business_data is None:
            self.port.remove(BUSINESS_DATA_KEY)
        else:
            self._save_key(BUSINESS_DATA_KEY, _dump(self.business_data))

    def _persist_market(self) -> None:
        if self.market_data is None:
            self.port.remove(MARKET_DATA_KEY)
        else:
            self._save_key(MARKET_DATA_KEY, _dump(self.market_data))

    def _persist_projects(self) -> None:
        self._save_key(PROJECTS_KEY, [p.model_dump(mode="json", by_alias=True) for p in self.projects])
        if self.current_project_id is None:
            self.port.remove(CURRENT_PROJECT_KEY)
        else:
            self._save_key(CURRENT_PROJECT_KEY, self.current_project_id)

    # ------------------------------------------------------------------
    # Loading documents
    # ------------------------------------------------------------------

    def load_business_json(self, payload: JsonInput) -> BusinessData:
        """Replace the business case with *payload*.

        Raises:
            ImportFormatError: malformed JSON or a document the schema rejects.
        """
        raw = parse_json(payload, "business case")
        try:
            data = BusinessData.model_validate(raw)
        except ValidationError as e:
            raise ImportFormatError(f"Business case does not match the schema: {e}") from e
        self.business_data = data
        self._persist_business()
        logger.info(f"Loaded business case '{data.meta.title}'")
        return data

    def load_market_json(self, payload: JsonInput) -> MarketData:
        """Replace the market analysis with *payload*."""
        raw = parse_json(payload, "market analysis")
        try:
            data = MarketData.model_validate(raw)
        except ValidationError as e:
            raise ImportFormatError(f"Market analysis does not match the schema: {e}") from e
        self.market_data = data
        self._persist_market()
        self._mark_market_sources_stale()
        return data

    def import_market_module(self, payload: JsonInput) -> MarketData:
        """Merge a partial market document into the loaded one, module by module."""
        raw = parse_json(payload, "market module")
        try:
            merged = merge_market_data(self.market_data, raw)
        except ValidationError as e:
            raise ImportFormatError(f"Market module does not match the schema: {e}") from e
        self.market_data = merged
        self._persist_market()
        self._mark_market_sources_stale()
        return merged

    def _mark_market_sources_stale(self) -> None:
        """Flag market-sourced segment volumes once the market data changed."""
        if self.business_data is None:
            return
        data = self.business_data.model_copy(deep=True)
        changed = False
        for segment in data.assumptions.customers.segments:
            source = segment.volume_source
            if source is None:
                continue
            (stale,) = self.service.mark_as_stale([source])
            if stale is not source:
                segment.volume_source = stale
                changed = True
        if changed:
            logger.info("Market data changed; market-sourced volumes marked stale")
            self.business_data = data
            self._persist_business()

    # ------------------------------------------------------------------
    # Business-case mutations
    # ------------------------------------------------------------------

    def update_assumption(self, path: str, value: Any) -> bool:
        """Write *value* at *path* in the business case.

        Returns False (and logs) when no business case is loaded.

        Raises:
            InvalidPathError: *path* is outside the document schema.
        """
        if self.business_data is None:
            logger.warning("Cannot update business assumption: no data loaded")
            return False
        self.business_data = set_path(self.business_data, path, value)
        self._persist_business()
        return True

    def add_driver(
        self,
        path: str,
        key: str,
        range_values: Sequence[float],
        rationale: str = "",
        unit: Optional[str] = None,
    ) -> bool:
        if self.business_data is None:
            logger.warning("Cannot add driver: no data loaded")
            return False
        if any(d.path == path for d in self.business_data.drivers):
            logger.warning(f"Driver already exists for path: {path}")
            return False
        driver = Driver(key=key, path=path, range=list(range_values), rationale=rationale, unit=unit)
        self.business_data = self.business_data.model_copy(
            update={"drivers": [*self.business_data.drivers, driver]}
        )
        self._persist_business()
        return True

    def update_driver(self, path: str, **changes: Any) -> bool:
        """Update fields of the driver bound to *path* (e.g. ``range``)."""
        if self.business_data is None:
            logger.warning("Cannot update driver: no data loaded")
            return False
        drivers = []
        found = False
        for driver in self.business_data.drivers:
            if driver.path == path:
                driver = Driver.model_validate({**driver.model_dump(), **changes})
                found = True
            drivers.append(driver)
        if not found:
            logger.warning(f"No driver for path: {path}")
            return False
        self.business_data = self.business_data.model_copy(update={"drivers": drivers})
        self._persist_business()
        return True

    def remove_driver(self, path: str) -> bool:
        if self.business_data is None:
            logger.warning("Cannot remove driver: no data loaded")
            return False
        drivers = [d for d in self.business_data.drivers if d.path != path]
        if len(drivers) == len(self.business_data.drivers):
            return False
        self.business_data = self.business_data.model_copy(update={"drivers": drivers})
        self._persist_business()
        return True

    def transfer_market_volume(
        self, segment_id: str, options: Optional[TransferOptions] = None
    ) -> TransferResult:
        """Move the market volume onto a business segment."""
        if self.business_data is None or self.market_data is None:
            logger.warning("Cannot transfer market volume: business or market data not loaded")
            return TransferResult(success=False, message="Both business and market data must be loaded")
        updated, result = self.service.apply_transfer(
            self.business_data, self.market_data, segment_id, options=options
        )
        if updated is not None:
            self.business_data = updated
            self._persist_business()
        return result

    def switch_volume_source(self, segment_id: str, target_source: SourceType) -> bool:
        """Make *target_source* the active volume source of a segment.

        Raises:
            SegmentNotFoundError, SourceNotAvailableError: state is left as is.
        """
        if self.business_data is None:
            logger.warning("Cannot switch volume source: no business data loaded")
            return False
        self.business_data = self.service.switch_segment_source(
            self.business_data, segment_id, target_source
        )
        self._persist_business()
        return True

    def metrics(self) -> FinancialMetrics:
        return calculate_business_metrics(self.business_data)

    # ------------------------------------------------------------------
    # Mode and clearing
    # ------------------------------------------------------------------

    def switch_mode(self, mode: ActiveMode) -> None:
        if mode not in ACTIVE_MODES:
            raise ValueError(f"Unknown mode: {mode}")
        self.active_mode = mode
        self._save_key(ACTIVE_MODE_KEY, mode)

    def clear_business_data(self) -> None:
        self.business_data = None
        self.port.remove(BUSINESS_DATA_KEY)

    def clear_market_data(self) -> None:
        self.market_data = None
        self.port.remove(MARKET_DATA_KEY)

    def clear_all(self) -> None:
        """Drop business data, market data and mode; projects are kept."""
        self.clear_business_data()
        self.clear_market_data()
        self.active_mode = "landing"
        self.port.remove(ACTIVE_MODE_KEY)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _find_project(self, project_id: str) -> Optional[UnifiedProject]:
        return next((p for p in self.projects if p.project_id == project_id), None)

    def create_project(
        self, name: str, tags: Sequence[str] = (), description: str = ""
    ) -> UnifiedProject:
        """Snapshot the current data into a new project and make it current."""
        project = UnifiedProject(
            project_id=uuid.uuid4().hex,
            project_name=name,
            last_modified=self.clock().isoformat(),
            business_data=_dump(self.business_data) if self.business_data else None,
            market_data=_dump(self.market_data) if self.market_data else None,
            metadata=ProjectMetadata(tags=list(tags), description=description),
        )
        self.projects.append(project)
        self.current_project_id = project.project_id
        self._persist_projects()
        logger.info(f"Created project '{name}' ({project.project_id})")
        return project

    def save_project(self, project_id: Optional[str] = None) -> bool:
        """Store the current data in *project_id* (default: the current project)."""
        project_id = project_id or self.current_project_id
        project = self._find_project(project_id) if project_id else None
        if project is None:
            logger.warning(f"Cannot save project: unknown project {project_id!r}")
            return False
        project.business_data = _dump(self.business_data) if self.business_data else None
        project.market_data = _dump(self.market_data) if self.market_data else None
        project.last_modified = self.clock().isoformat()
        self._persist_projects()
        return True

    def load_project(self, project_id: str) -> bool:
        """Replace the current data with the project's snapshot."""
        project = self._find_project(project_id)
        if project is None:
            logger.warning(f"Cannot load project: unknown project {project_id!r}")
            return False
        try:
            business = BusinessData.model_validate(project.business_data) if project.business_data else None
            market = MarketData.model_validate(project.market_data) if project.market_data else None
        except ValidationError as e:
            raise ImportFormatError(f"Project '{project.project_name}' holds invalid data: {e}") from e

        self.business_data = business
        self.market_data = market
        self.current_project_id = project_id
        self._persist_business()
        self._persist_market()
        self._persist_projects()
        return True

    def delete_project(self, project_id: str) -> bool:
        project = self._find_project(project_id)
        if project is None:
            return False
        self.projects.remove(project)
        if self.current_project_id == project_id:
            self.current_project_id = None
        self._persist_projects()
        return True

    def export_all(self) -> Dict[str, Any]:
        """Everything the store holds, as one JSON-ready dict."""
        return {
            "version": EXPORT_VERSION,
            "exported_at": self.clock().isoformat(),
            "active_mode": self.active_mode,
            "business_data": _dump(self.business_data) if self.business_data else None,
            "market_data": _dump(self.market_data) if self.market_data else None,
            "projects": [p.model_dump(mode="json", by_alias=True) for p in self.projects],
            "current_project_id": self.current_project_id,
        }
