"""Business-case validation - structural findings that never block computation."""
from __future__ import annotations

import logging
from typing import Any, List

from bizcase.config.models import BUSINESS_MODELS, BusinessData
from bizcase.projection.engine import BusinessInput, as_business_data
from bizcase.schemas.validation import ValidationFindings

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKER = "TODO"


class BusinessCaseValidator:
    """Collects errors, warnings and suggestions for a business case.

    Only two findings are errors: more than one populated global growth
    pattern, and a ``cost_savings`` model with neither baseline costs nor
    efficiency gains.  Everything else is a warning or a suggestion.
    """

    def __init__(self, data: BusinessInput):
        self.data = as_business_data(data)

    def validate(self) -> ValidationFindings:
        findings = ValidationFindings()
        if self.data is None:
            findings.warn("No business data to validate")
            return findings

        data = self.data
        has_global = self._has_global_growth(data)
        has_segment = self._has_segment_growth(data)

        if has_global and has_segment:
            findings.warn(
                "Growth patterns defined in both global growth_settings AND segment-level "
                "patterns. Segment-level patterns will take precedence. Consider using only "
                "one approach for consistency."
            )

        populated = self._populated_patterns(data)
        if len(populated) > 1:
            findings.error(
                f"Multiple growth patterns are populated ({len(populated)} patterns: "
                f"{', '.join(populated)}). Only ONE growth pattern should be used per business case."
            )

        self._check_business_model(data, findings)
        self._check_drivers(data, findings)
        self._check_rationales(data.model_dump(exclude_none=True), "", findings)

        if len(data.assumptions.customers.segments) == 1 and has_segment:
            findings.suggest(
                "Since you have only one customer segment, consider using global "
                "growth_settings instead of segment-level patterns for simplicity."
            )
        if not data.drivers:
            findings.suggest(
                "Consider adding sensitivity analysis drivers for key parameters like "
                "pricing, growth rates, or costs."
            )

        logger.debug(
            f"Validation: {len(findings.errors)} errors, {len(findings.warnings)} warnings, "
            f"{len(findings.suggestions)} suggestions"
        )
        return findings

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _populated_patterns(data: BusinessData) -> List[str]:
        growth = data.assumptions.growth_settings
        return growth.populated_patterns() if growth else []

    def _has_global_growth(self, data: BusinessData) -> bool:
        return bool(self._populated_patterns(data))

    @staticmethod
    def _has_segment_growth(data: BusinessData) -> bool:
        return any(s.has_growth_pattern() for s in data.assumptions.customers.segments)

    @staticmethod
    def _check_business_model(data: BusinessData, findings: ValidationFindings) -> None:
        model = data.meta.business_model
        assumptions = data.assumptions

        if not model:
            findings.warn("Business model is not specified in meta.business_model")
        elif model not in BUSINESS_MODELS:
            findings.warn(
                f"Unknown business model: {model}. Must be 'recurring', 'unit_sales', or 'cost_savings'"
            )
        elif model == "recurring":
            if assumptions.customers.churn_pct is None:
                findings.warn(
                    "Recurring business model should specify churn_pct for accurate "
                    "customer lifecycle calculations"
                )
        elif model == "cost_savings":
            savings = assumptions.cost_savings
            if not savings.baseline_costs and not savings.efficiency_gains:
                findings.error(
                    "Cost savings business model requires either baseline_costs or "
                    "efficiency_gains to be defined"
                )
        elif model == "unit_sales":
            price = assumptions.pricing.avg_unit_price
            if price is None or not price.as_float():
                findings.warn("Unit sales business model should specify avg_unit_price")

    @staticmethod
    def _check_drivers(data: BusinessData, findings: ValidationFindings) -> None:
        for driver in data.drivers:
            if not driver.path:
                findings.warn(f"Driver '{driver.key}' is missing a path")
                continue
            if not driver.path.endswith(".value"):
                findings.warn(f"Driver '{driver.key}' path '{driver.path}' should end with '.value'")
            if "[" in driver.path and "]" in driver.path:
                findings.warn(
                    f"Driver '{driver.key}' uses array index path which may be fragile: {driver.path}"
                )

    def _check_rationales(self, node: Any, path: str, findings: ValidationFindings) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                current = f"{path}.{key}" if path else key
                if key == "rationale" and isinstance(value, str):
                    if PLACEHOLDER_MARKER in value:
                        findings.warn(f"Rationale contains TODO placeholder at {current}")
                    elif not value.strip():
                        findings.warn(f"Rationale is empty at {current}")
                else:
                    self._check_rationales(value, current, findings)
        elif isinstance(node, list):
            for idx, item in enumerate(node):
                self._check_rationales(item, f"{path}[{idx}]", findings)


def validate_business_case(data: BusinessInput) -> ValidationFindings:
    """Validate *data* and return its findings."""
    return BusinessCaseValidator(data).validate()
