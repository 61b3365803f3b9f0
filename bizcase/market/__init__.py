from .merge import get_available_modules, merge_market_data, validate_market_data
from .template import generate_market_template, render_market_template
from .volume import (
    assess_confidence_level,
    calculate_confidence_score,
    calculate_projected_volume,
    extract_volume_from_market,
)

__all__ = [
    "assess_confidence_level",
    "calculate_confidence_score",
    "calculate_projected_volume",
    "extract_volume_from_market",
    "generate_market_template",
    "get_available_modules",
    "merge_market_data",
    "render_market_template",
    "validate_market_data",
]
