from .engine import (
    calculate_cost_savings_for_month,
    calculate_efficiency_gains_for_month,
    expand_segment_volume,
    generate_monthly_data,
    implementation_factor,
)
from .metrics import (
    annual_summary,
    calculate_business_metrics,
    default_metrics,
    find_break_even_month,
    quarterly_summary,
)
from .sensitivity import run_sensitivity

__all__ = [
    "annual_summary",
    "calculate_business_metrics",
    "calculate_cost_savings_for_month",
    "calculate_efficiency_gains_for_month",
    "default_metrics",
    "expand_segment_volume",
    "find_break_even_month",
    "generate_monthly_data",
    "implementation_factor",
    "quarterly_summary",
    "run_sensitivity",
]
