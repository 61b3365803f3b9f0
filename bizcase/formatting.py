"""Pure ``(value, unit)`` formatters.

Output is locale independent: ``,`` groups thousands and ``.`` marks decimals.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from .config.models import ValueWithRationale

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£", "JPY": "¥"}
RATIO_UNITS = ("ratio", "decimal")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def format_number(value: float, decimals: int = 0) -> str:
    return f"{value:,.{decimals}f}"


def format_currency(value: float, currency: str = "EUR", decimals: int = 0) -> str:
    """``€1,234`` for known currencies, ``1,234 CHF`` otherwise."""
    sign = "-" if value < 0 else ""
    amount = format_number(abs(value), decimals)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{sign}{symbol}{amount}"
    return f"{sign}{amount} {currency}"


def format_percentage(value: float, unit: str = "ratio", decimals: int = 1) -> str:
    """Ratios (0.25) are scaled by 100; percentage units (25) are shown as is."""
    scaled = value * 100 if _is_ratio_unit(unit) else value
    return f"{scaled:.{decimals}f}%"


def _is_ratio_unit(unit: str) -> bool:
    return unit in RATIO_UNITS or "pct" in unit


def _currency_in(unit: str) -> Optional[str]:
    for code in CURRENCY_SYMBOLS:
        if code in unit.upper():
            return code
    return None


def format_value(value: Any, unit: str = "", currency: Optional[str] = None) -> str:
    """Format *value* according to its *unit*.

    Rate units such as ``customers_per_month`` are plain numbers, not months.
    """
    if not _is_number(value):
        return "" if value is None else str(value)
    unit = unit or ""

    code = _currency_in(unit)
    if code:
        return format_currency(value, currency or code)
    if _is_ratio_unit(unit):
        return format_percentage(value, "ratio")
    if unit in ("percentage", "percent", "%"):
        return format_percentage(value, "percentage")
    if "hours" in unit:
        return f"{value:.1f} hours"
    if unit in ("month", "months") or ("month" in unit and "per_month" not in unit):
        return f"Month {value:g}"
    if float(value).is_integer():
        return format_number(value)
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def format_vwr(field: Optional[ValueWithRationale], currency: Optional[str] = None) -> str:
    """Format a value triple; empty string when absent."""
    if field is None:
        return ""
    return format_value(field.value, field.unit, currency)
