from .market import MODULE_KEYS, MarketData
from .models import BusinessData, CustomerSegment, ValueWithRationale
from .settings import Settings

__all__ = [
    "BusinessData",
    "CustomerSegment",
    "MODULE_KEYS",
    "MarketData",
    "Settings",
    "ValueWithRationale",
]
