"""Pydantic v2 output contracts shared by the engine, store and exporters."""

from .projection import *  # noqa: F401,F403
from .transfer import *  # noqa: F401,F403
from .validation import *  # noqa: F401,F403
from .projects import *  # noqa: F401,F403
