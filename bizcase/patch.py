"""
bizcase - Typed Tree Patches
============================

Path-based updates of a :class:`BusinessData` document.

A path is a dot-delimited pointer such as
``assumptions.pricing.avg_unit_price.value`` or ``assumptions.opex[0].value.value``
(``opex.0.value.value`` is accepted as well).  Paths that do not start with a
top-level document key are resolved relative to ``assumptions``.

Every patch is applied to a dumped copy of the document and the result is
re-validated against the schema before it is returned, so a patch either
produces a complete valid document or raises :class:`InvalidPathError` and
leaves the input untouched.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Union

from pydantic import BaseModel, ValidationError

from .config.models import BusinessData
from .errors import InvalidPathError

logger = logging.getLogger(__name__)

PathToken = Union[str, int]

_SEGMENT_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)?((?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")

ROOT_KEYS = frozenset(BusinessData.model_fields)

# Named mutable fields for callers that prefer not to spell out paths.
FIELD_PATHS: Dict[str, str] = {
    "avg_unit_price": "assumptions.pricing.avg_unit_price.value",
    "discount_pct": "assumptions.pricing.discount_pct.value",
    "interest_rate": "assumptions.financial.interest_rate.value",
    "churn_pct": "assumptions.customers.churn_pct.value",
    "cogs_pct": "assumptions.unit_economics.cogs_pct.value",
    "cac": "assumptions.unit_economics.cac.value",
    "periods": "meta.periods",
    "start_date": "meta.start_date",
    "business_model": "meta.business_model",
}


class Patch(BaseModel):
    """A single ``path -> value`` update."""

    path: str
    value: Any = None


# ============================================================
# Path parsing
# ============================================================


def parse_path(path: str) -> List[PathToken]:
    """Split *path* into key and index tokens."""
    if not path or not path.strip():
        raise InvalidPathError(path, "empty path")

    tokens: List[PathToken] = []
    for part in path.strip().split("."):
        if part.isdigit():
            tokens.append(int(part))
            continue
        match = _SEGMENT_RE.match(part)
        if not match or (not match.group(1) and not match.group(2)):
            raise InvalidPathError(path, f"malformed segment '{part}'")
        if match.group(1):
            tokens.append(match.group(1))
        tokens.extend(int(idx) for idx in _INDEX_RE.findall(match.group(2)))

    if not isinstance(tokens[0], str):
        raise InvalidPathError(path, "path must start with a key")
    if tokens[0] not in ROOT_KEYS:
        tokens.insert(0, "assumptions")
    return tokens


def _step(node: Any, token: PathToken, path: str, create: bool = False) -> Any:
    if isinstance(token, int):
        if not isinstance(node, list):
            raise InvalidPathError(path, f"index [{token}] applied to a non-list")
        if token >= len(node):
            raise InvalidPathError(path, f"index [{token}] out of range")
        return node[token]
    if not isinstance(node, dict):
        raise InvalidPathError(path, f"key '{token}' applied to a non-object")
    if token not in node:
        raise InvalidPathError(path, f"unknown key '{token}'")
    child = node[token]
    if child is None and create:
        child = node[token] = {}
    return child


# ============================================================
# Read / write
# ============================================================


def get_path(data: BusinessData, path: str) -> Any:
    """Value stored at *path*; raises :class:`InvalidPathError` if it does not exist."""
    node: Any = data.model_dump()
    for token in parse_path(path):
        if node is None:
            raise InvalidPathError(path, "intermediate value is empty")
        node = _step(node, token, path)
    return node


def set_path(data: BusinessData, path: str, value: Any) -> BusinessData:
    """Return a new document with *value* written at *path*.

    Only keys known to the schema (or already present in the document) may be
    addressed.  Empty intermediate sections are created on the way down.
    """
    tokens = parse_path(path)
    tree: Dict[str, Any] = data.model_dump()

    # Inside a section that was empty, keys cannot be checked against the
    # dump; the read-back after validation catches keys the schema dropped.
    node: Any = tree
    fresh = False
    for token in tokens[:-1]:
        if fresh and isinstance(token, str):
            node = node.setdefault(token, {})
            continue
        was_empty = isinstance(token, str) and isinstance(node, dict) and node.get(token) is None
        node = _step(node, token, path, create=True)
        fresh = fresh or was_empty

    leaf = tokens[-1]
    if isinstance(leaf, int):
        _step(node, leaf, path)
        node[leaf] = value
    else:
        if not isinstance(node, dict):
            raise InvalidPathError(path, f"key '{leaf}' applied to a non-object")
        if leaf not in node and not fresh:
            raise InvalidPathError(path, f"unknown key '{leaf}'")
        node[leaf] = value

    try:
        updated = BusinessData.model_validate(tree)
    except ValidationError as e:
        raise InvalidPathError(path, f"value rejected by schema ({e.error_count()} errors)") from e

    if fresh:
        get_path(updated, path)

    logger.debug(f"Patched {path}")
    return updated


def apply_patches(data: BusinessData, patches: Iterable[Union[Patch, Dict[str, Any]]]) -> BusinessData:
    """Apply *patches* in order; any failure discards all of them."""
    result = data
    for patch in patches:
        if not isinstance(patch, Patch):
            patch = Patch.model_validate(patch)
        result = set_path(result, patch.path, patch.value)
    return result


def update_field(data: BusinessData, name: str, value: Any) -> BusinessData:
    """Update one of the named fields in :data:`FIELD_PATHS`."""
    if name not in FIELD_PATHS:
        raise InvalidPathError(name, "unknown field name")
    return set_path(data, FIELD_PATHS[name], value)
