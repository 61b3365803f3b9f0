"""Exception types raised by the bizcase engine.

Missing data never raises: it degrades to documented defaults. These
exceptions cover operational failures that callers surface to the user
while leaving their current state untouched.
"""

from __future__ import annotations


class BizcaseError(Exception):
    """Base class for all recoverable engine errors."""


class SourceNotAvailableError(BizcaseError):
    """Raised when switching a sourced assumption to a source it does not hold."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Data source {source} not available")


class SegmentNotFoundError(BizcaseError):
    """Raised when a cross-tool transfer targets an unknown customer segment."""

    def __init__(self, segment_id: str):
        self.segment_id = segment_id
        super().__init__(f"Segment '{segment_id}' not found")


class InvalidPathError(BizcaseError):
    """Raised when a tree patch addresses a field outside the document schema."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Invalid path '{path}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ImportFormatError(BizcaseError):
    """Raised when an imported JSON document cannot be parsed or validated."""


class UnknownModuleError(BizcaseError):
    """Raised when a market-analysis module identifier is not recognised."""

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Unknown market analysis module: {module_id}")
