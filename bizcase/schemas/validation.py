"""Validation findings schema."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ValidationFindings(BaseModel):
    """Non-fatal structural findings; computation is never blocked by them."""

    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    def error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def suggest(self, message: str) -> None:
        self.suggestions.append(message)
