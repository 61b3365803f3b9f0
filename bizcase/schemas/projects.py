"""Project schemas for the persisted project list."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProjectMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str = "1.0"
    created_by: str = "user"
    tags: List[str] = Field(default_factory=list)
    description: str = ""


class UnifiedProject(BaseModel):
    """A named snapshot of business and market data.

    Stored as ``{projectId, projectName, lastModified, businessData?,
    marketData?, metadata}``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: str
    project_name: str
    last_modified: str
    business_data: Optional[Dict[str, Any]] = None
    market_data: Optional[Dict[str, Any]] = None
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)
