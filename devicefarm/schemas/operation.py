from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from devicefarm.schemas.device import Platform


class OperationSpec(BaseModel):
    """Catalog entry returned to callers listing the available operations."""

    name: str
    description: str
    platform: Platform
    input_schema: dict[str, Any] = Field(default_factory=dict)


class ToolCallRequest(BaseModel):
    name: str = Field(..., min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolListResponse(BaseModel):
    tools: list[OperationSpec]
