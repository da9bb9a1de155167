from __future__ import annotations

import base64
import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class BinaryContent(BaseModel):
    type: Literal["binary"] = "binary"
    data: str = Field(..., description="Base64-encoded payload")
    mime_type: str

    def decode(self) -> bytes:
        return base64.b64decode(self.data)


ContentBlock = Annotated[TextContent | BinaryContent, Field(discriminator="type")]


class ToolResponse(BaseModel):
    """The envelope returned for every operation invocation."""

    content: list[ContentBlock] = Field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, *texts: str) -> ToolResponse:
        return cls(content=[TextContent(text=t) for t in texts])

    @classmethod
    def from_json(cls, payload: Any) -> ToolResponse:
        return cls.text(json.dumps(payload, indent=2))

    @classmethod
    def error(cls, *texts: str) -> ToolResponse:
        return cls(content=[TextContent(text=t) for t in texts], is_error=True)

    @classmethod
    def binary(cls, caption: str, data: bytes, mime_type: str) -> ToolResponse:
        return cls(
            content=[
                TextContent(text=caption),
                BinaryContent(data=base64.b64encode(data).decode("ascii"), mime_type=mime_type),
            ]
        )

    @property
    def texts(self) -> list[str]:
        return [block.text for block in self.content if isinstance(block, TextContent)]
