from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


def text_block(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def image_block(data_base64: str, mime_type: str) -> dict[str, Any]:
    return {"type": "image", "data": data_base64, "mimeType": mime_type}


@dataclass
class ToolResult:
    content: list[dict[str, Any]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> ToolResult:
        return cls(content=[text_block(text)])

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(content=[text_block(message)], is_error=True)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"content": list(self.content)}
        if self.is_error:
            result["isError"] = True
        return result


@runtime_checkable
class Tool(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def input_schema(self) -> dict[str, Any]: ...

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult: ...
