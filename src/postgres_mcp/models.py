from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

JSON_MIME_TYPE = "application/json"


@dataclass(frozen=True)
class ResourceEntry:
    uri: str
    name: str
    mime_type: str = JSON_MIME_TYPE


@dataclass(frozen=True)
class ResourceContents:
    uri: str
    text: str
    mime_type: str = JSON_MIME_TYPE


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    content: list[str]
    is_error: bool = False
