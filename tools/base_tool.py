"""Base tool interface and the request/response types shared by tools."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from executor.cancellation import CancellationContext


class MissingContextError(ValueError):
    """Raised when a call arrives without its session or message identifiers."""


@dataclass(frozen=True)
class RequestContext:
    """Identifiers of the conversation turn a tool call belongs to."""

    session_id: str = ""
    message_id: str = ""
    cancellation: CancellationContext | None = None

    def require_ids(self) -> None:
        if not self.session_id or not self.message_id:
            raise MissingContextError(
                "session ID and message ID are required for executing shell command"
            )


class ToolInfo(BaseModel):
    """Self-description handed to the model."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class ToolCall(BaseModel):
    """A model-issued invocation; ``input`` is the raw JSON argument string."""

    id: str
    name: str
    input: str = ""


class ToolResponse(BaseModel):
    """Text result of one tool invocation, with optional JSON metadata."""

    model_config = ConfigDict(frozen=True)

    type: str = "text"
    content: str
    metadata: str = ""
    is_error: bool = False

    def metadata_dict(self) -> dict[str, Any]:
        return json.loads(self.metadata) if self.metadata else {}


def text_response(content: str) -> ToolResponse:
    return ToolResponse(content=content)


def text_error_response(content: str) -> ToolResponse:
    return ToolResponse(content=content, is_error=True)


def with_response_metadata(response: ToolResponse, metadata: BaseModel | dict[str, Any] | None) -> ToolResponse:
    """Return a copy of response carrying metadata serialized as JSON."""
    if metadata is None:
        return response
    if isinstance(metadata, BaseModel):
        encoded = metadata.model_dump_json()
    else:
        encoded = json.dumps(metadata, default=str)
    return response.model_copy(update={"metadata": encoded})


class BaseTool(ABC):
    """Base class for all tools exposed to the agent."""

    def __init__(
        self,
        name: str,
        enabled: bool = True,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.enabled = enabled
        self.settings = settings or {}

    @abstractmethod
    def info(self) -> ToolInfo:
        """Name, description and parameter schema."""

    @abstractmethod
    def run(self, context: RequestContext, call: ToolCall) -> ToolResponse:
        """Tool-specific execution logic."""
