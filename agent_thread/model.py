import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional, Union

from pydantic import BaseModel, Field

from agent_thread.events import HistoryEvent


class ModelSettings(BaseModel):
    """Provider-agnostic sampling settings, passed through untouched."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    tool_choice: Optional[Union[str, dict[str, Any]]] = None
    extra: dict[str, Any] = Field(default_factory=dict)


class ToolSpec(BaseModel):
    """Call contract of a tool as sent to the model."""

    kind: str = "function"
    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)
    provider_data: Optional[dict[str, Any]] = None


class Usage(BaseModel):
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: "Usage") -> "Usage":
        return Usage(
            requests=self.requests + other.requests,
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class ModelResponse(BaseModel):
    events: list[HistoryEvent] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)


@dataclass
class ModelRequest:
    system: str
    input: list  # history events
    tools: list[ToolSpec] = field(default_factory=list)
    settings: ModelSettings = field(default_factory=ModelSettings)
    response_schema: Optional[dict] = None
    abort: Optional[asyncio.Event] = None


class ModelAdaptor:
    async def generate(self, request: ModelRequest) -> ModelResponse:
        """Call the model once and return its complete response."""
        raise NotImplementedError

    async def stream(self, request: ModelRequest) -> AsyncIterator[HistoryEvent]:
        """Stream incremental events. Not used by the blocking tick loop."""
        raise NotImplementedError
        yield  # pragma: no cover
