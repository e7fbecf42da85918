"""History events recorded by a thread.

A thread's history is an append-only list of messages, tool calls and tool
results, ordered by emission. All events are Pydantic models discriminated
on ``kind`` so a history can be dumped to JSON and loaded back unchanged.
"""

import uuid
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


class TextPart(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class FilePart(BaseModel):
    kind: Literal["file"] = "file"
    mime_type: str
    data: str  # base64 payload or URL


ContentPart = Annotated[Union[TextPart, FilePart], Field(discriminator="kind")]


class Message(BaseModel):
    kind: Literal["message"] = "message"
    id: str = Field(default_factory=lambda: new_id("msg"))
    role: Literal["user", "assistant", "system"]
    content: list[ContentPart] = Field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", content=[TextPart(text=text)])

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role="assistant", content=[TextPart(text=text)])

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role="system", content=[TextPart(text=text)])

    @property
    def text(self) -> str:
        """All text parts joined together."""
        return "".join(p.text for p in self.content if isinstance(p, TextPart))


class ToolCall(BaseModel):
    kind: Literal["tool-call"] = "tool-call"
    id: str  # tool id
    call_id: str = Field(default_factory=lambda: new_id("call"))
    name: Optional[str] = None
    arguments: str = "{}"  # JSON-encoded


class ToolResult(BaseModel):
    kind: Literal["tool-result"] = "tool-result"
    call_id: str
    name: str
    status: Literal["completed", "error", "requires_approval"]
    result: Optional[Any] = None
    error: Optional[str] = None


HistoryEvent = Annotated[
    Union[Message, ToolCall, ToolResult], Field(discriminator="kind")
]


class ActionSet(BaseModel):
    """Tool calls from one tick that need local execution."""

    tool_calls: list[ToolCall]


class TickResult(BaseModel):
    events: list[HistoryEvent]
    intentions: Optional[ActionSet] = None


class PerformResult(BaseModel):
    actions: list[ToolResult] = Field(default_factory=list)
    pending_approvals: list[ToolCall] = Field(default_factory=list)
