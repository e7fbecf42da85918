from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from agent_thread.context import ApprovalStatus
from agent_thread.events import HistoryEvent, ToolCall, new_id
from agent_thread.model import ModelResponse, Usage


class ApprovalRequest(BaseModel):
    """A batch of tool calls waiting on an external approver."""

    request_id: str = Field(default_factory=lambda: new_id("apr"))
    tool_calls: list[ToolCall]


class ApprovalResponse(BaseModel):
    """Approver's decisions for a batch. Calls left out stay pending."""

    request_id: str
    approved: list[str] = Field(default_factory=list)
    rejected: list[str] = Field(default_factory=list)


class RunState(BaseModel):
    """Counters and model-response metadata for one thread."""

    tick: int = 0
    model_responses: list[ModelResponse] = Field(default_factory=list)
    pending: Optional[ApprovalRequest] = None
    approvals: dict[str, ApprovalStatus] = Field(default_factory=dict)

    @property
    def usage(self) -> Usage:
        total = Usage()
        for response in self.model_responses:
            total = total.add(response.usage)
        return total

    @property
    def suspended(self) -> bool:
        return self.pending is not None


class ThreadResult(BaseModel):
    status: Literal["completed", "suspended"]
    state: RunState
    output: Any = None

    @property
    def approval_request(self) -> Optional[ApprovalRequest]:
        return self.state.pending

    @property
    def pending_approvals(self) -> list[ToolCall]:
        if self.state.pending is None:
            return []
        return list(self.state.pending.tool_calls)


class ThreadSnapshot(BaseModel):
    """Serializable form of a thread, enough to rebuild and resume it."""

    id: str
    history: list[HistoryEvent]
    state: RunState
