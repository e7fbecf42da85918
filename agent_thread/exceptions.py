class AgentThreadError(Exception):
    """Base exception for agent-thread errors."""


class ModelCallError(AgentThreadError):
    """Raised when the model transport fails during a tick."""


class ModelBehaviorError(AgentThreadError):
    """Raised when the model's final text violates the declared output type."""


class HostedToolError(AgentThreadError):
    """Raised when a provider-hosted tool is dispatched for local execution."""


class MaxTicksExceeded(AgentThreadError):
    """Raised when a thread would exceed its tick ceiling."""


class ThreadCancelled(AgentThreadError):
    """Raised when a thread is cancelled while a tick is in flight."""


class ApprovalError(AgentThreadError):
    """Raised when an approval response does not match the pending batch."""


class ToolValidationError(AgentThreadError):
    """Raised when tool arguments fail Pydantic validation."""


class ToolNotFound(AgentThreadError):
    """Raised when model calls a tool that doesn't exist."""


class ToolExecutionError(AgentThreadError):
    """Raised when tool execution fails critically."""
