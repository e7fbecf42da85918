from agent_thread.adaptors.openai import OpenAIAdaptor

# Conditional imports for optional SDK-based integrations
try:
    from agent_thread.adaptors.anthropic import AnthropicAdaptor
except ImportError:
    pass

try:
    from agent_thread.mcp import MCPConnection, MCPTool
except ImportError:
    pass

from agent_thread.agent import Agent
from agent_thread.context import Context
from agent_thread.events import (
    ActionSet,
    FilePart,
    HistoryEvent,
    Message,
    PerformResult,
    TextPart,
    TickResult,
    ToolCall,
    ToolResult,
)
from agent_thread.exceptions import (
    AgentThreadError,
    ApprovalError,
    HostedToolError,
    MaxTicksExceeded,
    ModelBehaviorError,
    ModelCallError,
    ThreadCancelled,
    ToolExecutionError,
    ToolNotFound,
    ToolValidationError,
)
from agent_thread.executor import ActionExecutor
from agent_thread.hooks import (
    AfterModelCallEventData,
    AfterRunEventData,
    AfterTickEventData,
    AfterToolCallEventData,
    BeforeModelCallEventData,
    BeforeRunEventData,
    BeforeTickEventData,
    BeforeToolCallEventData,
    HookEvent,
    HookRegistry,
    HookResponse,
    Middleware,
    OnApprovalRequiredEventData,
    OnToolErrorEventData,
)
from agent_thread.interpret import interpret_response
from agent_thread.model import (
    ModelAdaptor,
    ModelRequest,
    ModelResponse,
    ModelSettings,
    ToolSpec,
    Usage,
)
from agent_thread.request import build_request
from agent_thread.resolve import (
    NOT_FOUND,
    get_final_response,
    parse_final_response,
    resolve_output,
)
from agent_thread.state import (
    ApprovalRequest,
    ApprovalResponse,
    RunState,
    ThreadResult,
    ThreadSnapshot,
)
from agent_thread.thread import Thread
from agent_thread.toolkit import Toolkit
from agent_thread.tools import (
    FunctionTool,
    HostedTool,
    Tool,
    ToolInput,
    ToolOutcome,
    function_tool,
)

__all__ = [
    # Core
    "Agent",
    "Context",
    "Thread",
    "ActionExecutor",
    "ModelAdaptor",
    "ModelRequest",
    "ModelResponse",
    "ModelSettings",
    "ToolSpec",
    "Usage",
    "OpenAIAdaptor",
    "AnthropicAdaptor",
    "MCPConnection",
    "MCPTool",
    # Tools
    "Tool",
    "ToolInput",
    "ToolOutcome",
    "FunctionTool",
    "HostedTool",
    "Toolkit",
    "function_tool",
    # Events and state
    "ActionSet",
    "FilePart",
    "HistoryEvent",
    "Message",
    "PerformResult",
    "TextPart",
    "TickResult",
    "ToolCall",
    "ToolResult",
    "ApprovalRequest",
    "ApprovalResponse",
    "RunState",
    "ThreadResult",
    "ThreadSnapshot",
    # Loop stages
    "build_request",
    "interpret_response",
    "get_final_response",
    "parse_final_response",
    "resolve_output",
    "NOT_FOUND",
    # Hooks
    "HookRegistry",
    "HookEvent",
    "HookResponse",
    "Middleware",
    # Hook Event Data
    "BeforeRunEventData",
    "AfterRunEventData",
    "BeforeTickEventData",
    "AfterTickEventData",
    "BeforeModelCallEventData",
    "AfterModelCallEventData",
    "BeforeToolCallEventData",
    "AfterToolCallEventData",
    "OnToolErrorEventData",
    "OnApprovalRequiredEventData",
    # Exceptions
    "AgentThreadError",
    "ApprovalError",
    "HostedToolError",
    "MaxTicksExceeded",
    "ModelBehaviorError",
    "ModelCallError",
    "ThreadCancelled",
    "ToolExecutionError",
    "ToolNotFound",
    "ToolValidationError",
]
