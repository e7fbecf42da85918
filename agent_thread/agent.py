import asyncio
import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from agent_thread.context import Context
from agent_thread.model import ModelAdaptor, ModelSettings
from agent_thread.toolkit import Toolkit
from agent_thread.tools import Capability

if TYPE_CHECKING:
    from agent_thread.events import HistoryEvent
    from agent_thread.hooks import HookRegistry, Middleware
    from agent_thread.state import ThreadResult
    from agent_thread.thread import Thread

Instructions = Union[str, Callable[[Context], Union[str, Awaitable[str]]]]


class Agent:
    """Configuration for a thread: model, tools, instructions and limits.

    Args:
        model: Transport used for every tick.
        tools: List of tools or a Toolkit.
        instructions: System text, or a (sync or async) function of the Context.
        output: ``"text"`` or a Pydantic model (any type Pydantic can adapt)
            the final answer is validated against.
        model_settings: Sampling settings copied into each request.
        max_ticks: Ceiling on model calls per thread.
        max_concurrency: Maximum tool calls running at once within a tick.
        tool_timeout: Seconds before a single tool call is abandoned.
    """

    def __init__(
        self,
        model: ModelAdaptor,
        tools: Union[list[Capability], Toolkit, None] = None,
        instructions: Instructions = "",
        output: Any = "text",
        model_settings: Optional[ModelSettings] = None,
        max_ticks: int = 20,
        max_concurrency: int = 8,
        tool_timeout: Optional[float] = None,
        name: str = "Agent",
        id: Optional[str] = None,
        hooks: Optional["HookRegistry"] = None,
        middlewares: Optional[list["Middleware"]] = None,
    ):
        if max_ticks < 1:
            raise ValueError("max_ticks must be at least 1")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.model = model
        self.toolkit = tools if isinstance(tools, Toolkit) else Toolkit(tools or [])
        self.instructions = instructions
        self.output = output
        self.model_settings = model_settings or ModelSettings()
        self.max_ticks = max_ticks
        self.max_concurrency = max_concurrency
        self.tool_timeout = tool_timeout
        self.name = name
        self.id = id or name.lower().replace(" ", "_")

        # Middlewares and @agent.hook share one registry
        if hooks is None:
            from agent_thread.hooks import HookRegistry

            hooks = HookRegistry()
        self.hooks = hooks

        for middleware in middlewares or []:
            self.hooks.register_middleware(middleware)

    def hook(self, hook_name: str):
        """Decorator for registering hooks directly on agent.

        Usage:
            @agent.hook('after_tool_call')
            async def log_tool(event):
                print(f"Tool: {event.tool_name}")
        """
        return self.hooks.on(hook_name)

    def tool(self, tool_id: str) -> Optional[Capability]:
        return self.toolkit.resolve(tool_id)

    async def tools(self, context: Context) -> list[Capability]:
        return await self.toolkit.tools(context)

    async def resolve_instructions(self, context: Context) -> str:
        if callable(self.instructions):
            text = self.instructions(context)
            if inspect.isawaitable(text):
                text = await text
            return text or ""
        return self.instructions or ""

    def thread(
        self,
        input: Union[str, list["HistoryEvent"]],
        context: Optional[Context] = None,
        **kwargs: Any,
    ) -> "Thread":
        from agent_thread.thread import Thread

        return Thread(self, input, context=context, **kwargs)

    def run(
        self, input: Union[str, list["HistoryEvent"]], context: Optional[Context] = None
    ) -> "ThreadResult":
        """Run agent synchronously."""
        return asyncio.run(self.run_async(input, context))

    async def run_async(
        self, input: Union[str, list["HistoryEvent"]], context: Optional[Context] = None
    ) -> "ThreadResult":
        """Run agent asynchronously in a fresh thread."""
        return await self.thread(input, context=context).execute()

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, tools={len(self.toolkit)})"
