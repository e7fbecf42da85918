"""Hook points fired by a running thread.

Every extension goes through a ``HookRegistry``: ``@registry.on(...)`` and
``@agent.hook(...)`` register plain callables, and a ``Middleware`` is a
bundle of handlers registered together. A handler receives the event
dataclass for its hook point and may return a ``HookResponse`` (or a dict
with the same keys) to steer the thread.
"""

import inspect
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class HookEvent(str, Enum):
    """Points at which a thread calls registered handlers."""

    BEFORE_RUN = "before_run"
    BEFORE_TICK = "before_tick"
    BEFORE_MODEL_CALL = "before_model_call"
    AFTER_MODEL_CALL = "after_model_call"
    BEFORE_TOOL_CALL = "before_tool_call"
    ON_TOOL_ERROR = "on_tool_error"
    AFTER_TOOL_CALL = "after_tool_call"
    AFTER_TICK = "after_tick"
    ON_APPROVAL_REQUIRED = "on_approval_required"
    AFTER_RUN = "after_run"


# Run level


@dataclass
class BeforeRunEventData:
    """A thread is about to start, or to continue after ``resume``."""

    thread: Any
    resumed: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class AfterRunEventData:
    """A thread stopped with a ``ThreadResult``, completed or suspended."""

    thread: Any
    result: Any
    total_time_ms: float
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class OnApprovalRequiredEventData:
    thread: Any
    request: Any  # ApprovalRequest


# Tick level


@dataclass
class BeforeTickEventData:
    thread: Any
    tick: int


@dataclass
class AfterTickEventData:
    thread: Any
    tick: int
    events: List[Any]
    elapsed_time_ms: float


@dataclass
class BeforeModelCallEventData:
    thread: Any
    request: Any  # ModelRequest


@dataclass
class AfterModelCallEventData:
    thread: Any
    response: Any  # ModelResponse
    response_time_ms: float


# Tool call level. These carry no thread: the executor also runs outside one.


@dataclass
class BeforeToolCallEventData:
    """Return ``{"action": "skip", "cached_result": ...}`` to short-circuit."""

    tool_call: Any
    tool_name: str
    arguments: str
    context: Any


@dataclass
class OnToolErrorEventData:
    """Return ``{"action": "retry"}`` to invoke the tool again.

    ``arguments`` in the response replaces the JSON arguments for the next
    attempt and ``delay_ms`` waits before it.
    """

    tool_call: Any
    tool_name: str
    arguments: str
    error: Exception
    error_message: str
    attempt: int


@dataclass
class AfterToolCallEventData:
    tool_call: Any
    tool_name: str
    result: Any  # ToolResult, any status
    execution_time_ms: float


@dataclass
class HookResponse:
    action: Optional[str] = None  # "retry" or "skip"
    cached_result: Optional[Any] = None
    arguments: Optional[str] = None
    delay_ms: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HookResponse"]:
        """Build a response from a handler's return value.

        Unknown keys are dropped. Anything other than a mapping or a
        ``HookResponse`` carries no instruction and yields None.
        """
        if isinstance(data, HookResponse):
            return data
        if not isinstance(data, Mapping):
            return None
        known = {f.name for f in fields(cls)}
        return cls(**{key: data[key] for key in data if key in known})


def _hook_name(hook: "str | HookEvent") -> str:
    try:
        return HookEvent(hook).value
    except ValueError:
        valid = [e.value for e in HookEvent]
        raise ValueError(f"Invalid hook name '{hook}'. Valid hooks: {valid}") from None


class HookRegistry:
    """Ordered handler lists, one per ``HookEvent``.

    Example::

        hooks = HookRegistry()

        @hooks.on("after_tool_call")
        def log_tool(event):
            print(event.tool_name, event.result.status)

        agent = Agent(model=model, tools=tools, hooks=hooks)

    Handlers run in registration order. The first one that returns a dict
    or a ``HookResponse`` decides the response; the rest are skipped. Other
    return values are ignored. A handler that raises is
    logged and ignored.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {e.value: [] for e in HookEvent}

    def on(self, hook_name: str):
        """Decorator form of ``register_handler``."""

        def decorator(func: Callable) -> Callable:
            self.register_handler(hook_name, func)
            return func

        return decorator

    def register_handler(self, hook_name: str, handler: Callable) -> None:
        """Append ``handler``, a sync or async callable, to ``hook_name``.

        Raises:
            ValueError: ``hook_name`` is not a ``HookEvent`` value.
        """
        self._handlers[_hook_name(hook_name)].append(handler)

    def register_middleware(self, middleware: "Middleware") -> None:
        for hook_name, handler in middleware.handlers():
            self.register_handler(hook_name, handler)

    async def trigger(self, hook_name: str, event_data: Any) -> Optional[HookResponse]:
        for handler in list(self._handlers.get(hook_name, ())):
            try:
                outcome = handler(event_data)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
                response = HookResponse.from_dict(outcome)
            except Exception as e:
                logger.warning(f"Hook '{hook_name}' raised exception: {e}")
                continue
            if response is not None:
                return response
        return None

    def has_handlers(self, hook_name: str) -> bool:
        return bool(self._handlers.get(hook_name))

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()


class Middleware:
    """Stateful group of hook handlers.

    Define a method named after each hook point to handle; anything else on
    the class is ignored::

        class Timing(Middleware):
            def __init__(self):
                self.ticks = []

            async def after_tick(self, event):
                self.ticks.append(event.elapsed_time_ms)

        agent = Agent(model=model, middlewares=[Timing()])
    """

    def handlers(self) -> Iterator[Tuple[str, Callable]]:
        for hook in HookEvent:
            handler = getattr(self, hook.value, None)
            if callable(handler):
                yield hook.value, handler
