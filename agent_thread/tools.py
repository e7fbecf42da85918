import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, create_model

from agent_thread.context import Context
from agent_thread.exceptions import ToolValidationError
from agent_thread.model import ToolSpec

if TYPE_CHECKING:
    from agent_thread.agent import Agent

logger = logging.getLogger(__name__)

Predicate = Callable[..., Union[bool, Awaitable[bool]]]
ErrorFormatter = Callable[[Context, Exception], str]


async def evaluate(predicate: Predicate, *args: Any) -> bool:
    """Call a sync or async predicate and coerce its answer to bool."""
    outcome = predicate(*args)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return bool(outcome)


class ToolInput(BaseModel):
    """Subclass this for tool-specific input validation."""


@dataclass
class ToolOutcome:
    status: Literal["completed", "error", "requires_approval"]
    result: Any = None
    error: Optional[str] = None


class Tool:
    """A capability executed locally by the runtime."""

    name: str
    description: str = ""
    input_model: type[BaseModel] = ToolInput
    requires_approval: bool = False
    tool_id: Optional[str] = None

    @property
    def id(self) -> str:
        return self.tool_id or self.name

    def schema(self) -> dict:
        """Return JSON schema from Pydantic model."""
        return self.input_model.model_json_schema()

    def serialize(self) -> ToolSpec:
        return ToolSpec(
            name=self.id, description=self.description, parameters=self.schema()
        )

    async def is_enabled(self, context: Context, agent: "Agent") -> bool:
        """Whether the tool is offered to the model for this context."""
        return True

    async def needs_approval(
        self, context: Context, arguments: BaseModel, call_id: Optional[str]
    ) -> bool:
        """Whether this call must be approved by someone outside the run."""
        return self.requires_approval

    async def execute(self, **kwargs) -> Any:
        """Execute tool. Always async; sync tools wrap sync code.

        Pydantic validates inputs before this is called.
        """
        raise NotImplementedError

    async def invoke(
        self, context: Context, arguments: str, call_id: Optional[str] = None
    ) -> ToolOutcome:
        """Decode arguments, check approval, then run the tool.

        Exceptions raised by ``execute`` propagate to the caller.
        """
        try:
            validated = self.input_model.model_validate_json(arguments or "{}")
        except ValidationError as e:
            logger.debug(f"Invalid input for tool '{self.id}': {arguments}")
            raise ToolValidationError(
                f"Invalid arguments for tool '{self.id}': {e}"
            ) from e

        if await self.needs_approval(context, validated, call_id):
            status = context.approval(call_id)
            if status == "rejected":
                return ToolOutcome(
                    status="error", error=f"Tool call {call_id} was rejected"
                )
            if status != "approved":
                return ToolOutcome(status="requires_approval")

        result = await self._run(context, validated)
        return ToolOutcome(status="completed", result=result)

    async def _run(self, context: Context, validated: BaseModel) -> Any:
        return await self.execute(**validated.model_dump())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class FunctionTool(Tool):
    """Wraps a plain function as a tool.

    The input model is built from the function signature unless given. A
    parameter named ``context`` receives the call-scoped Context instead of
    a model-supplied value.

    ``requires_approval`` and ``is_enabled`` take either a bool or a sync or
    async predicate. The approval predicate is called with
    ``(context, arguments, call_id)``, where ``arguments`` is the validated
    input model; the enablement predicate with ``(context)``.

    ``error_fn(context, error)`` turns any failure of the call, invalid
    arguments included, into the error text of the result. Failures handled
    this way are final and never reach the ``on_tool_error`` hook.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        name: Optional[str] = None,
        description: Optional[str] = None,
        input_model: Optional[type[BaseModel]] = None,
        requires_approval: Union[bool, Predicate] = False,
        tool_id: Optional[str] = None,
        is_enabled: Union[bool, Predicate] = True,
        error_fn: Optional[ErrorFormatter] = None,
    ):
        self.fn = fn
        self.name = name or fn.__name__
        self.description = description or inspect.getdoc(fn) or ""
        # a predicate means approval may be needed; it decides per call
        self.requires_approval = bool(requires_approval)
        self._approval = requires_approval
        self._enabled = is_enabled
        self.error_fn = error_fn
        self.tool_id = tool_id
        self._wants_context = "context" in inspect.signature(fn).parameters
        self.input_model = input_model or _signature_to_pydantic(self.name, fn)

    async def is_enabled(self, context: Context, agent: "Agent") -> bool:
        if callable(self._enabled):
            return await evaluate(self._enabled, context)
        return self._enabled

    async def needs_approval(
        self, context: Context, arguments: BaseModel, call_id: Optional[str]
    ) -> bool:
        if callable(self._approval):
            return await evaluate(self._approval, context, arguments, call_id)
        return self._approval

    async def invoke(
        self, context: Context, arguments: str, call_id: Optional[str] = None
    ) -> ToolOutcome:
        if self.error_fn is None:
            return await super().invoke(context, arguments, call_id)
        try:
            return await super().invoke(context, arguments, call_id)
        except Exception as e:
            logger.debug(f"Tool '{self.id}' failed: {e!r}")
            return ToolOutcome(status="error", error=self.error_fn(context, e))

    async def _run(self, context: Context, validated: BaseModel) -> Any:
        kwargs = dict(validated)
        if self._wants_context:
            kwargs["context"] = context
        if inspect.iscoroutinefunction(self.fn):
            return await self.fn(**kwargs)
        return await asyncio.to_thread(self.fn, **kwargs)


def _signature_to_pydantic(name: str, fn: Callable[..., Any]) -> type[BaseModel]:
    fields: dict[str, Any] = {}
    for param in inspect.signature(fn).parameters.values():
        if param.name == "context":
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = Any if param.annotation is param.empty else param.annotation
        default = ... if param.default is param.empty else param.default
        fields[param.name] = (annotation, Field(default=default))
    return create_model(f"{name}_Input", __base__=ToolInput, **fields)


def function_tool(
    fn: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    requires_approval: Union[bool, Predicate] = False,
    is_enabled: Union[bool, Predicate] = True,
    error_fn: Optional[ErrorFormatter] = None,
) -> Union[FunctionTool, Callable[[Callable[..., Any]], FunctionTool]]:
    """Decorator turning a function into a FunctionTool.

    Usage:
        @function_tool
        def add(a: int, b: int) -> int:
            return a + b

        @function_tool(requires_approval=True)
        async def delete_file(path: str) -> str:
            ...

        @function_tool(is_enabled=lambda ctx: ctx.data.get("admin", False))
        def reset_password(user: str) -> str:
            ...
    """

    def decorator(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(
            func,
            name=name,
            description=description,
            requires_approval=requires_approval,
            is_enabled=is_enabled,
            error_fn=error_fn,
        )

    if fn is not None:
        return decorator(fn)
    return decorator


class HostedTool:
    """A tool executed server-side by the model provider, never locally."""

    def __init__(
        self,
        id: str,
        name: Optional[str] = None,
        provider_data: Optional[dict[str, Any]] = None,
    ):
        self.id = id
        self.name = name or id
        self.provider_data = provider_data or {}

    async def is_enabled(self, context: Context, agent: "Agent") -> bool:
        return True

    def serialize(self) -> ToolSpec:
        return ToolSpec(
            kind="hosted", name=self.id, provider_data=self.provider_data
        )

    def __repr__(self) -> str:
        return f"HostedTool(id={self.id!r})"


Capability = Union[Tool, HostedTool]
