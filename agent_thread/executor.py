import asyncio
import logging
import time
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from agent_thread.context import ApprovalStatus, Context
from agent_thread.events import ToolCall, ToolResult
from agent_thread.exceptions import HostedToolError, ToolExecutionError, ToolNotFound
from agent_thread.hooks import (
    AfterToolCallEventData,
    BeforeToolCallEventData,
    OnToolErrorEventData,
)
from agent_thread.tools import HostedTool, Tool

if TYPE_CHECKING:
    from agent_thread.agent import Agent

logger = logging.getLogger(__name__)

MAX_TOOL_ATTEMPTS = 3


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class ActionExecutor:
    """Runs the tool calls of one tick against an agent's toolkit.

    Per-call faults (unknown tool, validation failure, exceptions raised by
    the tool, timeouts) become ``ToolResult(status="error")`` and never
    affect sibling calls. Dispatching a hosted tool is a wiring bug and
    raises ``HostedToolError``.

    Args:
        agent: Agent whose toolkit and hooks are used.
        context: Run context; each call gets its own derivative.
        approvals: Decisions recorded by an external approver, by call id.
        max_concurrency: Calls allowed to run at once. Defaults to the agent's.
        timeout: Seconds per call. Defaults to the agent's ``tool_timeout``.
    """

    def __init__(
        self,
        agent: "Agent",
        context: Context,
        approvals: Optional[dict[str, ApprovalStatus]] = None,
        max_concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.agent = agent
        self.context = context
        self.approvals = approvals if approvals is not None else {}
        self.max_concurrency = max_concurrency or agent.max_concurrency
        self.timeout = timeout if timeout is not None else agent.tool_timeout

    async def execute_all(self, calls: list[ToolCall]) -> list[ToolResult]:
        """Run ``calls`` concurrently; results come back in call order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(call: ToolCall) -> ToolResult:
            async with semaphore:
                return await self.execute(call)

        tasks = [asyncio.ensure_future(bounded(call)) for call in calls]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def execute(self, call: ToolCall) -> ToolResult:
        name = call.name or call.id
        start = time.time()

        try:
            tool = self._resolve(call)
        except ToolNotFound as e:
            logger.warning(f"{e} (call {call.call_id})")
            return ToolResult(
                call_id=call.call_id, name=name, status="error", error=str(e)
            )

        context = self.context.for_call(call.call_id, self._approval_for(tool, call))
        hooks = self.agent.hooks

        before = await hooks.trigger(
            "before_tool_call",
            BeforeToolCallEventData(
                tool_call=call, tool_name=name, arguments=call.arguments, context=context
            ),
        )
        if (
            before
            and before.action == "skip"
            and before.cached_result is not None
            and await self._may_skip(tool, call, context)
        ):
            result = ToolResult(
                call_id=call.call_id,
                name=name,
                status="completed",
                result=before.cached_result,
            )
        else:
            result = await self._invoke_with_retry(tool, call, name, context)

        await hooks.trigger(
            "after_tool_call",
            AfterToolCallEventData(
                tool_call=call,
                tool_name=name,
                result=result,
                execution_time_ms=(time.time() - start) * 1000,
            ),
        )
        return result

    def _resolve(self, call: ToolCall) -> Tool:
        match self.agent.tool(call.id):
            case None:
                raise ToolNotFound(f"Tool {call.id} not found")
            case HostedTool():
                raise HostedToolError(
                    f"Tool {call.id} is a hosted tool and should not be executed locally"
                )
            case Tool() as tool:
                return tool
            case other:
                raise TypeError(f"Unsupported capability type: {type(other).__name__}")

    def _approval_for(self, tool: Tool, call: ToolCall) -> Optional[ApprovalStatus]:
        # Tools that defer to an approver see the approver's decision;
        # everything else runs pre-approved for its own call id.
        decision = self.approvals.get(call.call_id)
        if decision is not None:
            return decision
        if tool.requires_approval:
            return None
        return "approved"

    async def _may_skip(self, tool: Tool, call: ToolCall, context: Context) -> bool:
        # A cached result never stands in for a call still waiting on approval.
        if context.approval(call.call_id) == "approved":
            return True
        try:
            validated = tool.input_model.model_validate_json(call.arguments or "{}")
        except ValidationError:
            return False
        return not await tool.needs_approval(context, validated, call.call_id)

    async def _invoke_with_retry(
        self, tool: Tool, call: ToolCall, name: str, context: Context
    ) -> ToolResult:
        arguments = call.arguments
        attempt = 0

        while True:
            attempt += 1
            try:
                outcome = await self._invoke(tool, context, arguments, call.call_id)
            except Exception as e:
                message = _error_message(e)
                logger.warning(f"Tool '{call.id}' failed (attempt {attempt}): {message}")

                hook_response = await self.agent.hooks.trigger(
                    "on_tool_error",
                    OnToolErrorEventData(
                        tool_call=call,
                        tool_name=name,
                        arguments=arguments,
                        error=e,
                        error_message=message,
                        attempt=attempt,
                    ),
                )
                if (
                    hook_response
                    and hook_response.action == "retry"
                    and attempt < MAX_TOOL_ATTEMPTS
                ):
                    if hook_response.delay_ms:
                        await asyncio.sleep(hook_response.delay_ms / 1000)
                    if hook_response.arguments:
                        arguments = hook_response.arguments
                    continue

                return ToolResult(
                    call_id=call.call_id,
                    name=name,
                    status="error",
                    result=None,
                    error=message,
                )

            return ToolResult(
                call_id=call.call_id,
                name=name,
                status=outcome.status,
                result=outcome.result,
                error=outcome.error,
            )

    async def _invoke(self, tool: Tool, context: Context, arguments: str, call_id: str):
        if self.timeout is None:
            return await tool.invoke(context, arguments, call_id)
        try:
            return await asyncio.wait_for(
                tool.invoke(context, arguments, call_id), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise ToolExecutionError(
                f"Tool {tool.id} timed out after {self.timeout}s"
            )
