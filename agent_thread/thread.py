import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Coroutine, Optional, TypeVar, Union

from agent_thread.context import Context
from agent_thread.events import (
    ActionSet,
    HistoryEvent,
    Message,
    PerformResult,
    TickResult,
    new_id,
)
from agent_thread.exceptions import (
    AgentThreadError,
    ApprovalError,
    MaxTicksExceeded,
    ModelCallError,
    ThreadCancelled,
)
from agent_thread.executor import ActionExecutor
from agent_thread.hooks import (
    AfterModelCallEventData,
    AfterRunEventData,
    AfterTickEventData,
    BeforeModelCallEventData,
    BeforeRunEventData,
    BeforeTickEventData,
    OnApprovalRequiredEventData,
)
from agent_thread.interpret import interpret_response
from agent_thread.model import ModelRequest, ModelResponse
from agent_thread.request import build_request
from agent_thread.resolve import NOT_FOUND, resolve_output
from agent_thread.state import (
    ApprovalRequest,
    ApprovalResponse,
    RunState,
    ThreadResult,
    ThreadSnapshot,
)

if TYPE_CHECKING:
    from agent_thread.agent import Agent

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Thread:
    """Drives one agent through model ticks and tool calls until it answers.

    The thread exclusively owns its history and RunState. A run ends in one
    of three ways: a resolved output (``status="completed"``), a suspension
    on tool calls waiting for approval (``status="suspended"``, continue
    with ``resume``), or a raised AgentThreadError.

    Args:
        agent: Agent configuration to run.
        input: A prompt, turned into one user message, or a list of history
            events used as-is.
        context: Run context shared with instructions, predicates and tools.
        max_ticks: Overrides ``agent.max_ticks``.
        thread_id: Stable id, generated when omitted.
        state: Existing RunState, used when rebuilding from a snapshot.
    """

    def __init__(
        self,
        agent: "Agent",
        input: Union[str, list[HistoryEvent]],
        context: Optional[Context] = None,
        max_ticks: Optional[int] = None,
        thread_id: Optional[str] = None,
        state: Optional[RunState] = None,
    ):
        self.id = thread_id or new_id("tid")
        self.agent = agent
        self.model = agent.model
        self.context = context if context is not None else Context()
        if max_ticks is None:
            max_ticks = agent.max_ticks
        if max_ticks < 1:
            raise ValueError("max_ticks must be at least 1")
        self.max_ticks = max_ticks
        self.state = state if state is not None else RunState()
        self.input = input

        if isinstance(input, str):
            self._history: list[HistoryEvent] = [Message.user(input)]
        else:
            self._history = list(input)

        self._abort = asyncio.Event()
        self._running = False

    @classmethod
    def from_snapshot(
        cls,
        agent: "Agent",
        snapshot: ThreadSnapshot,
        context: Optional[Context] = None,
        max_ticks: Optional[int] = None,
    ) -> "Thread":
        return cls(
            agent,
            list(snapshot.history),
            context=context,
            max_ticks=max_ticks,
            thread_id=snapshot.id,
            state=snapshot.state.model_copy(deep=True),
        )

    @property
    def history(self) -> list[HistoryEvent]:
        """A copy of the thread's history."""
        return list(self._history)

    @property
    def cancelled(self) -> bool:
        return self._abort.is_set()

    def snapshot(self) -> ThreadSnapshot:
        return ThreadSnapshot(
            id=self.id,
            history=list(self._history),
            state=self.state.model_copy(deep=True),
        )

    def cancel(self) -> None:
        """Cancel the thread. In-flight model and tool calls are abandoned."""
        self._abort.set()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self) -> ThreadResult:
        """Run ticks until the model answers or tool calls need approval.

        Raises:
            ApprovalError: If the thread is suspended; use ``resume``.
            MaxTicksExceeded: If the tick ceiling is reached first.
            ModelCallError: If the model transport fails.
            ModelBehaviorError: If the answer violates the output type.
            HostedToolError: If a hosted tool is dispatched locally.
            ThreadCancelled: If ``cancel`` was called.
        """
        if self.state.pending is not None:
            raise ApprovalError(
                f"Thread {self.id} is waiting on approval request "
                f"{self.state.pending.request_id}; call resume()"
            )
        return await self._run(self._loop(), resumed=False)

    async def resume(self, response: ApprovalResponse) -> ThreadResult:
        """Continue a suspended thread with the approver's decisions.

        Approved calls run, rejected calls are recorded as errors, and calls
        the response leaves out stay pending (the thread suspends again).
        """
        pending = self.state.pending
        if pending is None:
            raise ApprovalError(f"Thread {self.id} has no pending approvals")
        if response.request_id != pending.request_id:
            raise ApprovalError(
                f"Approval response {response.request_id} does not match "
                f"pending request {pending.request_id}"
            )

        known = {call.call_id for call in pending.tool_calls}
        decided = set(response.approved) | set(response.rejected)
        if decided - known:
            raise ApprovalError(
                f"Unknown call ids in approval response: {sorted(decided - known)}"
            )
        if set(response.approved) & set(response.rejected):
            raise ApprovalError("A call cannot be both approved and rejected")

        for call_id in response.approved:
            self.state.approvals[call_id] = "approved"
        for call_id in response.rejected:
            self.state.approvals[call_id] = "rejected"

        return await self._run(self._continue(pending), resumed=True)

    async def _run(
        self, body: Coroutine[None, None, ThreadResult], resumed: bool
    ) -> ThreadResult:
        if self._running:
            body.close()
            raise AgentThreadError(f"Thread {self.id} is already running")

        self._running = True
        start = time.time()
        try:
            await self.agent.hooks.trigger(
                "before_run", BeforeRunEventData(thread=self, resumed=resumed)
            )
            result = await body
        finally:
            self._running = False

        await self.agent.hooks.trigger(
            "after_run",
            AfterRunEventData(
                thread=self, result=result, total_time_ms=(time.time() - start) * 1000
            ),
        )
        return result

    async def _continue(self, pending: ApprovalRequest) -> ThreadResult:
        performed = await self.perform_actions(
            ActionSet(tool_calls=pending.tool_calls)
        )
        self.state.pending = None
        self._history.extend(performed.actions)

        if performed.pending_approvals:
            return await self._suspend(performed)
        return await self._loop()

    async def _loop(self) -> ThreadResult:
        while True:
            if self._abort.is_set():
                raise ThreadCancelled(f"Thread {self.id} was cancelled")

            tick_start = time.time()
            await self.agent.hooks.trigger(
                "before_tick", BeforeTickEventData(thread=self, tick=self.state.tick + 1)
            )

            ticked = await self.tick()
            self._history.extend(ticked.events)

            await self.agent.hooks.trigger(
                "after_tick",
                AfterTickEventData(
                    thread=self,
                    tick=self.state.tick,
                    events=list(ticked.events),
                    elapsed_time_ms=(time.time() - tick_start) * 1000,
                ),
            )

            # no tool calls: the model either answered or needs another turn
            if ticked.intentions is None:
                output = resolve_output(ticked.events, self.agent.output)
                if output is NOT_FOUND:
                    logger.debug(f"Thread {self.id}: tick {self.state.tick} had no text")
                    continue
                logger.debug(f"Thread {self.id}: completed after {self.state.tick} ticks")
                return ThreadResult(status="completed", output=output, state=self.state)

            performed = await self.perform_actions(ticked.intentions)
            self._history.extend(performed.actions)

            if performed.pending_approvals:
                return await self._suspend(performed)

    async def _suspend(self, performed: PerformResult) -> ThreadResult:
        request = ApprovalRequest(tool_calls=performed.pending_approvals)
        self.state.pending = request
        logger.info(
            f"Thread {self.id}: suspended on {len(request.tool_calls)} "
            f"call(s) awaiting approval ({request.request_id})"
        )
        await self.agent.hooks.trigger(
            "on_approval_required",
            OnApprovalRequiredEventData(thread=self, request=request),
        )
        return ThreadResult(status="suspended", state=self.state)

    # ------------------------------------------------------------------
    # Tick and actions
    # ------------------------------------------------------------------

    async def tick(self) -> TickResult:
        """Call the model once and interpret its response.

        Nothing is written to history here; the caller appends the events.
        """
        if self.state.tick >= self.max_ticks:
            raise MaxTicksExceeded(
                f"Thread {self.id} reached its limit of {self.max_ticks} ticks"
            )
        self.state.tick += 1

        request = await build_request(
            self._history, self.agent, self.context, abort=self._abort
        )
        await self.agent.hooks.trigger(
            "before_model_call", BeforeModelCallEventData(thread=self, request=request)
        )

        start = time.time()
        response = await self._until_cancelled(self._generate(request))
        self.state.model_responses.append(response)

        await self.agent.hooks.trigger(
            "after_model_call",
            AfterModelCallEventData(
                thread=self,
                response=response,
                response_time_ms=(time.time() - start) * 1000,
            ),
        )
        return interpret_response(response)

    async def perform_actions(self, intentions: ActionSet) -> PerformResult:
        """Run the intended tool calls and split off those needing approval."""
        executor = ActionExecutor(self.agent, self.context, approvals=self.state.approvals)
        results = await self._until_cancelled(
            executor.execute_all(intentions.tool_calls)
        )

        performed = PerformResult()
        for call, result in zip(intentions.tool_calls, results):
            if result.status == "requires_approval":
                performed.pending_approvals.append(call)
            else:
                performed.actions.append(result)
        return performed

    async def _generate(self, request: ModelRequest) -> ModelResponse:
        try:
            return await self.model.generate(request)
        except AgentThreadError:
            raise
        except Exception as e:
            raise ModelCallError(f"Model call failed: {str(e) or type(e).__name__}") from e

    async def _until_cancelled(self, coro: Awaitable[T]) -> T:
        """Await ``coro`` unless the thread is cancelled first."""
        task = asyncio.ensure_future(coro)
        if self._abort.is_set():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise ThreadCancelled(f"Thread {self.id} was cancelled")

        waiter = asyncio.ensure_future(self._abort.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise
        finally:
            waiter.cancel()

        if waiter in done:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise ThreadCancelled(f"Thread {self.id} was cancelled")
        return task.result()

    def __repr__(self) -> str:
        return f"Thread(id={self.id!r}, agent={self.agent.name!r}, tick={self.state.tick})"
