#!/usr/bin/env python3
"""Human-in-the-loop approval with a scripted model.

``delete_file`` requires approval, so the thread suspends after the first
tick. The snapshot is saved as JSON, rebuilt, and resumed with the answer
typed at the prompt.

Run:
    python examples/approval_agent.py
"""

import asyncio

from agent_thread import (
    Agent,
    ApprovalResponse,
    Message,
    ModelAdaptor,
    ModelResponse,
    Thread,
    ThreadSnapshot,
    ToolCall,
    ToolResult,
    function_tool,
)


@function_tool(requires_approval=True)
async def delete_file(path: str) -> str:
    """Delete a file from the workspace."""
    return f"{path} deleted"


class MockModel(ModelAdaptor):
    async def generate(self, request):
        results = [e for e in request.input if isinstance(e, ToolResult)]
        if not results:
            return ModelResponse(
                events=[ToolCall(id="delete_file", arguments='{"path": "notes.txt"}')]
            )
        if results[-1].status == "error":
            return ModelResponse(events=[Message.assistant("Understood, notes.txt was kept.")])
        return ModelResponse(events=[Message.assistant("notes.txt is gone.")])


async def main():
    agent = Agent(model=MockModel(), tools=[delete_file])

    thread = agent.thread("Remove notes.txt")
    result = await thread.execute()
    print(f"status: {result.status}")

    saved = thread.snapshot().model_dump_json()

    request = result.approval_request
    approved, rejected = [], []
    for call in request.tool_calls:
        answer = input(f"Allow {call.id}({call.arguments})? [y/N] ")
        (approved if answer.strip().lower() == "y" else rejected).append(call.call_id)

    restored = Thread.from_snapshot(agent, ThreadSnapshot.model_validate_json(saved))
    result = await restored.resume(
        ApprovalResponse(request_id=request.request_id, approved=approved, rejected=rejected)
    )
    print(f"status: {result.status}")
    print(result.output)


if __name__ == "__main__":
    asyncio.run(main())
