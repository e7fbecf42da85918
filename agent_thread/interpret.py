from agent_thread.events import ActionSet, TickResult, ToolCall
from agent_thread.model import ModelResponse


def interpret_response(response: ModelResponse) -> TickResult:
    """Split a model response into history events and intended actions.

    Every event is kept for history in emission order; tool calls are also
    collected as intentions. ``intentions`` is None iff there are no calls.
    """
    events = []
    tool_calls = []

    for event in response.events:
        if isinstance(event, ToolCall):
            tool_calls.append(event)
        events.append(event)

    return TickResult(
        events=events,
        intentions=ActionSet(tool_calls=tool_calls) if tool_calls else None,
    )
