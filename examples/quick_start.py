"""Minimal agent-thread example with a hook. Requires OPENAI_API_KEY."""

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from agent_thread import Agent, OpenAIAdaptor, function_tool


@function_tool
def local_time(timezone: str) -> str:
    """Current local time in an IANA timezone such as Europe/Lisbon."""
    try:
        now = datetime.now(ZoneInfo(timezone))
    except ZoneInfoNotFoundError:
        raise ValueError(f"unknown timezone {timezone!r}")
    return now.strftime("%H:%M")


agent = Agent(
    model=OpenAIAdaptor(model="gpt-4.1-mini"),
    tools=[local_time],
    instructions="Answer with the tools available; keep it to one sentence.",
)


@agent.hook("after_tool_call")
def show_call(event):
    outcome = event.result.result if event.result.status == "completed" else event.result.error
    print(f"[{event.execution_time_ms:.0f}ms] {event.tool_name}{event.tool_call.arguments} -> {outcome}")


if __name__ == "__main__":
    # Both lookups usually land in the same tick and run concurrently.
    result = agent.run("What time is it in Tokyo and in Lisbon right now?")
    print(result.output)
    print(f"ticks: {result.state.tick}, tokens: {result.state.usage.total_tokens}")
