import asyncio
from typing import TYPE_CHECKING, Optional, Sequence

from agent_thread.context import Context
from agent_thread.model import ModelRequest
from agent_thread.resolve import output_schema

if TYPE_CHECKING:
    from agent_thread.agent import Agent


async def build_request(
    history: Sequence,
    agent: "Agent",
    context: Context,
    abort: Optional[asyncio.Event] = None,
) -> ModelRequest:
    """Assemble the next model request for ``agent`` from ``history``.

    Instructions are resolved to text, tools are filtered through their
    ``is_enabled`` predicate and serialized, and model settings are copied
    as-is. The history itself is copied, never modified.
    """
    system = await agent.resolve_instructions(context)

    capabilities = await agent.tools(context)
    enabled = await asyncio.gather(
        *(tool.is_enabled(context, agent) for tool in capabilities)
    )
    tools = [tool.serialize() for tool, ok in zip(capabilities, enabled) if ok]

    return ModelRequest(
        system=system,
        input=list(history),
        tools=tools,
        settings=agent.model_settings.model_copy(deep=True),
        response_schema=output_schema(agent.output),
        abort=abort,
    )
