#!/usr/bin/env python3
"""Agent using tools discovered from an MCP server.

Starts mcp_server.py over stdio, lists its tools and runs a thread whose
scripted model calls both of them in one tick.

Requirements:
    pip install agent-thread[mcp]

Run:
    python examples/mcp_agent.py
"""

import asyncio
import sys
from pathlib import Path

from mcp.client.stdio import StdioServerParameters

from agent_thread import Agent, MCPConnection, Message, ModelAdaptor, ModelResponse, ToolCall, ToolResult


class MockModel(ModelAdaptor):
    """Calls both conversion tools, then reports what they returned."""

    async def generate(self, request):
        results = [e for e in request.input if isinstance(e, ToolResult)]
        if not results:
            return ModelResponse(
                events=[
                    ToolCall(id="km_to_miles", arguments='{"km": 42.195}'),
                    ToolCall(id="celsius_to_fahrenheit", arguments='{"celsius": 21}'),
                ]
            )
        lines = [str(r.result if r.status == "completed" else r.error) for r in results]
        return ModelResponse(events=[Message.assistant("\n".join(lines))])


async def main():
    server_params = StdioServerParameters(
        command=sys.executable,
        args=[str(Path(__file__).with_name("mcp_server.py"))],
    )

    async with MCPConnection(server_params) as mcp_tools:
        print(f"Discovered {len(mcp_tools)} MCP tool(s): {[t.name for t in mcp_tools]}")

        agent = Agent(model=MockModel(), tools=mcp_tools)
        result = await agent.run_async("Convert a marathon to miles and 21 °C to °F")

        print(f"Status: {result.status} after {result.state.tick} tick(s)")
        print(result.output)


if __name__ == "__main__":
    asyncio.run(main())
