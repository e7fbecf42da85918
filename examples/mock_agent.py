#!/usr/bin/env python3
"""agent-thread with a scripted model, no API key needed.

The mock model asks for two tool calls in the same tick, so the thread runs
them concurrently, then answers in the second tick. Printing the history
shows what a thread records.

Run:
    python examples/mock_agent.py
"""

import ast
import asyncio
import logging
import operator
import sys

from pydantic import Field

from agent_thread import (
    Agent,
    Message,
    ModelAdaptor,
    ModelResponse,
    Tool,
    ToolCall,
    ToolInput,
    ToolResult,
    Usage,
    function_tool,
)

_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}


class CalculatorInput(ToolInput):
    expression: str = Field(description="Arithmetic expression, e.g. '25 + 17'")


class CalculatorTool(Tool):
    name = "calculator"
    description = "Evaluates +, -, * and / over numbers"
    input_model = CalculatorInput

    async def execute(self, expression: str) -> float:
        return self._eval(ast.parse(expression, mode="eval").body)

    def _eval(self, node):
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
            return node.value
        if isinstance(node, ast.BinOp) and type(node.op) in _OPERATORS:
            return _OPERATORS[type(node.op)](self._eval(node.left), self._eval(node.right))
        raise ValueError(f"Unsupported expression: {ast.dump(node)}")


@function_tool
async def weather(city: str) -> str:
    """Current weather for a city."""
    await asyncio.sleep(0.1)
    return f"Partly cloudy, 28°C in {city}"


class MockModelAdaptor(ModelAdaptor):
    """Returns scripted responses, one per tick."""

    def __init__(self):
        self.responses = [
            [
                Message.assistant("I'll calculate and check the weather at the same time."),
                ToolCall(id="calculator", arguments='{"expression": "25 + 17"}'),
                ToolCall(id="weather", arguments='{"city": "São Paulo"}'),
            ],
            [Message.assistant("25 + 17 = 42, and São Paulo is partly cloudy at 28°C.")],
        ]

    async def generate(self, request):
        events = self.responses.pop(0) if self.responses else []
        return ModelResponse(
            events=events, usage=Usage(requests=1, input_tokens=50, output_tokens=20, total_tokens=70)
        )


def print_history(thread) -> None:
    print("\nHistory")
    print("-" * 70)
    for i, event in enumerate(thread.history, 1):
        if isinstance(event, Message):
            print(f"  {i}. {event.role.upper()}: {event.text}")
        elif isinstance(event, ToolCall):
            print(f"  {i}. CALL {event.id}({event.arguments}) [{event.call_id}]")
        elif isinstance(event, ToolResult):
            detail = event.result if event.status == "completed" else event.error
            print(f"  {i}. RESULT {event.name} {event.status}: {detail}")


async def main() -> int:
    logging.basicConfig(level=logging.INFO)

    agent = Agent(model=MockModelAdaptor(), tools=[CalculatorTool(), weather], max_ticks=5)

    @agent.hook("after_tick")
    async def on_tick(event):
        print(f"tick {event.tick}: {len(event.events)} event(s) in {event.elapsed_time_ms:.0f}ms")

    thread = agent.thread("What is 25 + 17? And what's the weather in São Paulo?")
    result = await thread.execute()

    print_history(thread)
    print(f"\nOutput: {result.output}")
    print(f"Ticks: {result.state.tick}, tokens: {result.state.usage.total_tokens}")
    return 0 if result.status == "completed" else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
