"""Anthropic API adaptor for agent-thread."""

import json
import os
from typing import Any, Optional

from anthropic import AsyncAnthropic

from agent_thread.events import FilePart, Message, TextPart, ToolCall, ToolResult
from agent_thread.model import ModelAdaptor, ModelRequest, ModelResponse, ToolSpec, Usage

_TOOL_CHOICE = {"auto": {"type": "auto"}, "required": {"type": "any"}, "none": {"type": "none"}}


class AnthropicAdaptor(ModelAdaptor):
    """Anthropic model adaptor using the official SDK.

    Args:
        api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY environment variable.
        model: Model name (default: claude-sonnet-4-5-20250929).
        max_tokens: Maximum tokens in the response when settings leave it unset.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 1024,
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Anthropic API key not provided. "
                "Pass api_key argument or set ANTHROPIC_API_KEY environment variable."
            )

        self.model = model
        self.max_tokens = max_tokens
        self.client = AsyncAnthropic(api_key=self.api_key)

    async def generate(self, request: ModelRequest) -> ModelResponse:
        settings = request.settings
        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": settings.max_tokens or self.max_tokens,
            "messages": self._convert_history(request.input),
        }

        system = request.system
        if request.response_schema is not None:
            schema = json.dumps(request.response_schema)
            system = (
                f"{system}\n\n" if system else ""
            ) + f"Reply with only a JSON value matching this schema:\n{schema}"
        if system:
            create_kwargs["system"] = system

        if request.tools:
            create_kwargs["tools"] = [self._convert_tool(spec) for spec in request.tools]
            if settings.tool_choice is not None:
                choice = settings.tool_choice
                create_kwargs["tool_choice"] = (
                    _TOOL_CHOICE.get(choice, {"type": "tool", "name": choice})
                    if isinstance(choice, str)
                    else choice
                )

        if settings.temperature is not None:
            create_kwargs["temperature"] = settings.temperature
        if settings.top_p is not None:
            create_kwargs["top_p"] = settings.top_p
        create_kwargs.update(settings.extra)

        response = await self.client.messages.create(**create_kwargs)
        return self._parse_response(response)

    def _convert_history(self, events: list) -> list[dict]:
        """Convert history events to Anthropic messages.

        Tool calls join the preceding assistant turn; consecutive tool results
        share one user turn, as the API requires.
        """
        messages: list[dict] = []

        def turn(role: str) -> list:
            if not messages or messages[-1]["role"] != role:
                messages.append({"role": role, "content": []})
            return messages[-1]["content"]

        for event in events:
            if isinstance(event, Message):
                if event.role == "system":
                    # system text is sent separately; keep mid-thread notes as user text
                    turn("user").append({"type": "text", "text": event.text})
                    continue
                turn(event.role).extend(self._convert_content(event))
            elif isinstance(event, ToolCall):
                turn("assistant").append(
                    {
                        "type": "tool_use",
                        "id": event.call_id,
                        "name": event.id,
                        "input": json.loads(event.arguments or "{}"),
                    }
                )
            elif isinstance(event, ToolResult):
                block = {
                    "type": "tool_result",
                    "tool_use_id": event.call_id,
                    "content": _tool_result_text(event),
                }
                if event.status == "error":
                    block["is_error"] = True
                turn("user").append(block)
        return messages

    def _convert_content(self, message: Message) -> list[dict]:
        blocks = []
        for part in message.content:
            if isinstance(part, TextPart):
                blocks.append({"type": "text", "text": part.text})
            elif isinstance(part, FilePart):
                kind = "image" if part.mime_type.startswith("image/") else "document"
                blocks.append(
                    {
                        "type": kind,
                        "source": {
                            "type": "base64",
                            "media_type": part.mime_type,
                            "data": part.data,
                        },
                    }
                )
        return blocks

    def _convert_tool(self, spec: ToolSpec) -> dict:
        if spec.kind != "function":
            return dict(spec.provider_data or {"name": spec.name})
        return {
            "name": spec.name,
            "description": spec.description,
            "input_schema": spec.parameters,
        }

    def _parse_response(self, response) -> ModelResponse:
        events: list = []
        for block in response.content:
            if block.type == "text" and block.text:
                events.append(Message.assistant(block.text))
            elif block.type == "tool_use":
                events.append(
                    ToolCall(
                        id=block.name,
                        call_id=block.id,
                        name=block.name,
                        arguments=json.dumps(block.input),
                    )
                )

        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "input_tokens", 0) or 0
        output_tokens = getattr(usage, "output_tokens", 0) or 0
        return ModelResponse(
            events=events,
            usage=Usage(
                requests=1,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
        )


def _tool_result_text(result: ToolResult) -> str:
    if result.status == "error":
        return result.error or "error"
    if isinstance(result.result, str):
        return result.result
    return json.dumps(result.result, default=str)
