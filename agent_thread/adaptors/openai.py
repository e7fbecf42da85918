"""OpenAI API adaptor for agent-thread."""

import json
import os
from typing import Any, Optional

import httpx

from agent_thread.events import FilePart, Message, TextPart, ToolCall, ToolResult
from agent_thread.model import (
    ModelAdaptor,
    ModelRequest,
    ModelResponse,
    ToolSpec,
    Usage,
)


class OpenAIAdaptor(ModelAdaptor):
    """OpenAI-compatible model adaptor (Chat Completions API).

    Supports OpenAI API and compatible endpoints (local models, proxies, etc.).

    Args:
        api_key: OpenAI API key. Falls back to OPENAI_API_KEY environment variable.
        model: Model name (default: gpt-5-mini).
        base_url: Base URL for the API (default: https://api.openai.com/v1).
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-5-mini",
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key not provided. "
                "Pass api_key argument or set OPENAI_API_KEY environment variable."
            )

        self.model = model
        self.base_url = base_url or "https://api.openai.com/v1"
        self.timeout = timeout

    async def generate(self, request: ModelRequest) -> ModelResponse:
        """Call the Chat Completions endpoint once.

        Raises:
            ValueError: If the API returns an error or a malformed response.
            httpx.HTTPError: If the request itself fails.
        """
        payload = self._build_payload(request)

        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )

        if response.status_code != 200:
            try:
                error_msg = response.json().get("error", {}).get("message", "Unknown error")
            except ValueError:
                error_msg = response.text or "Unknown error"
            raise ValueError(f"OpenAI API error ({response.status_code}): {error_msg}")

        return self._parse_response(response.json())

    def _build_payload(self, request: ModelRequest) -> dict:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_history(request.system, request.input),
        }

        if request.tools:
            payload["tools"] = [self._convert_tool(spec) for spec in request.tools]
            payload["tool_choice"] = request.settings.tool_choice or "auto"

        settings = request.settings
        if settings.temperature is not None:
            payload["temperature"] = settings.temperature
        if settings.top_p is not None:
            payload["top_p"] = settings.top_p
        if settings.max_tokens is not None:
            payload["max_completion_tokens"] = settings.max_tokens

        if request.response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "output", "schema": request.response_schema},
            }

        payload.update(settings.extra)
        return payload

    def _convert_history(self, system: str, events: list) -> list[dict]:
        """Convert history events to OpenAI chat messages.

        Consecutive tool calls are folded into the preceding assistant message.
        """
        messages: list[dict] = []
        if system:
            messages.append({"role": "system", "content": system})

        for event in events:
            if isinstance(event, Message):
                messages.append(
                    {"role": event.role, "content": self._convert_content(event)}
                )
            elif isinstance(event, ToolCall):
                last = messages[-1] if messages else None
                if last is None or last["role"] != "assistant":
                    last = {"role": "assistant", "content": None}
                    messages.append(last)
                last.setdefault("tool_calls", []).append(
                    {
                        "id": event.call_id,
                        "type": "function",
                        "function": {"name": event.id, "arguments": event.arguments},
                    }
                )
            elif isinstance(event, ToolResult):
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": event.call_id,
                        "content": _tool_result_text(event),
                    }
                )
        return messages

    def _convert_content(self, message: Message):
        if all(isinstance(p, TextPart) for p in message.content):
            return message.text

        parts = []
        for part in message.content:
            if isinstance(part, TextPart):
                parts.append({"type": "text", "text": part.text})
            elif isinstance(part, FilePart):
                url = _data_url(part)
                if part.mime_type.startswith("image/"):
                    parts.append({"type": "image_url", "image_url": {"url": url}})
                else:
                    parts.append({"type": "file", "file": {"file_data": url}})
        return parts

    def _convert_tool(self, spec: ToolSpec) -> dict:
        if spec.kind != "function":
            return dict(spec.provider_data or {"type": spec.name})
        return {
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.parameters,
            },
        }

    def _parse_response(self, data: dict) -> ModelResponse:
        """Parse a Chat Completions response into history events.

        Raises:
            ValueError: If the response has no choices.
        """
        if not data.get("choices"):
            raise ValueError("OpenAI response missing 'choices' field")

        message = data["choices"][0].get("message") or {}
        events: list = []

        content = message.get("content")
        if content:
            events.append(Message.assistant(content))

        for tool_call in message.get("tool_calls") or []:
            function = tool_call["function"]
            events.append(
                ToolCall(
                    id=function["name"],
                    call_id=tool_call["id"],
                    name=function["name"],
                    arguments=function.get("arguments") or "{}",
                )
            )

        usage = data.get("usage") or {}
        return ModelResponse(
            events=events,
            usage=Usage(
                requests=1,
                input_tokens=usage.get("prompt_tokens", 0),
                output_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            ),
        )


def _data_url(part: FilePart) -> str:
    if part.data.startswith(("http://", "https://", "data:")):
        return part.data
    return f"data:{part.mime_type};base64,{part.data}"


def _tool_result_text(result: ToolResult) -> str:
    if result.status == "error":
        return f"Error: {result.error}"
    if isinstance(result.result, str):
        return result.result
    return json.dumps(result.result, default=str)
