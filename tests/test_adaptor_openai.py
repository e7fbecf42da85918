"""Tests for OpenAI ModelAdaptor."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agent_thread.adaptors.openai import OpenAIAdaptor
from agent_thread.events import FilePart, Message, TextPart, ToolCall, ToolResult
from agent_thread.model import ModelRequest, ModelSettings, ToolSpec
from agent_thread.tools import HostedTool, Tool, ToolInput


# --- Test Fixtures ---


class DummyToolInput(ToolInput):
    query: str


class DummyTool(Tool):
    name = "dummy"
    description = "A dummy tool for testing"
    input_model = DummyToolInput

    async def execute(self, query: str) -> str:
        return f"Result for {query}"


def mock_http_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


def completion(content=None, tool_calls=None, usage=None):
    body = {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": content,
                    "tool_calls": tool_calls,
                }
            }
        ]
    }
    if usage is not None:
        body["usage"] = usage
    return body


# --- Tests for Initialization ---


class TestOpenAIAdaptorInit:
    def test_init_with_explicit_api_key(self):
        adaptor = OpenAIAdaptor(api_key="sk-test123", model="gpt-4")
        assert adaptor.api_key == "sk-test123"
        assert adaptor.model == "gpt-4"
        assert adaptor.base_url == "https://api.openai.com/v1"

    def test_init_with_env_var(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env123")
        adaptor = OpenAIAdaptor()
        assert adaptor.api_key == "sk-env123"
        assert adaptor.model == "gpt-5-mini"  # Default

    def test_init_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OpenAI API key not provided"):
            OpenAIAdaptor()

    def test_init_explicit_api_key_overrides_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        adaptor = OpenAIAdaptor(api_key="sk-explicit")
        assert adaptor.api_key == "sk-explicit"


# --- Tests for History Conversion ---


class TestConvertHistory:
    def test_system_text_comes_first(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._convert_history("Be brief.", [Message.user("Hello")])

        assert result == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hello"},
        ]

    def test_no_system_message_when_empty(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._convert_history("", [Message.user("Hi")])

        assert [m["role"] for m in result] == ["user"]

    def test_tool_calls_fold_into_assistant_message(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        events = [
            Message.user("Search twice"),
            Message.assistant("Let me search for that"),
            ToolCall(id="dummy", call_id="call_1", arguments='{"query": "a"}'),
            ToolCall(id="dummy", call_id="call_2", arguments='{"query": "b"}'),
            ToolResult(call_id="call_1", name="dummy", status="completed", result="A"),
            ToolResult(call_id="call_2", name="dummy", status="error", error="boom"),
        ]

        result = adaptor._convert_history("", events)

        assert len(result) == 4
        assistant = result[1]
        assert assistant["content"] == "Let me search for that"
        assert [c["id"] for c in assistant["tool_calls"]] == ["call_1", "call_2"]
        assert assistant["tool_calls"][0]["function"] == {
            "name": "dummy",
            "arguments": '{"query": "a"}',
        }
        assert result[2] == {"role": "tool", "tool_call_id": "call_1", "content": "A"}
        assert result[3]["content"] == "Error: boom"

    def test_tool_call_without_preceding_text(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._convert_history(
            "", [Message.user("Go"), ToolCall(id="dummy", call_id="call_1")]
        )

        assert result[1]["role"] == "assistant"
        assert result[1]["content"] is None
        assert len(result[1]["tool_calls"]) == 1

    def test_structured_tool_result_is_json(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        events = [
            ToolResult(call_id="call_1", name="dummy", status="completed", result={"n": 8})
        ]

        result = adaptor._convert_history("", events)

        assert json.loads(result[0]["content"]) == {"n": 8}

    def test_image_part(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        message = Message(
            role="user",
            content=[
                TextPart(text="What is this?"),
                FilePart(mime_type="image/png", data="aGVsbG8="),
            ],
        )

        result = adaptor._convert_history("", [message])

        assert result[0]["content"] == [
            {"type": "text", "text": "What is this?"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,aGVsbG8="}},
        ]


# --- Tests for Tool Conversion ---


class TestConvertTool:
    def test_convert_function_tool(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._convert_tool(DummyTool().serialize())

        assert result["type"] == "function"
        assert result["function"]["name"] == "dummy"
        assert result["function"]["description"] == "A dummy tool for testing"
        assert "query" in result["function"]["parameters"]["properties"]

    def test_convert_hosted_tool_uses_provider_data(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        spec = HostedTool("web_search", provider_data={"type": "web_search"}).serialize()

        assert adaptor._convert_tool(spec) == {"type": "web_search"}


# --- Tests for Payload ---


class TestBuildPayload:
    def test_minimal_payload(self):
        adaptor = OpenAIAdaptor(api_key="sk-test", model="gpt-4")

        payload = adaptor._build_payload(ModelRequest(system="", input=[Message.user("Hi")]))

        assert payload == {"model": "gpt-4", "messages": [{"role": "user", "content": "Hi"}]}

    def test_settings_and_tools(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        request = ModelRequest(
            system="",
            input=[Message.user("Hi")],
            tools=[ToolSpec(name="dummy")],
            settings=ModelSettings(
                temperature=0.5, top_p=0.9, max_tokens=200, extra={"seed": 7}
            ),
        )

        payload = adaptor._build_payload(request)

        assert payload["tool_choice"] == "auto"
        assert payload["temperature"] == 0.5
        assert payload["top_p"] == 0.9
        assert payload["max_completion_tokens"] == 200
        assert payload["seed"] == 7

    def test_response_schema(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")
        schema = {"type": "object", "properties": {"answer": {"type": "integer"}}}

        payload = adaptor._build_payload(
            ModelRequest(system="", input=[], response_schema=schema)
        )

        assert payload["response_format"]["type"] == "json_schema"
        assert payload["response_format"]["json_schema"]["schema"] == schema


# --- Tests for Response Parsing ---


class TestParseResponse:
    def test_parse_final_response(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._parse_response(
            completion(
                "Hello!",
                usage={"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
            )
        )

        [message] = result.events
        assert message.role == "assistant"
        assert message.text == "Hello!"
        assert result.usage.requests == 1
        assert result.usage.input_tokens == 12
        assert result.usage.total_tokens == 15

    def test_parse_multiple_tool_calls(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._parse_response(
            completion(
                tool_calls=[
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "dummy", "arguments": '{"query": "a"}'},
                    },
                    {
                        "id": "call_2",
                        "type": "function",
                        "function": {"name": "dummy", "arguments": ""},
                    },
                ]
            )
        )

        assert [e.call_id for e in result.events] == ["call_1", "call_2"]
        assert result.events[0].id == "dummy"
        assert result.events[1].arguments == "{}"

    def test_parse_response_missing_choices(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        with pytest.raises(ValueError, match="missing 'choices'"):
            adaptor._parse_response({})

    def test_parse_response_empty_content(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        result = adaptor._parse_response(completion(""))

        assert result.events == []


# --- Tests for generate ---


class TestGenerate:
    @pytest.mark.asyncio
    async def test_generate_posts_to_chat_completions(self):
        adaptor = OpenAIAdaptor(api_key="sk-test", base_url="http://localhost:8000/v1")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_http_response(body=completion("Response"))

            result = await adaptor.generate(
                ModelRequest(system="", input=[Message.user("Hello")])
            )

            call_args = mock_instance.post.call_args
            assert call_args.args[0] == "http://localhost:8000/v1/chat/completions"
            assert call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"
            assert call_args.kwargs["json"]["model"] == "gpt-5-mini"
            assert result.events[0].text == "Response"

    @pytest.mark.asyncio
    async def test_generate_api_error(self):
        adaptor = OpenAIAdaptor(api_key="sk-test")

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.return_value = mock_http_response(
                401, {"error": {"message": "Invalid API key"}}
            )

            with pytest.raises(ValueError, match=r"OpenAI API error \(401\): Invalid API key"):
                await adaptor.generate(ModelRequest(system="", input=[Message.user("Hi")]))
