"""Tests for the Anthropic adaptor."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from agent_thread.events import FilePart, Message, TextPart, ToolCall, ToolResult
from agent_thread.model import ModelRequest, ModelSettings
from agent_thread.tools import HostedTool, function_tool


@function_tool
def lookup(term: str) -> str:
    """Look a term up in the glossary."""
    return term


def text_block(text):
    return SimpleNamespace(type="text", text=text)


def tool_use_block(block_id, name, input_data):
    return SimpleNamespace(type="tool_use", id=block_id, name=name, input=input_data)


def reply(*blocks, input_tokens=12, output_tokens=4):
    return SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


@pytest.fixture
def client():
    with patch("agent_thread.adaptors.anthropic.AsyncAnthropic") as client_cls:
        instance = client_cls.return_value
        instance.messages.create = AsyncMock(return_value=reply(text_block("ok")))
        yield instance


@pytest.fixture
def adaptor(client):
    from agent_thread.adaptors.anthropic import AnthropicAdaptor

    return AnthropicAdaptor(api_key="test-key")


def sent(client) -> dict:
    return client.messages.create.call_args.kwargs


class TestInit:
    def test_api_key_is_required(self, client):
        from agent_thread.adaptors.anthropic import AnthropicAdaptor

        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="Anthropic API key"):
                AnthropicAdaptor()

    def test_key_from_environment(self, client):
        from agent_thread.adaptors.anthropic import AnthropicAdaptor

        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "env-key"}):
            assert AnthropicAdaptor().api_key == "env-key"

    def test_defaults(self, adaptor):
        assert adaptor.model == "claude-sonnet-4-5-20250929"
        assert adaptor.max_tokens == 1024


class TestHistory:
    def test_tool_use_joins_the_assistant_turn(self, adaptor):
        messages = adaptor._convert_history(
            [
                Message.user("define ETA"),
                Message.assistant("Checking."),
                ToolCall(id="lookup", call_id="tu_1", arguments='{"term": "ETA"}'),
            ]
        )

        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[1]["content"] == [
            {"type": "text", "text": "Checking."},
            {"type": "tool_use", "id": "tu_1", "name": "lookup", "input": {"term": "ETA"}},
        ]

    def test_parallel_results_share_one_user_turn(self, adaptor):
        messages = adaptor._convert_history(
            [
                ToolCall(id="lookup", call_id="tu_1"),
                ToolCall(id="lookup", call_id="tu_2"),
                ToolResult(call_id="tu_1", name="lookup", status="completed", result={"n": 1}),
                ToolResult(call_id="tu_2", name="lookup", status="error", error="no such term"),
            ]
        )

        assert [m["role"] for m in messages] == ["assistant", "user"]
        first, second = messages[1]["content"]
        assert first == {"type": "tool_result", "tool_use_id": "tu_1", "content": '{"n": 1}'}
        assert second["content"] == "no such term"
        assert second["is_error"] is True

    def test_system_message_becomes_user_text(self, adaptor):
        messages = adaptor._convert_history([Message.system("Be brief."), Message.user("hi")])

        assert messages == [
            {
                "role": "user",
                "content": [{"type": "text", "text": "Be brief."}, {"type": "text", "text": "hi"}],
            }
        ]

    @pytest.mark.parametrize(
        "mime_type, block_type", [("image/png", "image"), ("application/pdf", "document")]
    )
    def test_file_parts(self, adaptor, mime_type, block_type):
        message = Message(
            role="user",
            content=[TextPart(text="see attached"), FilePart(mime_type=mime_type, data="QUJD")],
        )

        [turn] = adaptor._convert_history([message])

        assert turn["content"][1] == {
            "type": block_type,
            "source": {"type": "base64", "media_type": mime_type, "data": "QUJD"},
        }


class TestTools:
    def test_function_tool(self, adaptor):
        converted = adaptor._convert_tool(lookup.serialize())

        assert converted["name"] == "lookup"
        assert converted["description"] == "Look a term up in the glossary."
        assert converted["input_schema"]["required"] == ["term"]

    def test_hosted_tool_passes_provider_data(self, adaptor):
        hosted = HostedTool(
            "web_search", provider_data={"type": "web_search_20250305", "name": "web_search"}
        )

        assert adaptor._convert_tool(hosted.serialize()) == {
            "type": "web_search_20250305",
            "name": "web_search",
        }


class TestParseResponse:
    def test_text_and_tool_use(self, adaptor):
        response = adaptor._parse_response(
            reply(text_block("Checking."), tool_use_block("tu_9", "lookup", {"term": "SLA"}))
        )

        message, call = response.events
        assert message.text == "Checking."
        assert (call.id, call.call_id, call.arguments) == ("lookup", "tu_9", '{"term": "SLA"}')
        assert response.usage.total_tokens == 16
        assert response.usage.requests == 1

    def test_empty_text_blocks_are_dropped(self, adaptor):
        response = adaptor._parse_response(reply(text_block(""), text_block("done")))

        assert [e.text for e in response.events] == ["done"]


class TestGenerate:
    async def test_minimal_request(self, adaptor, client):
        response = await adaptor.generate(ModelRequest(system="", input=[Message.user("hi")]))

        assert response.events[0].text == "ok"
        kwargs = sent(client)
        assert "system" not in kwargs
        assert "tools" not in kwargs
        assert kwargs["max_tokens"] == 1024

    @pytest.mark.parametrize(
        "choice, expected",
        [
            ("required", {"type": "any"}),
            ("none", {"type": "none"}),
            ("lookup", {"type": "tool", "name": "lookup"}),
        ],
    )
    async def test_tool_choice(self, adaptor, client, choice, expected):
        await adaptor.generate(
            ModelRequest(
                system="",
                input=[Message.user("hi")],
                tools=[lookup.serialize()],
                settings=ModelSettings(tool_choice=choice),
            )
        )

        assert sent(client)["tool_choice"] == expected

    async def test_settings_are_forwarded(self, adaptor, client):
        await adaptor.generate(
            ModelRequest(
                system="Be helpful.",
                input=[Message.user("hi")],
                settings=ModelSettings(
                    temperature=0.2, max_tokens=64, extra={"stop_sequences": ["END"]}
                ),
            )
        )

        kwargs = sent(client)
        assert kwargs["system"] == "Be helpful."
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 64
        assert kwargs["stop_sequences"] == ["END"]

    async def test_response_schema_is_appended_to_system(self, adaptor, client):
        await adaptor.generate(
            ModelRequest(
                system="Be helpful.",
                input=[Message.user("5+3?")],
                response_schema={"type": "object"},
            )
        )

        system = sent(client)["system"]
        assert system.startswith("Be helpful.\n\nReply with only a JSON value")
        assert system.endswith('{"type": "object"}')
