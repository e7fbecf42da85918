from agent_thread.events import Message, ToolCall
from agent_thread.interpret import interpret_response
from agent_thread.model import ModelResponse


class TestInterpretResponse:
    def test_text_only_has_no_intentions(self):
        reply = Message.assistant("Hello")

        result = interpret_response(ModelResponse(events=[reply]))

        assert result.events == [reply]
        assert result.intentions is None

    def test_empty_response(self):
        result = interpret_response(ModelResponse())
        assert result.events == []
        assert result.intentions is None

    def test_tool_calls_are_collected_in_order(self):
        events = [
            Message.assistant("Checking both."),
            ToolCall(id="weather", call_id="c1"),
            ToolCall(id="news", call_id="c2"),
        ]

        result = interpret_response(ModelResponse(events=events))

        assert result.events == events
        assert [c.call_id for c in result.intentions.tool_calls] == ["c1", "c2"]

    def test_interpretation_is_deterministic(self):
        response = ModelResponse(events=[ToolCall(id="weather", call_id="c1")])
        assert interpret_response(response) == interpret_response(response)
