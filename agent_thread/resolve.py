"""Final response resolution.

Finds the text of the latest assistant message in a history and, when the
agent declares a structured output type, validates it.
"""

from typing import Any, Optional, Sequence

from pydantic import BaseModel, TypeAdapter, ValidationError

from agent_thread.events import Message, TextPart
from agent_thread.exceptions import ModelBehaviorError


class _NotFound:
    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND: Any = _NotFound()


def get_final_response(events: Sequence) -> Optional[str]:
    """Return the first text part of the last assistant message, or None."""
    for event in reversed(events):
        if isinstance(event, Message) and event.role == "assistant":
            for part in event.content:
                if isinstance(part, TextPart):
                    return part.text
    return None


def output_schema(output: Any) -> Optional[dict]:
    """JSON schema for a structured output type, None for free text."""
    if output == "text":
        return None
    if isinstance(output, type) and issubclass(output, BaseModel):
        return output.model_json_schema()
    return TypeAdapter(output).json_schema()


def parse_final_response(text: str, output: Any) -> Any:
    """Decode ``text`` according to ``output``.

    ``"text"`` returns the text as-is. A Pydantic model class (or any type
    Pydantic can adapt) decodes the text as JSON and validates it.

    Raises:
        ModelBehaviorError: If the text does not satisfy the output type.
    """
    if output == "text":
        return text

    try:
        if isinstance(output, type) and issubclass(output, BaseModel):
            return output.model_validate_json(text)
        return TypeAdapter(output).validate_json(text)
    except ValidationError as e:
        raise ModelBehaviorError(f"Failed to parse structured output: {e}") from e


def resolve_output(events: Sequence, output: Any) -> Any:
    """Resolve the run's output from history, or NOT_FOUND if no text yet.

    An empty final text counts as not found.
    """
    text = get_final_response(events)
    if not text:
        return NOT_FOUND
    return parse_final_response(text, output)
