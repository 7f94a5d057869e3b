"""Protocol events exchanged between the relay and the chat client.

Each event travels as a single ``data: <payload>`` line followed by a blank
line. The payload is either the literal ``[DONE]`` end marker or a JSON object
carrying ``content`` or ``error``.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"
DONE_FRAME = f"{DATA_PREFIX}{DONE_MARKER}\n\n"


class DecodeError(ValueError):
    """Raised when an event line carries a payload that cannot be interpreted."""

    def __init__(self, message: str, line: str) -> None:
        super().__init__(message)
        self.line = line


class WirePayload(BaseModel):
    """JSON payload of a non-terminal event line.

    Attributes:
        content: Text fragment produced by the model.
        error: User-facing error message; ends the stream.
    """

    content: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def require_one_field(self) -> "WirePayload":
        """Reject payloads that carry neither content nor error."""
        if self.content is None and self.error is None:
            raise ValueError("payload has neither 'content' nor 'error'")
        return self


class ContentEvent(BaseModel):
    kind: Literal["content"] = "content"
    text: str


class ErrorEvent(BaseModel):
    kind: Literal["error"] = "error"
    message: str


class DoneEvent(BaseModel):
    kind: Literal["done"] = "done"


ProtocolEvent = Annotated[ContentEvent | ErrorEvent | DoneEvent, Field(discriminator="kind")]


def interpret_line(line: str) -> ProtocolEvent | None:
    """Map one complete line of the stream to a protocol event.

    Lines without the ``data:`` prefix (blank separators, comments, other SSE
    fields) are not events and yield ``None``.

    Args:
        line: A complete line, without its newline delimiter.

    Returns:
        The decoded event, or None if the line is not an event line.

    Raises:
        DecodeError: If the payload is not a valid JSON event object.
    """
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_MARKER:
        return DoneEvent()

    try:
        data = WirePayload.model_validate_json(payload)
    except ValidationError as e:
        raise DecodeError(f"Malformed event payload: {e.error_count()} error(s)", line) from e

    # An error payload terminates the stream even if it also carries content
    if data.error is not None:
        return ErrorEvent(message=data.error)
    return ContentEvent(text=data.content or "")


def _frame(payload: WirePayload) -> str:
    return f"{DATA_PREFIX}{payload.model_dump_json(exclude_none=True)}\n\n"


def encode_content(text: str) -> str:
    """Encode a model text fragment as a content event frame."""
    return _frame(WirePayload(content=text))


def encode_error(message: str) -> str:
    """Encode a user-facing error message as an error event frame."""
    return _frame(WirePayload(error=message))
