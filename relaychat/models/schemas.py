import time
import uuid
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _validate_data_uris(v: list[str]) -> list[str]:
    for uri in v:
        if not uri.startswith("data:") or ";base64," not in uri:
            raise ValueError("images must be base64 data URIs")
    return v


DataUriList = Annotated[list[str], AfterValidator(_validate_data_uris)]


class Message(BaseModel):
    """A message in the client-side conversation transcript.

    Attributes:
        id: Unique message identifier.
        role: Who wrote the message.
        content: Message text; grows while the assistant reply streams in.
        images: Attached images as data URIs, in attachment order.
        timestamp: Creation time in milliseconds since the epoch.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role
    content: str = ""
    images: DataUriList | None = None
    timestamp: int = Field(default_factory=_now_ms)


class ChatMessage(BaseModel):
    """A message as sent to the relay.

    Attributes:
        role: The speaker identifier (user or assistant).
        content: The message text; may be empty when images are attached.
        images: Data URIs, only sent with the most recent message.
    """

    role: Role = Field(..., description="Message role: 'user' or 'assistant'")
    content: str = Field("", description="The message content")
    images: DataUriList | None = Field(None, description="Attached images as data URIs")


class ChatRequest(BaseModel):
    """Request payload for the streaming chat relay.

    Attributes:
        messages: Windowed conversation history, oldest first.
        search_enabled: Whether the model may use web search.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(..., min_length=1)
    search_enabled: bool = Field(False, alias="searchEnabled")


class AuthRequest(BaseModel):
    """Login payload carrying the shared access password."""

    password: str


class TokenResponse(BaseModel):
    """Successful login response."""

    token: str


class ErrorResponse(BaseModel):
    """Non-streaming error body returned by the API."""

    error: str
