"""Streaming chat relay endpoint.

Validates the bearer credential, forwards a bounded conversation window to the
model service and re-encodes its output as server-sent events::

    data: {"content": "Hel"}

    data: {"content": "lo"}

    data: [DONE]

A provider failure mid-stream becomes a single ``error`` event; a failure
before the first fragment becomes a plain JSON error with a classified status.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from relaychat.agent.chat_agent import ModelService, ProviderError, get_model_service
from relaychat.api.credentials import require_credential
from relaychat.api.errors import RelayError
from relaychat.models.schemas import ChatMessage, ChatRequest, ErrorResponse
from relaychat.protocol.errors import classify_error, http_status, user_message
from relaychat.protocol.events import DONE_FRAME, encode_content, encode_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

# Sliding window of messages forwarded to the model
HISTORY_WINDOW = 12

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def model_service() -> ModelService:
    """Resolve the model service, reporting missing configuration as a 500."""
    try:
        return get_model_service()
    except ValidationError as e:
        logger.error(f"Model service is not configured: {e.error_count()} error(s)")
        raise RelayError(500, "API key not configured") from e


def bound_history(messages: list[ChatMessage], window: int = HISTORY_WINDOW) -> list[ChatMessage]:
    """Keep the ``window`` most recent messages, with images only on the newest.

    Args:
        messages: Conversation history as received, oldest first.
        window: Maximum number of messages to keep.

    Returns:
        The bounded history.
    """
    recent = messages[-window:]
    return [
        msg if i == len(recent) - 1 or not msg.images else msg.model_copy(update={"images": None})
        for i, msg in enumerate(recent)
    ]


async def _event_stream(
    first: str | None, fragments: AsyncGenerator[str]
) -> AsyncGenerator[str]:
    """Encode model fragments as protocol events, ending with DONE or an error."""
    try:
        if first:
            yield encode_content(first)
        async for fragment in fragments:
            if fragment:
                yield encode_content(fragment)
    except Exception as e:
        category = classify_error(str(e))
        logger.error(f"Streaming failed ({category.value}): {e}")
        yield encode_error(user_message(category))
        return
    finally:
        await fragments.aclose()

    yield DONE_FRAME


@router.post(
    "/chat",
    responses={
        200: {"content": {"text/event-stream": {}}},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def chat_stream(
    request: ChatRequest,
    _: Annotated[None, Depends(require_credential)],
    service: Annotated[ModelService, Depends(model_service)],
) -> StreamingResponse:
    """Stream a model reply as server-sent events.

    The credential is checked before the model service is resolved. The first
    fragment is awaited before responding, so failures that happen before any
    output can still be reported with a proper HTTP status.

    Args:
        request: Conversation history and search toggle.

    Returns:
        A text/event-stream response of protocol events.

    Raises:
        401: Missing or invalid bearer credential.
        4xx/5xx: The provider failed before producing any output.
    """
    messages = bound_history(request.messages)
    fragments = service.stream_reply(messages, request.search_enabled)

    try:
        first = await anext(fragments)
    except StopAsyncIteration:
        first = None
    except ProviderError as e:
        category = classify_error(str(e))
        logger.error(f"Model call failed before streaming ({category.value}): {e}")
        raise RelayError(http_status(category), user_message(category)) from e

    return StreamingResponse(
        _event_stream(first, fragments),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
