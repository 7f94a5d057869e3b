"""One request/response cycle against the streaming chat relay.

A ``GenerationSession`` opens the streaming HTTP call, feeds every received
chunk through the frame decoder and the event interpreter, accumulates the
content fragments and publishes them through a render throttle.

State machine::

    IDLE -> OPENING -> STREAMING -> COMPLETED | ERRORED | CANCELED

``OPENING`` may also end directly in ``ERRORED`` (non-2xx response, network
failure) or ``CANCELED``. Terminal states always release the transport.
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from relaychat.client.errors import AuthError, ChatClientError, ProtocolError, TransportError
from relaychat.client.throttle import RenderThrottle
from relaychat.protocol.events import (
    ContentEvent,
    DecodeError,
    DoneEvent,
    ErrorEvent,
    interpret_line,
)
from relaychat.protocol.frames import iter_lines

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.ERRORED, SessionState.CANCELED)


@dataclass
class SessionResult:
    """Outcome of a finished session.

    Attributes:
        state: The terminal state reached.
        text: Accumulated text at the time the session ended.
        error: The terminal error for ERRORED sessions.
    """

    state: SessionState
    text: str
    error: ChatClientError | None = None


class GenerationSession:
    """Drive a single streaming generation with cooperative cancellation."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        payload: dict[str, Any],
        token: str | None,
        on_render: Callable[[str], None],
        *,
        render_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Prepare a session; nothing is sent until ``run`` is awaited.

        Args:
            client: HTTP client used as the transport.
            url: Full URL of the relay chat endpoint.
            payload: JSON request body.
            token: Bearer credential, if the user is logged in.
            on_render: Receives the accumulated text whenever it is published.
            render_interval: Minimum seconds between throttled publications.
            clock: Monotonic time source for the render throttle.
        """
        self._client = client
        self._url = url
        self._payload = payload
        self._token = token
        self._clock = clock
        self._on_render = on_render
        self._throttle = RenderThrottle(self._render, render_interval)
        self._task: asyncio.Task | None = None
        self._cancelled = False
        self._done_received = False

        self.state = SessionState.IDLE
        self.accumulated = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def rendered(self) -> str | None:
        """Text most recently published to the UI."""
        return self._throttle.published

    def cancel(self) -> None:
        """Abort the session.

        Sets the cancellation flag and aborts the streaming task, which closes
        the transport. Already rendered text is left as it is.
        """
        if self.state.is_terminal or self._cancelled:
            return
        self._cancelled = True
        logger.info("Cancelling generation session")
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def run(self) -> SessionResult:
        """Run the session to a terminal state.

        Terminal errors are reported in the result rather than raised.

        Returns:
            The SessionResult describing how the session ended.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError("A generation session can only be run once")

        self.state = SessionState.OPENING
        error: ChatClientError | None = None
        if not self._cancelled:
            self._task = asyncio.create_task(self._stream())
            try:
                await self._task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    # We are being cancelled from outside, not through cancel()
                    raise
            except ChatClientError as e:
                error = e
            finally:
                self._task = None

        if self._cancelled:
            self.state = SessionState.CANCELED
            return SessionResult(self.state, self.accumulated)

        if error is not None:
            logger.warning(f"Generation session failed: {error}")
            self.state = SessionState.ERRORED
        else:
            if not self._done_received:
                logger.debug("Stream closed without an end marker, treating it as complete")
            self.state = SessionState.COMPLETED
        self._throttle.flush(self.accumulated)
        return SessionResult(self.state, self.accumulated, error)

    def _render(self, text: str) -> None:
        # Presentation failures are logged, never raised into the stream
        try:
            self._on_render(text)
        except Exception:
            logger.exception("Render callback failed")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "text/event-stream"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _stream(self) -> None:
        try:
            async with self._client.stream(
                "POST", self._url, json=self._payload, headers=self._headers()
            ) as response:
                if not response.is_success:
                    await _raise_for_response(response)
                async with aclosing(iter_lines(self._chunks(response))) as lines:
                    async for line in lines:
                        if self._cancelled or not self._handle_line(line):
                            break
        except httpx.RequestError as e:
            raise TransportError(f"Connection failed: {e}") from e

    async def _chunks(self, response: httpx.Response) -> AsyncIterator[bytes]:
        async for chunk in response.aiter_bytes():
            # Chunks that arrive after cancellation are discarded
            if self._cancelled:
                return
            if self.state is SessionState.OPENING:
                self.state = SessionState.STREAMING
            yield chunk

    def _handle_line(self, line: str) -> bool:
        """Apply one line to the session; returns False once the stream is finished."""
        try:
            event = interpret_line(line)
        except DecodeError as e:
            logger.warning(f"Dropping malformed event: {e} in {e.line!r}")
            return True

        if event is None:
            return True
        if isinstance(event, ErrorEvent):
            raise ProtocolError(event.message)
        if isinstance(event, DoneEvent):
            self._done_received = True
            return False
        if isinstance(event, ContentEvent) and event.text:
            self.accumulated += event.text
            self._throttle.offer(self.accumulated, self._clock())
        return True


async def _raise_for_response(response: httpx.Response) -> None:
    """Translate a non-2xx relay response into a client error."""
    body = await response.aread()
    message = None
    try:
        data = json.loads(body)
        if isinstance(data, dict) and isinstance(data.get("error"), str):
            message = data["error"]
    except ValueError:
        message = body.decode("utf-8", errors="replace").strip() or None

    if response.status_code == httpx.codes.UNAUTHORIZED:
        raise AuthError(message or "Unauthorized")
    raise TransportError(
        message or f"Request failed ({response.status_code})",
        status_code=response.status_code,
    )
