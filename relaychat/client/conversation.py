"""Conversation state shared by the chat UI and the generation session.

``Conversation`` is the application context for one chat: it owns the
transcript, the credential store and the HTTP client, and it guarantees that
at most one generation session is active at a time.
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from relaychat.client.config import ClientConfig, get_client_config
from relaychat.client.errors import AuthError
from relaychat.client.persistence import TranscriptPersister
from relaychat.client.session import GenerationSession, SessionResult, SessionState
from relaychat.client.storage import CredentialStore, KeyValueStore
from relaychat.models.schemas import ChatMessage, ChatRequest, Message, Role

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"
SESSION_EXPIRED_TEXT = "Your session has expired. Please sign in again."


def build_payload(
    messages: list[Message], window: int, search_enabled: bool = False
) -> dict[str, Any]:
    """Build the relay request body from the transcript.

    Only the ``window`` most recent messages are sent, and images only for the
    newest one, to bound the request size.

    Args:
        messages: Transcript including the message being sent.
        window: Number of most recent messages to include.
        search_enabled: Whether the model may search the web.

    Returns:
        JSON-serializable request body.
    """
    recent = messages[-window:]
    last = len(recent) - 1
    request = ChatRequest(
        messages=[
            ChatMessage(
                role=msg.role,
                content=msg.content,
                images=msg.images if i == last else None,
            )
            for i, msg in enumerate(recent)
        ],
        search_enabled=search_enabled,
    )
    return request.model_dump(mode="json", by_alias=True, exclude_none=True)


class Conversation:
    """Chat transcript plus the single in-flight generation."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialStore,
        store: KeyValueStore | None = None,
        config: ClientConfig | None = None,
        on_logout: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the conversation.

        Args:
            client: HTTP client used for relay requests.
            credentials: Where the bearer token is read and cleared.
            store: Durable store for the transcript; None disables persistence.
            config: Client configuration, loaded from environment if omitted.
            on_logout: Called after a rejected credential has been cleared.
        """
        self._client = client
        self._credentials = credentials
        self._config = config or get_client_config()
        self._on_logout = on_logout
        self._listeners: list[Callable[[], None]] = []
        self._active: GenerationSession | None = None

        self.messages: list[Message] = []
        self.search_enabled = False

        self._persister: TranscriptPersister | None = None
        if store is not None:
            self._persister = TranscriptPersister(
                store, lambda: self.messages, delay=self._config.persist_delay
            )
            self.messages = self._persister.load()

    @property
    def is_generating(self) -> bool:
        return self._active is not None

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked whenever the transcript changes."""
        self._listeners.append(callback)

    async def send(self, content: str, images: list[str] | None = None) -> Message | None:
        """Send a user message and stream the assistant's reply into the transcript.

        Does nothing while another generation is in flight or when there is
        neither text nor an image to send.

        Args:
            content: Message text.
            images: Attached images as data URIs.

        Returns:
            The assistant message, or None if nothing was sent.
        """
        if not content.strip() and not images:
            return None
        if self._active is not None:
            logger.debug("Ignoring send while a generation is in progress")
            return None

        user_message = Message(role=Role.USER, content=content, images=images or None)
        return await self._generate([*self.messages, user_message])

    async def retry(self) -> Message | None:
        """Regenerate the reply to the most recent user message.

        Everything after that message (normally the previous reply or its
        error text) is dropped from the transcript first.

        Returns:
            The new assistant message, or None if there was nothing to retry.
        """
        if self._active is not None:
            return None
        last_user = next(
            (i for i in range(len(self.messages) - 1, -1, -1) if self.messages[i].role is Role.USER),
            None,
        )
        if last_user is None:
            return None
        return await self._generate(self.messages[: last_user + 1])

    async def _generate(self, history: list[Message]) -> Message:
        """Stream a reply to ``history``, which becomes the new transcript."""
        assistant_message = Message(role=Role.ASSISTANT)
        payload = build_payload(history, self._config.history_window, self.search_enabled)

        def render(text: str) -> None:
            assistant_message.content = text
            self._changed()

        session = GenerationSession(
            self._client,
            f"{self._config.api_base_url}{CHAT_PATH}",
            payload,
            self._credentials.token,
            render,
            render_interval=self._config.render_interval,
        )
        # Claim the guard before the first suspension point
        self._active = session
        self.messages[:] = [*history, assistant_message]
        self._changed()

        try:
            result = await session.run()
        finally:
            self._active = None

        self._finalize(assistant_message, result)
        return assistant_message

    def cancel(self) -> bool:
        """Stop the active generation; returns False if there was none."""
        if self._active is None:
            return False
        self._active.cancel()
        return True

    def clear(self) -> None:
        """Drop the whole transcript, stopping any active generation first."""
        self.cancel()
        self.messages.clear()
        self._changed()

    def flush(self) -> None:
        """Persist the transcript now instead of waiting for the quiet period."""
        if self._persister is not None:
            self._persister.flush()

    def _finalize(self, message: Message, result: SessionResult) -> None:
        if result.state is SessionState.COMPLETED:
            message.content = result.text
        elif result.state is SessionState.ERRORED and isinstance(result.error, AuthError):
            message.content = SESSION_EXPIRED_TEXT
            self._credentials.clear()
            if self._on_logout is not None:
                self._on_logout()
        elif result.state is SessionState.ERRORED and result.error is not None:
            message.content = f"Error: {result.error.user_text()}"
        # CANCELED keeps whatever was rendered last
        self._changed()

    def _changed(self) -> None:
        if self._persister is not None:
            self._persister.schedule()
        for callback in self._listeners:
            try:
                callback()
            except Exception:
                logger.exception("Transcript listener failed")
