"""Debounced, best-effort persistence of the chat transcript."""

import asyncio
import logging
from collections.abc import Callable

from pydantic import TypeAdapter, ValidationError

from relaychat.client.storage import CHAT_HISTORY_KEY, KeyValueStore
from relaychat.models.schemas import Message

logger = logging.getLogger(__name__)

_transcript = TypeAdapter(list[Message])


class TranscriptPersister:
    """Save the transcript after a quiet period.

    Every ``schedule`` call restarts the timer, so a burst of streaming updates
    results in a single write. Write failures are logged and swallowed; the
    transcript in memory stays authoritative.
    """

    def __init__(
        self,
        store: KeyValueStore,
        snapshot: Callable[[], list[Message]],
        delay: float = 0.8,
        key: str = CHAT_HISTORY_KEY,
    ) -> None:
        self._store = store
        self._snapshot = snapshot
        self._delay = delay
        self._key = key
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self) -> None:
        """(Re)start the quiet-period timer."""
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop to debounce on, write through
            self.flush()
            return
        self._timer = loop.call_later(self._delay, self.flush)

    def flush(self) -> None:
        """Write the current transcript immediately."""
        self._cancel_timer()
        messages = self._snapshot()
        try:
            if messages:
                self._store.set(self._key, _transcript.dump_json(messages).decode())
            else:
                self._store.remove(self._key)
        except Exception as e:
            logger.warning(f"Failed to save chat history: {e}")

    def load(self) -> list[Message]:
        """Read the saved transcript; corrupt or missing data yields an empty list."""
        raw = self._store.get(self._key)
        if not raw:
            return []
        try:
            return _transcript.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Failed to load chat history: {e.error_count()} error(s)")
            return []

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
