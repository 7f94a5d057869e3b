"""Rate limiting for publishing streamed text to the presentation layer."""

from collections.abc import Callable


class RenderThrottle:
    """Coalesce rapid text updates into bounded-rate publications.

    The first offer of a session is published at once so the UI shows the
    first token without delay. Later offers are published only after
    ``interval`` seconds have passed since the previous publication. ``flush``
    always publishes, so throttling changes when text appears, never what.
    """

    def __init__(self, publish: Callable[[str], None], interval: float = 0.05) -> None:
        self._publish = publish
        self.interval = interval
        self._last_at: float | None = None
        self.published: str | None = None

    def offer(self, text: str, now: float) -> bool:
        """Publish ``text`` if the timing gate allows it.

        Args:
            text: The full accumulated text so far.
            now: Current logical time in seconds.

        Returns:
            True if the text was published.
        """
        if self._last_at is not None and now - self._last_at < self.interval:
            return False
        self._last_at = now
        self._emit(text)
        return True

    def flush(self, text: str) -> None:
        """Publish ``text`` regardless of timing."""
        self._emit(text)

    def reset(self) -> None:
        self._last_at = None
        self.published = None

    def _emit(self, text: str) -> None:
        self.published = text
        self._publish(text)
