"""Error taxonomy for a generation session.

User cancellation is not part of this hierarchy: it surfaces as the
``CANCELED`` session state and is never shown as an error.
"""

from relaychat.protocol.errors import ErrorCategory, classify_error, user_message
from relaychat.protocol.events import DecodeError


class ChatClientError(Exception):
    """Base class for terminal session errors."""

    def user_text(self) -> str:
        """Text written into the assistant placeholder."""
        return str(self)


class TransportError(ChatClientError):
    """Network failure, or a non-2xx response before streaming began."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(ChatClientError):
    """The relay reported an error event in the middle of the stream."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.category: ErrorCategory = classify_error(message)

    def user_text(self) -> str:
        return user_message(self.category)


class AuthError(ChatClientError):
    """The relay or login endpoint rejected our credential."""


__all__ = [
    "AuthError",
    "ChatClientError",
    "DecodeError",
    "ProtocolError",
    "TransportError",
]
