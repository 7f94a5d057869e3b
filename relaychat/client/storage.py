"""Key-value storage for the credential and the chat transcript.

Values live in two scopes: a session scope that ends with the browser tab and
a persistent scope that survives restarts. Reads prefer the session scope.
"""

import logging
from collections.abc import MutableMapping
from typing import Protocol

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "relaychat_auth_token"
CHAT_HISTORY_KEY = "relaychat_chat_history"


class KeyValueStore(Protocol):
    """Minimal string store interface."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MappingStore:
    """Adapt any mutable mapping (a dict, NiceGUI ``app.storage``) to KeyValueStore."""

    def __init__(self, mapping: MutableMapping[str, str] | None = None) -> None:
        self._mapping: MutableMapping[str, str] = {} if mapping is None else mapping

    def get(self, key: str) -> str | None:
        return self._mapping.get(key)

    def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    def remove(self, key: str) -> None:
        self._mapping.pop(key, None)


class LayeredStore:
    """Session-scoped store with a persistent fallback.

    Attributes:
        session: Values that end with the current browser session.
        persistent: Values that survive restarts.
    """

    def __init__(self, session: KeyValueStore, persistent: KeyValueStore) -> None:
        self.session = session
        self.persistent = persistent

    def get(self, key: str) -> str | None:
        value = self.session.get(key)
        if value is None:
            value = self.persistent.get(key)
        return value

    def set(self, key: str, value: str, persist: bool = True) -> None:
        """Store ``value`` in exactly one scope, clearing the other."""
        self.remove(key)
        target = self.persistent if persist else self.session
        target.set(key, value)

    def remove(self, key: str) -> None:
        self.session.remove(key)
        self.persistent.remove(key)


class CredentialStore:
    """Stores the bearer token issued by the login endpoint."""

    def __init__(self, store: LayeredStore) -> None:
        self._store = store

    @property
    def token(self) -> str | None:
        return self._store.get(AUTH_TOKEN_KEY)

    def save(self, token: str, persist: bool) -> None:
        """Store the token; ``persist`` keeps it across browser sessions."""
        self._store.set(AUTH_TOKEN_KEY, token, persist=persist)

    def clear(self) -> None:
        self._store.remove(AUTH_TOKEN_KEY)
        logger.info("Cleared stored credentials")
