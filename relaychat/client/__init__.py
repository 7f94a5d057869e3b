"""Streaming chat client.

Turns the relay's event stream into transcript updates.

Responsibilities:
    - Generation session lifecycle: open, stream, complete, fail or cancel
    - Render throttling so fast token streams do not flood the UI
    - One in-flight generation per conversation (re-entrancy guard)
    - Debounced, best-effort transcript persistence
    - Credential storage and password login

Knows nothing about the widgets that display the transcript.
"""

from relaychat.client.auth import login
from relaychat.client.config import ClientConfig, get_client_config
from relaychat.client.conversation import Conversation, build_payload
from relaychat.client.errors import (
    AuthError,
    ChatClientError,
    DecodeError,
    ProtocolError,
    TransportError,
)
from relaychat.client.persistence import TranscriptPersister
from relaychat.client.session import GenerationSession, SessionResult, SessionState
from relaychat.client.storage import CredentialStore, KeyValueStore, LayeredStore, MappingStore
from relaychat.client.throttle import RenderThrottle

__all__ = [
    "AuthError",
    "ChatClientError",
    "ClientConfig",
    "Conversation",
    "CredentialStore",
    "DecodeError",
    "GenerationSession",
    "KeyValueStore",
    "LayeredStore",
    "MappingStore",
    "ProtocolError",
    "RenderThrottle",
    "SessionResult",
    "SessionState",
    "TranscriptPersister",
    "TransportError",
    "build_payload",
    "get_client_config",
    "login",
]
