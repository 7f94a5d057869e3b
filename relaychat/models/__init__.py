"""Pydantic models for API requests, responses and the client transcript.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - Message: Transcript entry owned by the client conversation
    - ChatMessage: Individual message in a relay request
    - ChatRequest: Incoming streaming chat request payload
    - AuthRequest / TokenResponse: Password login exchange
    - ErrorResponse: Non-streaming error body
"""

from relaychat.models.schemas import (
    AuthRequest,
    ChatMessage,
    ChatRequest,
    ErrorResponse,
    Message,
    Role,
    TokenResponse,
)

__all__ = [
    "AuthRequest",
    "ChatMessage",
    "ChatRequest",
    "ErrorResponse",
    "Message",
    "Role",
    "TokenResponse",
]
