"""Shared-password authentication and bearer credential tokens.

The token is an HMAC of a fixed context string keyed with server-side secret
material. It never contains the password, stays valid for as long as the
secret is unchanged, and can be verified without any server-side state.
"""

import base64
import hashlib
import hmac
import os
from typing import Annotated

from dotenv import load_dotenv
from fastapi import Depends, Header
from pydantic import BaseModel, Field

from relaychat.api.errors import RelayError

load_dotenv()

TOKEN_CONTEXT = b"relaychat-session"


class AuthSettings(BaseModel):
    """Server-side authentication settings.

    Attributes:
        access_password: The shared password users log in with.
        session_secret: Key material for credential tokens. Falls back to the
            model provider API key when SESSION_SECRET is not set.
        failure_delay: Seconds to wait before answering a wrong password.
    """

    access_password: str | None = Field(
        default_factory=lambda: os.getenv("WEB_ACCESS_PASSWORD") or None,
    )
    session_secret: str | None = Field(
        default_factory=lambda: (
            os.getenv("SESSION_SECRET")
            or os.getenv("LLM_API_KEY")
            or os.getenv("OPENAI_API_KEY")
            or None
        ),
    )
    failure_delay: float = Field(
        default_factory=lambda: float(os.getenv("AUTH_FAILURE_DELAY", "2.0")),
        ge=0.0,
    )

    @property
    def configured(self) -> bool:
        return bool(self.access_password and self.session_secret)


def get_auth_settings() -> AuthSettings:
    """Create authentication settings from environment."""
    return AuthSettings()


def issue_token(secret: str) -> str:
    """Derive the bearer token for the given secret."""
    digest = hmac.new(secret.encode(), TOKEN_CONTEXT, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_token(token: str, secret: str) -> bool:
    """Check a presented token in constant time."""
    return hmac.compare_digest(token.encode(), issue_token(secret).encode())


def check_password(candidate: str, expected: str) -> bool:
    """Compare a login attempt to the shared password in constant time."""
    return hmac.compare_digest(candidate.encode(), expected.encode())


async def require_credential(
    settings: Annotated[AuthSettings, Depends(get_auth_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """FastAPI dependency rejecting requests without a valid bearer token.

    Raises:
        RelayError: 500 if no secret is configured, 401 if the token is
            missing or invalid.
    """
    if not settings.session_secret:
        raise RelayError(500, "Server authentication not configured")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not verify_token(token.strip(), settings.session_secret):
        raise RelayError(401, "Unauthorized")
