"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - fake_service: Scripted stand-in for the model service
    - auth_settings: Known password and token secret
    - app: Relay application wired to the fake service and settings
    - async_client: HTTPX client for API testing
    - token: A valid bearer credential for the app

Implements async fixtures with proper cleanup.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable, Iterable

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from relaychat.agent.chat_agent import ProviderError
from relaychat.api.app import create_app
from relaychat.api.chat import model_service
from relaychat.api.credentials import AuthSettings, get_auth_settings, issue_token
from relaychat.models.schemas import ChatMessage

TEST_PASSWORD = "open-sesame"
TEST_SECRET = "server-side-secret"


class FakeModelService:
    """Model service double yielding scripted fragments.

    Attributes:
        fragments: Text fragments to stream.
        fail_before: Error raised before the first fragment.
        fail_after: Error raised after all fragments.
        calls: Recorded (messages, search_enabled) arguments.
    """

    def __init__(
        self,
        fragments: Iterable[str] = ("Hel", "lo"),
        fail_before: str | None = None,
        fail_after: str | None = None,
    ) -> None:
        self.fragments = list(fragments)
        self.fail_before = fail_before
        self.fail_after = fail_after
        self.calls: list[tuple[list[ChatMessage], bool]] = []

    async def stream_reply(
        self, messages: list[ChatMessage], search_enabled: bool = False
    ) -> AsyncGenerator[str]:
        self.calls.append((messages, search_enabled))
        if self.fail_before:
            raise ProviderError(self.fail_before)
        for fragment in self.fragments:
            await asyncio.sleep(0)
            yield fragment
        if self.fail_after:
            raise ProviderError(self.fail_after)


@pytest.fixture
def fake_service() -> FakeModelService:
    """Return a fake model service streaming "Hel" + "lo"."""
    return FakeModelService()


@pytest.fixture
def auth_settings() -> AuthSettings:
    """Return auth settings with a known password and no failure delay."""
    return AuthSettings(
        access_password=TEST_PASSWORD,
        session_secret=TEST_SECRET,
        failure_delay=0.0,
    )


@pytest.fixture
def app(fake_service: FakeModelService, auth_settings: AuthSettings) -> FastAPI:
    """Create the relay app with the fake service and test settings."""
    application = create_app()
    application.dependency_overrides[model_service] = lambda: fake_service
    application.dependency_overrides[get_auth_settings] = lambda: auth_settings
    return application


@pytest.fixture
def token() -> str:
    """Return a valid bearer credential for the test secret."""
    return issue_token(TEST_SECRET)


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def sse_frames(*payloads: str) -> list[bytes]:
    """Encode raw payload strings as one ``data:`` frame per chunk."""
    return [f"data: {payload}\n\n".encode() for payload in payloads]


def mock_transport(
    chunks: Iterable[bytes],
    status_code: int = 200,
    requests: list[httpx.Request] | None = None,
    gate: asyncio.Event | None = None,
    gate_after: int = 1,
) -> httpx.MockTransport:
    """Serve the given byte chunks verbatim as the response body.

    Args:
        chunks: Body chunks, delivered with their boundaries intact.
        status_code: Response status.
        requests: Receives every request seen by the transport.
        gate: If given, delivery pauses after ``gate_after`` chunks until set.
        gate_after: Number of chunks delivered before waiting on ``gate``.
    """
    chunk_list = list(chunks)

    async def body() -> AsyncGenerator[bytes]:
        for i, chunk in enumerate(chunk_list):
            if gate is not None and i == gate_after:
                await gate.wait()
            yield chunk

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(
            status_code,
            headers={"content-type": "text/event-stream"},
            content=body(),
        )

    return httpx.MockTransport(handler)


async def wait_for(predicate: Callable[[], bool], attempts: int = 500) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.001)
    raise AssertionError("condition was not reached")
