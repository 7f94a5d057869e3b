"""Password login against the relay's authentication endpoint."""

import logging

import httpx

from relaychat.client.errors import AuthError, TransportError
from relaychat.client.storage import CredentialStore

logger = logging.getLogger(__name__)

AUTH_PATH = "/api/auth"


async def login(
    client: httpx.AsyncClient,
    base_url: str,
    password: str,
    credentials: CredentialStore,
    persist: bool = False,
) -> str:
    """Exchange the shared password for a bearer token and store it.

    Args:
        client: HTTP client for the request.
        base_url: Relay server base URL.
        password: The shared access password.
        credentials: Store that receives the token.
        persist: Keep the token across browser sessions ("remember me").

    Returns:
        The issued token.

    Raises:
        AuthError: If the password was rejected.
        TransportError: If the server could not be reached or failed.
    """
    try:
        response = await client.post(f"{base_url}{AUTH_PATH}", json={"password": password})
    except httpx.RequestError as e:
        raise TransportError(f"Connection failed: {e}") from e

    try:
        data = response.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if response.status_code == httpx.codes.UNAUTHORIZED:
        raise AuthError(data.get("error") or "Invalid password")
    if not response.is_success or not isinstance(data.get("token"), str):
        raise TransportError(
            data.get("error") or f"Login failed ({response.status_code})",
            status_code=response.status_code,
        )

    token = data["token"]
    credentials.save(token, persist=persist)
    logger.info("Logged in")
    return token
