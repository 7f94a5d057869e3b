"""Password login endpoint issuing bearer credentials."""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from relaychat.api.credentials import AuthSettings, check_password, get_auth_settings, issue_token
from relaychat.api.errors import RelayError
from relaychat.models.schemas import AuthRequest, ErrorResponse, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post(
    "/auth",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def authenticate(
    payload: AuthRequest,
    settings: Annotated[AuthSettings, Depends(get_auth_settings)],
) -> TokenResponse:
    """Exchange the shared password for a bearer token.

    Wrong passwords are answered only after a fixed delay to slow down
    brute-force attempts.

    Args:
        payload: The login attempt.

    Returns:
        TokenResponse with the credential token.

    Raises:
        401: Wrong password.
        500: Password or secret material not configured.
    """
    if not settings.configured:
        logger.error("Login attempted but WEB_ACCESS_PASSWORD or the session secret is unset")
        raise RelayError(500, "Server authentication not configured")

    if check_password(payload.password, settings.access_password):
        return TokenResponse(token=issue_token(settings.session_secret))

    logger.warning("Rejected login attempt with an invalid password")
    await asyncio.sleep(settings.failure_delay)
    raise RelayError(401, "Invalid password")
