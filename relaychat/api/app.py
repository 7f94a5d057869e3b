"""FastAPI application factory for the relay.

Wires the login and chat routers, the JSON error handler and CORS. The UI may
be served from another origin in separate mode, so allowed origins come from
``CORS_ORIGINS`` (comma-separated, ``*`` by default).
"""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relaychat import __version__
from relaychat.api.auth import router as auth_router
from relaychat.api.chat import HISTORY_WINDOW
from relaychat.api.chat import router as chat_router
from relaychat.api.credentials import get_auth_settings
from relaychat.api.errors import register_error_handlers

logger = logging.getLogger(__name__)


def cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Report the relay's configuration on startup.

    The model service is created on the first chat request, so a missing
    provider key does not prevent the server from starting.
    """
    settings = get_auth_settings()
    logger.info(f"relaychat relay {__version__} starting, history window {HISTORY_WINDOW}")
    if not settings.configured:
        logger.warning("Login is disabled until WEB_ACCESS_PASSWORD and a token secret are set")
    yield
    logger.info("relaychat relay stopped")


def create_app() -> FastAPI:
    """Create and configure the relay application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="relaychat API",
        description=(
            "Password-protected relay to a hosted language model. "
            "Streams model output to the browser as server-sent events "
            "and issues bearer credentials for a shared access password."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    register_error_handlers(application)
    application.include_router(auth_router)
    application.include_router(chat_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Liveness probe; does not touch the model provider."""
        return {"status": "healthy", "service": "relaychat"}

    return application


app = create_app()
