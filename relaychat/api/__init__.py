"""FastAPI endpoints for the chat relay.

HTTP and streaming routes with async request handling.
Supports Server-Sent Events for real-time chat streaming.

Endpoints:
    - GET /health: Service health status
    - POST /api/auth: Shared-password login, returns a bearer token
    - POST /api/chat: Streaming chat relay (text/event-stream)
"""

from relaychat.api.app import app, create_app

__all__ = ["app", "create_app"]
