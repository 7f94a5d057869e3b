"""relaychat - password-protected streaming chat with a hosted language model.

Combines FastAPI for the streaming relay, Agno for model orchestration,
httpx for the streaming client, NiceGUI for the interface, and Pydantic for
data validation.

Components:
    - protocol: Server-sent event framing, event interpretation, error classes
    - client: Generation sessions, render throttling, transcript and credentials
    - api: Relay and login endpoints
    - agent: Model service over an OpenAI-compatible provider
    - ui: Web interface for chat interactions
    - models: Request/response and transcript schemas
"""

__version__ = "0.1.0"
