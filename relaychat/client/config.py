"""Chat client configuration with environment variable loading."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class ClientConfig(BaseModel):
    """Configuration for the streaming chat client.

    Attributes:
        api_base_url: Base URL of the relay server.
        history_window: Number of most recent messages sent with each request.
        render_interval: Minimum seconds between two rendered updates.
        persist_delay: Quiet period in seconds before the transcript is saved.
        request_timeout: Read timeout in seconds for the streaming request.
    """

    api_base_url: str = Field(
        default_factory=lambda: os.getenv("API_BASE_URL", "http://localhost:8000"),
        description="Relay server base URL",
    )
    history_window: int = Field(default=12, ge=1, le=200)
    render_interval: float = Field(default=0.05, ge=0.0, le=5.0)
    persist_delay: float = Field(default=0.8, ge=0.0, le=60.0)
    request_timeout: float = Field(default=120.0, gt=0.0)

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended."""
        return v.strip().rstrip("/")


def get_client_config() -> ClientConfig:
    """Create client configuration from environment."""
    return ClientConfig()
