"""Model provider settings read from the environment.

The relay talks to exactly one OpenAI-compatible endpoint. ``LLM_*`` variables
take precedence; the ``OPENAI_API_KEY`` name is accepted for plain OpenAI setups.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


def _env(*names: str, default: str | None = None) -> str | None:
    """Return the first non-empty variable among ``names``."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


class AgentConfig(BaseModel):
    """Settings for the model behind the relay.

    Attributes:
        api_key: Provider API key (LLM_API_KEY or OPENAI_API_KEY).
        base_url: OpenAI-compatible endpoint; None uses the OpenAI default.
        model_name: Model identifier (LLM_MODEL).
        temperature: Sampling temperature.
        max_tokens: Upper bound on the length of one reply.
        timeout: Seconds before a provider request is abandoned.
        max_retries: Provider-side retries for transient failures.
        search_results: Results fetched per web search call.
    """

    api_key: str = Field(
        default_factory=lambda: _env("LLM_API_KEY", "OPENAI_API_KEY", default=""),
        validate_default=True,
    )
    base_url: str | None = Field(default_factory=lambda: _env("LLM_BASE_URL"))
    model_name: str = Field(default_factory=lambda: _env("LLM_MODEL", default="gpt-4o-mini"))
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1, le=128000)
    timeout: float = Field(
        default_factory=lambda: float(_env("LLM_TIMEOUT", default="60")),
        gt=0.0,
    )
    max_retries: int = Field(default=2, ge=0, le=10)
    search_results: int = Field(
        default_factory=lambda: int(_env("SEARCH_MAX_RESULTS", default="5")),
        ge=1,
        le=20,
    )

    @field_validator("api_key")
    @classmethod
    def require_api_key(cls, v: str) -> str:
        """Strip the key and reject empty values."""
        v = v.strip()
        if not v:
            raise ValueError("API key required. Set LLM_API_KEY or OPENAI_API_KEY in .env")
        return v

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip().rstrip("/") or None


def get_agent_config() -> AgentConfig:
    """Create agent configuration from environment.

    Raises:
        ValidationError: If no API key is set.
    """
    return AgentConfig()
