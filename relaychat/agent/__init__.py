"""Agno agent logic for LLM orchestration.

Handles streaming text and image conversations with a single model provider.

Responsibilities:
    - Agent initialization with OpenAI-compatible models
    - Conversion of relay messages (including image data URIs) into model input
    - Optional web search toolkit per request
    - Streaming token generation with provider errors normalized

Leverages the Agno framework for agent lifecycle management.
Maintains clean separation from the HTTP layer.
"""

from relaychat.agent.chat_agent import ModelService, ProviderError, get_model_service
from relaychat.agent.config import AgentConfig, get_agent_config

__all__ = [
    "AgentConfig",
    "ModelService",
    "ProviderError",
    "get_agent_config",
    "get_model_service",
]
