"""Agno model service with streaming support.

Core module for talking to the language model.

Architecture Decisions:

1. **Stateless Agent** - The relay keeps no conversation storage. The client
   sends a bounded window of the conversation with every request, so the agent
   runs without a database and receives the full history as input messages.

2. **Singleton Pattern** - Model client setup is not free. The singleton reuses
   the same service across requests instead of recreating it per request.

3. **Service Wrapper** - Decouples the relay from Agno's interface and from
   provider-specific error shapes. Failures surface as ``ProviderError`` only.

4. **Two Agents** - Web search is a per-request toggle. Rather than mutating a
   shared agent's tools, a second agent carrying the search toolkit is created
   lazily the first time search is requested.

5. **Streaming Generator** - Agno yields run events with metadata. We extract
   just the text fragments, providing a clean interface for the SSE endpoint.
"""

import base64
import binascii
import logging
from collections.abc import AsyncGenerator

from agno.agent import Agent
from agno.media import Image
from agno.models.message import Message as AgnoMessage
from agno.models.openai import OpenAIChat
from agno.tools.duckduckgo import DuckDuckGoTools

from relaychat.agent.config import AgentConfig, get_agent_config
from relaychat.models.schemas import ChatMessage

logger = logging.getLogger(__name__)

IMAGE_ONLY_PROMPT = "Describe this image."
_RUN_ERROR_EVENT = "RunError"


class ProviderError(Exception):
    """Raised when the model provider fails to produce a reply."""


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 data URI into its MIME type and raw bytes.

    Args:
        uri: A URI of the form ``data:<mime>;base64,<data>``.

    Returns:
        Tuple of (mime type, decoded bytes).

    Raises:
        ValueError: If the URI is not a base64 data URI.
    """
    header, sep, data = uri.partition(";base64,")
    if not sep or not header.startswith("data:"):
        raise ValueError("Not a base64 data URI")
    try:
        return header.removeprefix("data:"), base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e


def _to_image(uri: str) -> Image:
    mime_type, content = decode_data_uri(uri)
    return Image(content=content, format=mime_type.partition("/")[2] or None)


def to_agno_messages(messages: list[ChatMessage]) -> list[AgnoMessage]:
    """Convert relay chat messages into Agno model messages.

    Args:
        messages: Conversation history, oldest first.

    Returns:
        Agno messages with images decoded from their data URIs.
    """
    converted: list[AgnoMessage] = []
    for msg in messages:
        images = [_to_image(uri) for uri in msg.images or []]
        content = msg.content
        if images and not content.strip():
            content = IMAGE_ONLY_PROMPT
        converted.append(
            AgnoMessage(role=msg.role.value, content=content, images=images or None)
        )
    return converted


def _describe(exc: Exception) -> str:
    status = getattr(exc, "status_code", None)
    return f"{status} {exc}" if status else str(exc)


class ModelService:
    """Service for streaming replies from the Agno chat agent.

    Wraps Agno's Agent with:
    - OpenAI or OpenAI-compatible model configuration
    - Optional web search toolkit per request
    - Singleton lifecycle management
    - Clean streaming interface for SSE endpoints
    - Centralized error handling
    """

    def __init__(self, config: AgentConfig | None = None) -> None:
        """Initialize the model service.

        Args:
            config: Optional agent configuration.
                    Loads from environment if not provided.
        """
        self._config = config or get_agent_config()
        self._agent = self._create_agent(search_enabled=False)
        self._search_agent: Agent | None = None

    def _create_model(self) -> OpenAIChat:
        return OpenAIChat(
            id=self._config.model_name,
            api_key=self._config.api_key,
            base_url=self._config.base_url,
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
            timeout=self._config.timeout,
            max_retries=self._config.max_retries,
        )

    def _create_agent(self, search_enabled: bool) -> Agent:
        """Create an Agno agent instance.

        Args:
            search_enabled: Attach the DuckDuckGo web search toolkit.

        Returns:
            Configured Agent without storage; history arrives with each request.
        """
        tools = None
        if search_enabled:
            tools = [DuckDuckGoTools(fixed_max_results=self._config.search_results)]

        return Agent(
            model=self._create_model(),
            description="A helpful assistant in a private chat application.",
            instructions=[
                "Provide helpful and accurate responses.",
                "Describe attached images when the user asks about them.",
                "Be concise yet thorough.",
            ],
            tools=tools,
            # Output as markdown for rich formatting in UI
            markdown=True,
        )

    def _agent_for(self, search_enabled: bool) -> Agent:
        if not search_enabled:
            return self._agent
        if self._search_agent is None:
            self._search_agent = self._create_agent(search_enabled=True)
        return self._search_agent

    async def stream_reply(
        self,
        messages: list[ChatMessage],
        search_enabled: bool = False,
    ) -> AsyncGenerator[str]:
        """Stream reply fragments for a conversation.

        Args:
            messages: Conversation history; the last message is the new prompt.
            search_enabled: Whether the model may search the web.

        Yields:
            Non-empty response text fragments as they arrive.

        Raises:
            ProviderError: If the provider fails before or during streaming.
        """
        try:
            agno_messages = to_agno_messages(messages)
        except ValueError as e:
            raise ProviderError(str(e)) from e

        agent = self._agent_for(search_enabled)
        try:
            response_stream = agent.arun(input=agno_messages, stream=True)

            async for chunk in response_stream:
                if getattr(chunk, "event", None) == _RUN_ERROR_EVENT:
                    raise ProviderError(str(getattr(chunk, "content", None) or "Model run failed"))
                content = getattr(chunk, "content", None)
                if isinstance(content, str) and content:
                    yield content

        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"Model provider error: {_describe(e)}")
            raise ProviderError(_describe(e)) from e


# Module-level singleton instance
_model_service: ModelService | None = None


def get_model_service() -> ModelService:
    """Get or create the global model service.

    Uses singleton pattern for resource efficiency.

    Returns:
        The ModelService instance.

    Raises:
        ValidationError: If the model configuration is incomplete.
    """
    global _model_service
    if _model_service is None:
        _model_service = ModelService()
    return _model_service
