"""Unit tests for ModelService and AgentConfig.

Tests configuration validation, message conversion and reply streaming.
"""

import base64
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import pytest_check as check
from pydantic import ValidationError

from relaychat.agent.chat_agent import (
    IMAGE_ONLY_PROMPT,
    ProviderError,
    decode_data_uri,
    to_agno_messages,
)
from relaychat.agent.config import AgentConfig
from relaychat.models.schemas import ChatMessage, Role

PNG_BYTES = b"\x89PNG\r\n\x1a\n"
PNG_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


def run_events(*events: SimpleNamespace, error: Exception | None = None):
    """Build a fake ``Agent.arun`` yielding the given run events."""

    def arun(input, stream):  # noqa: A002 - mirrors Agent.arun
        async def gen():
            for event in events:
                yield event
            if error is not None:
                raise error

        return gen()

    return arun


def content_event(text: str | None) -> SimpleNamespace:
    return SimpleNamespace(event="RunContent", content=text)


class TestAgentConfig:
    """Tests for AgentConfig validation."""

    def test_valid_config_with_all_fields(self) -> None:
        """Config accepts valid values for all fields."""
        config = AgentConfig(
            api_key="sk-test-key-12345",
            base_url="https://llm.example/v1",
            model_name="gpt-4o",
            temperature=0.5,
            max_tokens=4096,
        )

        check.equal(config.api_key, "sk-test-key-12345")
        check.equal(config.base_url, "https://llm.example/v1")
        check.equal(config.model_name, "gpt-4o")
        check.equal(config.temperature, 0.5)
        check.equal(config.max_tokens, 4096)

    def test_config_with_default_values(self, monkeypatch) -> None:
        """Config uses sensible defaults when only API key provided."""
        monkeypatch.delenv("LLM_MODEL", raising=False)
        config = AgentConfig(api_key="sk-test-key")

        check.equal(config.model_name, "gpt-4o-mini")
        check.equal(config.temperature, 0.7)
        check.equal(config.max_tokens, 2048)

    @pytest.mark.parametrize("key", ["", "   "])
    def test_config_fails_with_missing_api_key(self, key: str) -> None:
        """Config rejects an empty or whitespace-only API key."""
        with pytest.raises(ValidationError) as exc_info:
            AgentConfig(api_key=key)

        assert "API key required" in str(exc_info.value)

    def test_config_strips_api_key_whitespace(self) -> None:
        config = AgentConfig(api_key="  sk-test-key  ")

        assert config.api_key == "sk-test-key"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("https://llm.example/v1/", "https://llm.example/v1"), ("  ", None), (None, None)],
    )
    def test_base_url_is_normalized(self, raw: str | None, expected: str | None) -> None:
        assert AgentConfig(api_key="sk-test", base_url=raw).base_url == expected

    def test_provider_limits_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("LLM_TIMEOUT", "15")
        monkeypatch.setenv("SEARCH_MAX_RESULTS", "8")

        config = AgentConfig(api_key="sk-test")

        check.equal(config.timeout, 15.0)
        check.equal(config.search_results, 8)

    def test_api_key_from_environment(self, monkeypatch) -> None:
        """LLM_API_KEY is preferred; OPENAI_API_KEY is the fallback."""
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        check.equal(AgentConfig().api_key, "sk-openai")

        monkeypatch.setenv("LLM_API_KEY", "sk-llm")
        check.equal(AgentConfig().api_key, "sk-llm")

    def test_missing_api_key_in_environment_fails(self, monkeypatch) -> None:
        """The key read from the environment is validated like an explicit one."""
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ValidationError) as exc_info:
            AgentConfig()

        assert "API key required" in str(exc_info.value)

    def test_environment_api_key_is_stripped(self, monkeypatch) -> None:
        monkeypatch.setenv("LLM_API_KEY", "  sk-env-key  ")

        assert AgentConfig().api_key == "sk-env-key"

    @pytest.mark.parametrize("temperature", [-0.1, 2.5])
    def test_config_rejects_out_of_range_temperature(self, temperature: float) -> None:
        with pytest.raises(ValidationError) as exc_info:
            AgentConfig(api_key="sk-test", temperature=temperature)

        assert "temperature" in str(exc_info.value).lower()

    @pytest.mark.parametrize("max_tokens", [0, 200000])
    def test_config_rejects_out_of_range_max_tokens(self, max_tokens: int) -> None:
        with pytest.raises(ValidationError) as exc_info:
            AgentConfig(api_key="sk-test", max_tokens=max_tokens)

        assert "max_tokens" in str(exc_info.value).lower()


class TestMessageConversion:
    """Tests for relay-to-Agno message conversion."""

    def test_decode_data_uri(self) -> None:
        mime, content = decode_data_uri(PNG_URI)

        check.equal(mime, "image/png")
        check.equal(content, PNG_BYTES)

    @pytest.mark.parametrize(
        "uri", ["https://example.com/cat.png", "data:image/png,raw", "data:image/png;base64,@@@"]
    )
    def test_decode_rejects_invalid_uris(self, uri: str) -> None:
        with pytest.raises(ValueError):
            decode_data_uri(uri)

    def test_roles_and_content_are_kept(self) -> None:
        messages = [
            ChatMessage(role=Role.USER, content="hi"),
            ChatMessage(role=Role.ASSISTANT, content="hello"),
        ]

        converted = to_agno_messages(messages)

        check.equal([m.role for m in converted], ["user", "assistant"])
        check.equal([m.content for m in converted], ["hi", "hello"])

    def test_images_are_decoded(self) -> None:
        converted = to_agno_messages([ChatMessage(role=Role.USER, content="what?", images=[PNG_URI])])

        image = converted[0].images[0]
        check.equal(image.content, PNG_BYTES)
        check.equal(image.format, "png")

    def test_image_only_message_gets_prompt(self) -> None:
        converted = to_agno_messages([ChatMessage(role=Role.USER, images=[PNG_URI])])

        assert converted[0].content == IMAGE_ONLY_PROMPT


class TestModelServiceInit:
    """Tests for ModelService initialization."""

    @patch("relaychat.agent.chat_agent.OpenAIChat")
    @patch("relaychat.agent.chat_agent.Agent")
    def test_service_uses_config_values(
        self,
        mock_agent_class: MagicMock,
        mock_openai_chat: MagicMock,
    ) -> None:
        """ModelService passes config values to OpenAIChat."""
        from relaychat.agent.chat_agent import ModelService

        config = AgentConfig(
            api_key="sk-custom-key",
            base_url=None,
            model_name="gpt-4o",
            temperature=0.3,
            max_tokens=4096,
            timeout=30.0,
            max_retries=1,
        )

        service = ModelService(config=config)

        mock_openai_chat.assert_called_once_with(
            id="gpt-4o",
            api_key="sk-custom-key",
            base_url=None,
            temperature=0.3,
            max_tokens=4096,
            timeout=30.0,
            max_retries=1,
        )
        mock_agent_class.assert_called_once()
        assert service._config == config

    @patch("relaychat.agent.chat_agent.OpenAIChat")
    @patch("relaychat.agent.chat_agent.Agent")
    def test_default_agent_is_stateless_without_tools(
        self,
        mock_agent_class: MagicMock,
        mock_openai_chat: MagicMock,
    ) -> None:
        from relaychat.agent.chat_agent import ModelService

        ModelService(config=AgentConfig(api_key="sk-test"))

        call_kwargs = mock_agent_class.call_args.kwargs
        check.is_none(call_kwargs["tools"])
        check.is_true(call_kwargs["markdown"])
        check.is_not_in("db", call_kwargs)

    @patch("relaychat.agent.chat_agent.DuckDuckGoTools")
    @patch("relaychat.agent.chat_agent.OpenAIChat")
    @patch("relaychat.agent.chat_agent.Agent")
    def test_search_agent_is_created_once(
        self,
        mock_agent_class: MagicMock,
        mock_openai_chat: MagicMock,
        mock_search_tools: MagicMock,
    ) -> None:
        """The web search agent is built lazily and then reused."""
        from relaychat.agent.chat_agent import ModelService

        service = ModelService(config=AgentConfig(api_key="sk-test", search_results=3))
        mock_search_tools.assert_not_called()

        first = service._agent_for(search_enabled=True)
        second = service._agent_for(search_enabled=True)

        check.is_true(first is second)
        check.equal(mock_agent_class.call_count, 2)
        mock_search_tools.assert_called_once_with(fixed_max_results=3)
        check.equal(
            mock_agent_class.call_args.kwargs["tools"], [mock_search_tools.return_value]
        )


class TestStreamReply:
    """Tests for ModelService.stream_reply."""

    @pytest.fixture
    def service(self):
        from relaychat.agent.chat_agent import ModelService

        with (
            patch("relaychat.agent.chat_agent.OpenAIChat"),
            patch("relaychat.agent.chat_agent.Agent") as mock_agent_class,
        ):
            mock_agent_class.return_value = MagicMock()
            yield ModelService(config=AgentConfig(api_key="sk-test"))

    async def test_yields_text_fragments(self, service) -> None:
        """Only non-empty string content is yielded."""
        service._agent.arun = run_events(
            content_event("Hel"),
            content_event(None),
            content_event(""),
            SimpleNamespace(event="ToolCallStarted", content=None),
            content_event("lo"),
        )

        fragments = [f async for f in service.stream_reply([ChatMessage(role=Role.USER, content="hi")])]

        assert fragments == ["Hel", "lo"]

    async def test_run_error_event_raises(self, service) -> None:
        service._agent.arun = run_events(
            content_event("Hel"),
            SimpleNamespace(event="RunError", content="Error code: 429 - rate limit"),
        )

        fragments: list[str] = []
        with pytest.raises(ProviderError, match="429"):
            async for fragment in service.stream_reply([ChatMessage(role=Role.USER, content="hi")]):
                fragments.append(fragment)

        assert fragments == ["Hel"]

    async def test_provider_exception_is_wrapped(self, service) -> None:
        """SDK exceptions surface as ProviderError including their status code."""
        error = RuntimeError("Incorrect API key provided")
        error.status_code = 401
        service._agent.arun = run_events(error=error)

        with pytest.raises(ProviderError) as exc_info:
            async for _ in service.stream_reply([ChatMessage(role=Role.USER, content="hi")]):
                pass

        check.equal(str(exc_info.value), "401 Incorrect API key provided")
        check.is_true(exc_info.value.__cause__ is error)

    async def test_undecodable_image_is_provider_error(self, service) -> None:
        message = ChatMessage(role=Role.USER, images=["data:image/png;base64,@@@"])

        with pytest.raises(ProviderError):
            async for _ in service.stream_reply([message]):
                pass


class TestGetModelService:
    """Tests for get_model_service singleton function."""

    def test_singleton_returns_same_instance(self, monkeypatch) -> None:
        """get_model_service returns the same instance on multiple calls."""
        import relaychat.agent.chat_agent as chat_agent_module

        monkeypatch.setattr(chat_agent_module, "_model_service", None)

        with patch.object(chat_agent_module, "ModelService") as mock_service:
            mock_service.return_value = MagicMock()

            first = chat_agent_module.get_model_service()
            second = chat_agent_module.get_model_service()

            check.is_true(first is second)
            mock_service.assert_called_once()
