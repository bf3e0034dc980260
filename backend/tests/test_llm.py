"""
Unit tests for the LLM module.
Tests LLMMessage, LLMResponse, providers, and factory.
"""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from debatesphere.llm.base import LLMMessage, LLMResponse
from debatesphere.llm.factory import create_llm_provider
from debatesphere.llm.mock_provider import MockProvider
from debatesphere.llm.openai_provider import OpenAIProvider


def mock_async_client(mock_client, response):
    mock_instance = AsyncMock()
    mock_instance.post.return_value = response
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance
    return mock_instance


class TestLLMMessage:
    """Tests for LLMMessage dataclass."""

    def test_text_message(self):
        msg = LLMMessage.text("user", "Hello")
        assert msg.role == "user"
        assert msg.content == "Hello"


class TestLLMResponse:
    """Tests for LLMResponse dataclass."""

    def test_basic_response(self):
        resp = LLMResponse(content="Hello!", model="gpt-4")
        assert resp.content == "Hello!"
        assert resp.model == "gpt-4"
        assert resp.usage == {}
        assert resp.raw is None
        assert resp.total_tokens == 0

    def test_token_properties(self):
        resp = LLMResponse(
            content="Hi",
            model="test",
            usage={"prompt_tokens": 10, "completion_tokens": 5}
        )
        assert resp.prompt_tokens == 10
        assert resp.completion_tokens == 5
        assert resp.total_tokens == 15


class TestOpenAIProvider:
    """Tests for OpenAI-compatible provider."""

    def test_init_defaults(self):
        provider = OpenAIProvider(api_key="test-key")
        assert provider.api_key == "test-key"
        assert provider.model == "gpt-4o"
        assert provider.base_url == "https://api.openai.com/v1"

    def test_init_strips_trailing_slash(self):
        provider = OpenAIProvider(api_key="key", base_url="https://gateway.local/v1/")
        assert provider.base_url == "https://gateway.local/v1"

    def test_format_messages(self):
        provider = OpenAIProvider(api_key="test")
        formatted = provider._format_messages([
            LLMMessage.text("system", "sys prompt"),
            LLMMessage.text("user", "hello")
        ])
        assert formatted == [
            {"role": "system", "content": "sys prompt"},
            {"role": "user", "content": "hello"},
        ]

    def test_headers(self):
        provider = OpenAIProvider(api_key="sk-test123")
        headers = provider._get_headers()
        assert headers["Authorization"] == "Bearer sk-test123"
        assert headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_chat_completion_success(self):
        provider = OpenAIProvider(api_key="test-key")
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "choices": [{"message": {"content": "Test response"}}],
            "model": "gpt-4o",
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
        }
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = mock_async_client(mock_client, mock_response)

            result = await provider.chat_completion(
                [LLMMessage.text("user", "Hello")], temperature=0.3, max_tokens=200
            )

            assert result.content == "Test response"
            assert result.model == "gpt-4o"
            assert result.total_tokens == 15

            args, kwargs = mock_instance.post.call_args
            assert args[0] == "https://api.openai.com/v1/chat/completions"
            assert kwargs["json"]["temperature"] == 0.3
            assert kwargs["json"]["max_tokens"] == 200
            assert kwargs["json"]["presence_penalty"] == 0.1
            assert kwargs["json"]["frequency_penalty"] == 0.1

    @pytest.mark.asyncio
    async def test_chat_completion_defaults(self):
        provider = OpenAIProvider(api_key="test-key", default_max_tokens=321)
        mock_response = MagicMock()
        mock_response.json.return_value = {"choices": [{"message": {"content": None}}]}
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client:
            mock_instance = mock_async_client(mock_client, mock_response)
            result = await provider.chat_completion([LLMMessage.text("user", "Hello")])

            payload = mock_instance.post.call_args.kwargs["json"]
            assert payload["temperature"] == 0.7
            assert payload["max_tokens"] == 321
            assert result.content == ""
            assert result.model == "gpt-4o"

    @pytest.mark.asyncio
    async def test_chat_completion_http_error_propagates(self):
        provider = OpenAIProvider(api_key="test-key")
        mock_response = MagicMock()
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "503 Service Unavailable", request=MagicMock(), response=MagicMock()
        )

        with patch("httpx.AsyncClient") as mock_client:
            mock_async_client(mock_client, mock_response)
            with pytest.raises(httpx.HTTPStatusError):
                await provider.chat_completion([LLMMessage.text("user", "Hello")])


class TestMockProvider:
    """Tests for the in-process provider."""

    @pytest.mark.asyncio
    async def test_reply_quotes_user(self):
        provider = MockProvider()
        result = await provider.chat_completion([
            LLMMessage.text("system", "You are an AI debate opponent"),
            LLMMessage.text("user", "Taxes should be lower"),
        ])
        assert '"Taxes should be lower"' in result.content
        assert result.model == "mock-debate-1"
        assert result.total_tokens > 0
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_reply_is_deterministic(self):
        provider = MockProvider()
        messages = [LLMMessage.text("user", "Same input")]
        first = await provider.chat_completion(messages)
        second = await provider.chat_completion(messages)
        assert first.content == second.content

    @pytest.mark.asyncio
    async def test_empty_input(self):
        provider = MockProvider()
        result = await provider.chat_completion([LLMMessage.text("user", "   ")])
        assert result.content == "Could you state your main argument?"

    @pytest.mark.asyncio
    async def test_scoring_prompt_returns_rubric(self):
        provider = MockProvider()
        result = await provider.chat_completion([
            LLMMessage.text("system", "Produce a performance analysis"),
            LLMMessage.text("user", "Debate Content: lower taxes"),
        ])
        data = json.loads(result.content)
        assert data["argumentStrength"] == 50
        assert data["emotionalAppeal"] == 35
        assert data["strengths"]


class TestLLMFactory:
    """Tests for LLM provider factory."""

    def test_create_openai_provider(self):
        provider = create_llm_provider(provider="openai", api_key="test-key", model="gpt-4o-mini")
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o-mini"

    def test_create_mock_provider(self):
        provider = create_llm_provider(provider="mock")
        assert isinstance(provider, MockProvider)
        assert provider.model == "mock-debate-1"

    def test_no_api_key_returns_none(self):
        assert create_llm_provider(provider="openai", api_key="") is None

    def test_unsupported_provider_raises(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_llm_provider(provider="volcengine", api_key="key")

    def test_custom_base_url(self):
        provider = create_llm_provider(
            provider="openai",
            api_key="key",
            base_url="https://custom.api.com/v1"
        )
        assert provider.base_url == "https://custom.api.com/v1"
