"""Tests for the Language Model Backend client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from sarthi.core.cache import CacheRegion
from sarthi.core.config import Settings
from sarthi.core.error_tracker import ErrorTracker
from sarthi.core.exceptions import BackendError, BackendTimeout, ParseError
from sarthi.core.llm import STREAM_FALLBACK_TEXT, LLMClient, build_llm_client, parse_json_object
from sarthi.core.model_config import ModelConfig, StageType
from sarthi.core.resilience import CircuitBreaker, CircuitState


def _response(content: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def _client(**kwargs) -> LLMClient:
    kwargs.setdefault("api_key", "test-key")
    kwargs.setdefault("circuit_breaker", CircuitBreaker("llm_test", failure_threshold=3))
    return LLMClient(**kwargs)


class TestParseJsonObject:
    """Tests for tolerant JSON extraction."""

    def test_plain_object(self) -> None:
        """A bare object parses."""
        assert parse_json_object('{"intent": "quick_tip"}') == {"intent": "quick_tip"}

    def test_code_fence_and_prose(self) -> None:
        """Objects inside fences and prose are found."""
        text = 'Sure! Here you go:\n```json\n{"a": 1}\n```\nAnything else?'
        assert parse_json_object(text) == {"a": 1}

    def test_skips_broken_braces(self) -> None:
        """A stray brace before the real object is skipped."""
        assert parse_json_object('note {oops} then {"ok": true}') == {"ok": True}

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "[1, 2, 3]"])
    def test_raises_without_object(self, text: str) -> None:
        """Anything without a JSON object is a ParseError."""
        with pytest.raises(ParseError):
            parse_json_object(text)


class TestComplete:
    """Tests for LLMClient.complete."""

    @pytest.mark.asyncio
    async def test_unavailable_without_key(self) -> None:
        """No API key means a BackendError before any call."""
        client = _client(api_key="")
        assert client.available is False
        with pytest.raises(BackendError):
            await client.complete("hi", StageType.ROUTER)

    @pytest.mark.asyncio
    async def test_calls_litellm_with_route_config(self) -> None:
        """The stage route selects model and sampling parameters."""
        mock_acompletion = AsyncMock(return_value=_response("Hello"))
        client = _client(model=None)

        with patch("sarthi.core.llm.acompletion", mock_acompletion):
            result = await client.complete("hi", StageType.ROUTER, system_prompt="be kind")

        assert result == "Hello"
        kwargs = mock_acompletion.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "be kind"}
        assert kwargs["messages"][1] == {"role": "user", "content": "hi"}
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 200
        assert kwargs["api_key"] == "test-key"
        assert "api_base" not in kwargs

    @pytest.mark.asyncio
    async def test_base_url_is_forwarded(self) -> None:
        """A configured base URL becomes api_base."""
        mock_acompletion = AsyncMock(return_value=_response("ok"))
        client = _client(base_url="http://proxy.test")

        with patch("sarthi.core.llm.acompletion", mock_acompletion):
            await client.complete("hi", StageType.COMPOSER)

        assert mock_acompletion.call_args.kwargs["api_base"] == "http://proxy.test"

    @pytest.mark.asyncio
    async def test_response_cache_serves_repeat_prompt(self) -> None:
        """With use_cache, an identical prompt is answered from the cache."""
        mock_acompletion = AsyncMock(return_value=_response("cached answer"))
        client = _client(response_cache=CacheRegion("responses"))

        with patch("sarthi.core.llm.acompletion", mock_acompletion):
            first = await client.complete("Same  prompt", StageType.COMPOSER, use_cache=True)
            second = await client.complete("same prompt", StageType.COMPOSER, use_cache=True)

        assert first == second == "cached answer"
        assert mock_acompletion.await_count == 1

    @pytest.mark.asyncio
    async def test_failure_becomes_backend_error_and_is_tracked(self) -> None:
        """Provider exceptions surface as BackendError and are recorded."""
        tracker = ErrorTracker()
        client = _client(error_tracker=tracker)

        with patch("sarthi.core.llm.acompletion", AsyncMock(side_effect=RuntimeError("500"))):
            with pytest.raises(BackendError) as exc_info:
                await client.complete("hi", StageType.CRITIC)

        assert exc_info.value.stage == "critic"
        assert tracker.get_error_summary()["by_stage"] == {"critic": 1}

    @pytest.mark.asyncio
    async def test_timeout_raises_backend_timeout(self) -> None:
        """A slow call is cancelled at the stage timeout."""
        breaker = CircuitBreaker("llm_timeout_test", failure_threshold=1)
        routes = {StageType.ROUTER: ModelConfig("test/model", timeout=0.01)}
        client = _client(routes=routes, circuit_breaker=breaker)

        async def slow(**_kwargs):
            await asyncio.sleep(5)

        with patch("sarthi.core.llm.acompletion", slow):
            with pytest.raises(BackendTimeout):
                await client.complete("hi", StageType.ROUTER)

        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self) -> None:
        """An open breaker turns into a BackendError without calling out."""
        breaker = CircuitBreaker("llm_open_test", failure_threshold=1)
        breaker.record_failure()
        mock_acompletion = AsyncMock(return_value=_response("never"))
        client = _client(circuit_breaker=breaker)

        with patch("sarthi.core.llm.acompletion", mock_acompletion):
            with pytest.raises(BackendError):
                await client.complete("hi", StageType.ROUTER)

        mock_acompletion.assert_not_awaited()


class _Delta:
    def __init__(self, content: str | None) -> None:
        self.choices = [MagicMock(delta=MagicMock(content=content))]


class _FakeStream:
    def __init__(self, pieces: list[str | None], error: Exception | None = None) -> None:
        self._pieces = list(pieces)
        self._error = error

    def __aiter__(self) -> "_FakeStream":
        return self

    async def __anext__(self) -> _Delta:
        if self._pieces:
            return _Delta(self._pieces.pop(0))
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration


class TestStream:
    """Tests for LLMClient.stream."""

    @pytest.mark.asyncio
    async def test_stream_yields_content_then_done(self) -> None:
        """Deltas are forwarded and a single done chunk closes the stream."""
        client = _client()
        with patch("sarthi.core.llm.acompletion", AsyncMock(return_value=_FakeStream(["Hel", None, "lo"]))):
            chunks = [c async for c in client.stream("hi", StageType.COMPOSER)]

        assert [c.content for c in chunks] == ["Hel", "lo", ""]
        assert [c.done for c in chunks] == [False, False, True]
        assert chunks[-1].error is None

    @pytest.mark.asyncio
    async def test_stream_error_ends_with_fallback(self) -> None:
        """A mid-stream failure ends with fallback text and api_error."""
        tracker = ErrorTracker()
        client = _client(error_tracker=tracker)
        stream = _FakeStream(["partial"], error=RuntimeError("connection reset"))

        with patch("sarthi.core.llm.acompletion", AsyncMock(return_value=stream)):
            chunks = [c async for c in client.stream("hi", StageType.COMPOSER)]

        assert chunks[0].content == "partial"
        assert chunks[-1].done is True
        assert chunks[-1].error == "api_error"
        assert chunks[-1].content == STREAM_FALLBACK_TEXT
        assert tracker.get_error_summary()["total"] == 1

    @pytest.mark.asyncio
    async def test_stream_without_key(self) -> None:
        """An unconfigured client yields one fallback chunk."""
        chunks = [c async for c in _client(api_key="").stream("hi", StageType.COMPOSER)]
        assert len(chunks) == 1
        assert chunks[0].done is True
        assert chunks[0].error == "api_error"


def test_build_llm_client_from_settings() -> None:
    """Settings supply key, base URL, model and stage timeouts."""
    settings = Settings(
        _env_file=None,
        LLM_API_KEY="sk-test",
        LLM_MODEL="anthropic/claude-test",
        LLM_BASE_URL="http://proxy.test",
        CRITIC_TIMEOUT=3.0,
    )
    client = build_llm_client(settings)

    assert client.available is True
    assert client._base_url == "http://proxy.test"
    assert client.route(StageType.CRITIC).model == "anthropic/claude-test"
    assert client.route(StageType.CRITIC).timeout == 3.0
    assert client.route(StageType.ROUTER).temperature == 0.2
