"""Language Model Backend client.

Routes every request through LiteLLM so any provider it supports can back
the pipeline. Each call runs under its stage's timeout and the shared
circuit breaker, and failures surface as ``BackendTimeout`` /
``BackendError`` for the calling stage to recover from.
"""

import asyncio
import json
import logging
import re
from collections.abc import AsyncIterator
from typing import Any

import litellm
from litellm import acompletion

from sarthi.core.cache import CacheRegion, make_cache_key
from sarthi.core.error_tracker import ErrorTracker
from sarthi.core.exceptions import BackendError, BackendTimeout, ParseError
from sarthi.core.model_config import (
    DEFAULT_CONFIG,
    MODEL_ROUTES,
    ModelConfig,
    StageType,
    build_routes,
)
from sarthi.core.resilience import CircuitBreaker, llm_circuit_breaker, run_with_timeout
from sarthi.models import StreamChunk

# Providers that reject top_p or other sampling params get them dropped
litellm.drop_params = True

logger = logging.getLogger(__name__)

STREAM_FALLBACK_TEXT = "I'm having trouble responding right now. Please try again in a moment."

_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def parse_json_object(text: str) -> dict[str, Any]:
    """Extract the first JSON object from model output.

    Tolerates surrounding prose and Markdown code fences.

    Raises:
        ParseError: If no JSON object can be decoded.
    """
    if not text or not text.strip():
        raise ParseError("Empty model output", raw=text)

    candidates = [m.group(1) for m in _CODE_FENCE.finditer(text)]
    candidates.append(text)

    decoder = json.JSONDecoder()
    for candidate in candidates:
        start = candidate.find("{")
        while start != -1:
            try:
                obj, _ = decoder.raw_decode(candidate, start)
            except json.JSONDecodeError:
                start = candidate.find("{", start + 1)
                continue
            if isinstance(obj, dict):
                return obj
            start = candidate.find("{", start + 1)

    raise ParseError("No JSON object in model output", raw=text)


class LLMClient:
    """Async client for the Language Model Backend.

    Args:
        model: LiteLLM model string; overrides the route defaults.
        api_key: Provider API key. Without one the client is unavailable.
        base_url: Optional API base for self-hosted or proxy endpoints.
        routes: Per-stage model configuration.
        response_cache: Cache region for full responses (keyed by prompt hash).
        circuit_breaker: Breaker guarding the backend.
        error_tracker: Records every failed backend call by stage.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str = "",
        base_url: str = "",
        routes: dict[StageType, ModelConfig] | None = None,
        response_cache: CacheRegion | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        error_tracker: ErrorTracker | None = None,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self._routes = routes or MODEL_ROUTES
        self._response_cache = response_cache
        self._circuit_breaker = circuit_breaker or llm_circuit_breaker
        self._error_tracker = error_tracker

    @property
    def available(self) -> bool:
        """Whether the backend has credentials to call."""
        return bool(self._api_key)

    def route(self, stage: StageType) -> ModelConfig:
        """Model configuration for a stage."""
        return self._routes.get(stage, DEFAULT_CONFIG)

    def _record(self, stage: StageType, exc: BaseException) -> None:
        if self._error_tracker is not None:
            self._error_tracker.record_error(stage.value, exc)

    def _request_kwargs(self, config: ModelConfig, prompt: str, system_prompt: str | None) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self._model or config.model,
            "messages": messages,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "top_p": config.top_p,
            "api_key": self._api_key,
        }
        if self._base_url:
            kwargs["api_base"] = self._base_url
        return kwargs

    async def complete(
        self,
        prompt: str,
        stage: StageType,
        *,
        system_prompt: str | None = None,
        use_cache: bool = False,
    ) -> str:
        """Generate a full completion for *prompt*.

        Args:
            prompt: The rendered user prompt.
            stage: Pipeline stage issuing the call (selects model config).
            system_prompt: Optional system prompt.
            use_cache: Serve from and populate the response cache.

        Returns:
            The completion text.

        Raises:
            BackendTimeout: If the stage timeout was exceeded.
            BackendError: If the backend is unavailable or the call failed.
        """
        if not self.available:
            raise BackendError(stage.value, "Language model backend is not configured")

        cache_key = make_cache_key(system_prompt or "", prompt, prefix="response") if use_cache else ""
        if use_cache and self._response_cache is not None:
            cached, found = self._response_cache.get(cache_key)
            if found:
                logger.debug("Response cache hit for stage %s", stage.value)
                return str(cached)

        config = self.route(stage)
        kwargs = self._request_kwargs(config, prompt, system_prompt)

        logger.debug(
            "Calling language model",
            extra={"model": kwargs["model"], "stage": stage.value, "prompt_length": len(prompt)},
        )

        try:
            response = await run_with_timeout(
                self._circuit_breaker.call(acompletion, **kwargs),
                config.timeout,
                stage.value,
            )
            text = str(response.choices[0].message.content or "")
        except BackendTimeout as exc:
            self._circuit_breaker.record_failure()
            self._record(stage, exc)
            raise
        except Exception as exc:
            logger.warning("Language model call failed during %s: %s", stage.value, exc)
            self._record(stage, exc)
            raise BackendError(stage.value, str(exc)) from exc

        if use_cache and self._response_cache is not None and text.strip():
            self._response_cache.set(cache_key, text)
        return text

    async def stream(
        self,
        prompt: str,
        stage: StageType,
        *,
        system_prompt: str | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a completion as ``StreamChunk`` items.

        Never raises. The last chunk always has ``done=True``; on failure it
        carries fallback text and ``error`` set to ``"timeout"`` or
        ``"api_error"``.
        """
        if not self.available:
            yield StreamChunk(content=STREAM_FALLBACK_TEXT, done=True, error="api_error")
            return

        config = self.route(stage)
        kwargs = self._request_kwargs(config, prompt, system_prompt)

        try:
            self._circuit_breaker.check()
            response = await asyncio.wait_for(acompletion(stream=True, **kwargs), timeout=config.timeout)
            iterator = response.__aiter__()
            while True:
                try:
                    chunk = await asyncio.wait_for(anext(iterator), timeout=config.timeout)
                except StopAsyncIteration:
                    break
                if chunk.choices and chunk.choices[0].delta:
                    delta_content = chunk.choices[0].delta.content
                    if delta_content:
                        yield StreamChunk(content=delta_content)
        except TimeoutError as exc:
            self._circuit_breaker.record_failure()
            self._record(stage, exc)
            logger.warning("Language model stream timed out during %s", stage.value)
            yield StreamChunk(content=STREAM_FALLBACK_TEXT, done=True, error="timeout")
            return
        except Exception as exc:
            self._circuit_breaker.record_failure()
            logger.warning("Language model stream failed during %s: %s", stage.value, exc)
            self._record(stage, exc)
            yield StreamChunk(content=STREAM_FALLBACK_TEXT, done=True, error="api_error")
            return

        self._circuit_breaker.record_success()
        yield StreamChunk(content="", done=True)


def build_llm_client(
    settings: Any,
    response_cache: CacheRegion | None = None,
    error_tracker: ErrorTracker | None = None,
) -> LLMClient:
    """Construct an LLMClient from application settings."""
    return LLMClient(
        api_key=settings.LLM_API_KEY.get_secret_value(),
        base_url=settings.LLM_BASE_URL,
        routes=build_routes(settings),
        response_cache=response_cache,
        error_tracker=error_tracker,
    )
