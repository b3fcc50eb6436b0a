"""Shared fixtures for the Sarthi test suite."""

import random
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from sarthi.core.cache import CacheLayer
from sarthi.core.config import Settings
from sarthi.core.llm import STREAM_FALLBACK_TEXT, LLMClient
from sarthi.factory import build_coordinator
from sarthi.models import StreamChunk
from sarthi.pipeline.coordinator import PipelineCoordinator
from sarthi.pipeline.prompts import PromptLibrary
from sarthi.pipeline.templates import TemplateStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDateClock:
    """Timezone-aware wall clock for memory tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_llm(*responses: Any, available: bool = True) -> MagicMock:
    """LLMClient double whose ``complete`` returns or raises *responses* in order."""
    llm = MagicMock(spec=LLMClient)
    llm.available = available
    llm.complete = AsyncMock(side_effect=list(responses))
    return llm


def stream_of(*pieces: str, error: str | None = None) -> Callable[..., AsyncIterator[StreamChunk]]:
    """Replacement for ``LLMClient.stream`` yielding *pieces* then a terminal chunk."""

    async def _stream(prompt: str, stage: Any, *, system_prompt: str | None = None) -> AsyncIterator[StreamChunk]:
        for piece in pieces:
            yield StreamChunk(content=piece)
        if error:
            yield StreamChunk(content=STREAM_FALLBACK_TEXT, done=True, error=error)
            return
        yield StreamChunk(content="", done=True)

    return _stream


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def date_clock() -> FakeDateClock:
    return FakeDateClock()


@pytest.fixture
def cache_layer(clock: FakeClock) -> CacheLayer:
    return CacheLayer(maxsize=100, timer=clock)


@pytest.fixture
def prompts(cache_layer: CacheLayer) -> PromptLibrary:
    return PromptLibrary(cache_layer)


@pytest.fixture
def templates(cache_layer: CacheLayer) -> TemplateStore:
    return TemplateStore(cache_layer)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def offline_settings() -> Settings:
    """Settings with no model backend, so every model stage uses its fallback."""
    return Settings(
        _env_file=None,
        LLM_API_KEY="",
        ENABLE_LLM_COMPOSITION=False,
        CHECKIN_SERVICE_URL="",
    )


@pytest.fixture
def coordinator(offline_settings: Settings, rng: random.Random) -> PipelineCoordinator:
    return build_coordinator(offline_settings, rng=rng)
