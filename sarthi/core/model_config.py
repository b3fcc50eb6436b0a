from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class StageType(str, Enum):
    ROUTER = "router"
    PLANNER = "planner"
    COMPOSER = "composer"
    CRITIC = "critic"
    GUARDRAIL = "guardrail"


@dataclass(frozen=True)
class ModelConfig:
    model: str
    max_tokens: int = 350
    temperature: float = 0.7
    top_p: float = 0.9
    timeout: float = 12.0


DEFAULT_MODEL = "openai/gpt-3.5-turbo"

MODEL_ROUTES: dict[StageType, ModelConfig] = {
    StageType.ROUTER:    ModelConfig(DEFAULT_MODEL, max_tokens=200, temperature=0.2),
    StageType.PLANNER:   ModelConfig(DEFAULT_MODEL, max_tokens=300, temperature=0.4),
    StageType.COMPOSER:  ModelConfig(DEFAULT_MODEL, max_tokens=350, temperature=0.7),
    StageType.CRITIC:    ModelConfig(DEFAULT_MODEL, max_tokens=200, temperature=0.3),
    StageType.GUARDRAIL: ModelConfig(DEFAULT_MODEL, max_tokens=200, temperature=0.3),
}

DEFAULT_CONFIG = MODEL_ROUTES[StageType.COMPOSER]


def build_routes(settings: Any) -> dict[StageType, ModelConfig]:
    """Apply the configured model and per-stage timeouts to the default routes."""
    timeouts = {
        StageType.ROUTER: settings.ROUTER_TIMEOUT,
        StageType.PLANNER: settings.PLANNER_TIMEOUT,
        StageType.COMPOSER: settings.COMPOSER_TIMEOUT,
        StageType.CRITIC: settings.CRITIC_TIMEOUT,
        StageType.GUARDRAIL: settings.GUARDRAIL_TIMEOUT,
    }
    return {
        stage: replace(config, model=settings.LLM_MODEL, timeout=timeouts[stage])
        for stage, config in MODEL_ROUTES.items()
    }
