"""Wires the pipeline stages together from application settings."""

import logging
import random

from sarthi.core.cache import CacheLayer
from sarthi.core.config import Settings, get_settings
from sarthi.core.error_tracker import ErrorTracker
from sarthi.core.llm import build_llm_client
from sarthi.memory.context import ContextMemoryManager
from sarthi.pipeline.composer import Composer
from sarthi.pipeline.coordinator import PipelineCoordinator
from sarthi.pipeline.critic import Critic
from sarthi.pipeline.intent import IntentClassifier
from sarthi.pipeline.planner import Planner, ToolDispatcher
from sarthi.pipeline.prompts import PromptLibrary
from sarthi.pipeline.templates import TemplateStore
from sarthi.safety.guardrails import CrisisGuardrailEngine
from sarthi.tools.checkins import CheckinSource, HttpCheckinSource
from sarthi.tools.registry import build_default_registry

logger = logging.getLogger(__name__)


def build_coordinator(
    settings: Settings | None = None,
    *,
    rng: random.Random | None = None,
    checkin_source: CheckinSource | None = None,
) -> PipelineCoordinator:
    """Build a fully wired coordinator.

    Args:
        settings: Application settings; defaults to the environment.
        rng: Random source for template selection.
        checkin_source: Overrides the check-in source chosen from settings.
    """
    settings = settings or get_settings()

    cache = CacheLayer.from_settings(settings)
    error_tracker = ErrorTracker()
    llm = build_llm_client(settings, response_cache=cache.responses, error_tracker=error_tracker)
    prompts = PromptLibrary(cache)

    if checkin_source is None and settings.CHECKIN_SERVICE_URL:
        checkin_source = HttpCheckinSource(settings.CHECKIN_SERVICE_URL, timeout=settings.TOOL_TIMEOUT)

    if not llm.available:
        logger.warning("LLM_API_KEY not configured - model-backed stages use static fallbacks")

    return PipelineCoordinator(
        guardrails=CrisisGuardrailEngine(
            llm=llm,
            enable_model_check=settings.ENABLE_LLM_CRISIS_CHECK,
            helpline_name=settings.HELPLINE_NAME,
            helpline_number=settings.HELPLINE_NUMBER,
        ),
        classifier=IntentClassifier(llm, prompts, cache.intents),
        planner=Planner(),
        dispatcher=ToolDispatcher(build_default_registry(checkin_source), timeout=settings.TOOL_TIMEOUT),
        composer=Composer(
            TemplateStore(cache),
            llm=llm,
            prompts=prompts,
            rng=rng,
            enable_model_composition=settings.ENABLE_LLM_COMPOSITION,
        ),
        critic=Critic(llm, prompts),
        memory=ContextMemoryManager.from_settings(settings),
        error_tracker=error_tracker,
        cache=cache,
        enable_crisis_detection=settings.ENABLE_CRISIS_DETECTION,
        enable_memory=settings.ENABLE_MEMORY,
        enable_tools=settings.ENABLE_TOOLS,
        max_message_chars=settings.MAX_MESSAGE_CHARS,
    )
