"""Composer.

Builds the fixed reply layout (validation, 2-5 bullet actions, nudge and
call-to-action) from tool data and localized template pools. Model-backed
composition is optional and always falls back to the template reply.
"""

import logging
import random
from collections.abc import AsyncIterator
from typing import Any

from sarthi.core.exceptions import SarthiException
from sarthi.core.llm import LLMClient
from sarthi.core.model_config import StageType
from sarthi.models import (
    ComposedReply,
    Intent,
    IntentClassification,
    StreamChunk,
    ToolResult,
)
from sarthi.pipeline.intent import describe_intent
from sarthi.pipeline.prompts import SYSTEM_PROMPT, PromptLibrary, format_tool_section
from sarthi.pipeline.templates import TemplateStore

logger = logging.getLogger(__name__)

MIN_ACTIONS = 2
MAX_ACTIONS = 5
MAX_TOOL_ACTIONS = 4

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "es": "Spanish",
    "fr": "French",
}


def target_language(language: str | None, user_context: dict[str, Any] | None = None) -> str:
    """``language_override`` from the user context, else *language*, else ``en``."""
    override = (user_context or {}).get("language_override")
    return override or language or "en"


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def _resource_title(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("title") or item.get("name") or item)
    return str(item)


class Composer:
    """Template composer with optional model-backed composition."""

    def __init__(
        self,
        templates: TemplateStore,
        llm: LLMClient | None = None,
        prompts: PromptLibrary | None = None,
        rng: random.Random | None = None,
        enable_model_composition: bool = False,
    ) -> None:
        self._templates = templates
        self._llm = llm
        self._prompts = prompts
        self._rng = rng or random.Random()
        self._enable_model = enable_model_composition

    @property
    def model_enabled(self) -> bool:
        return (
            self._enable_model
            and self._llm is not None
            and self._prompts is not None
            and self._llm.available
        )

    def compose(
        self,
        classification: IntentClassification,
        tool_result: ToolResult | None,
        message: str,
        language: str | None,
        user_context: dict[str, Any] | None = None,
    ) -> ComposedReply:
        """Compose a templated reply in the target language."""
        lang = target_language(language, user_context)
        intent = classification.intent

        validation = self._rng.choice(self._templates.pool(lang, intent, "validation"))
        actions = self._actions(intent, tool_result, lang)
        nudge = self._rng.choice(self._templates.pool(lang, intent, "nudge"))

        return ComposedReply(
            validation=validation,
            actions=actions,
            nudge=nudge,
            cta=self._templates.cta(lang),
        )

    def _actions(self, intent: Intent, tool_result: ToolResult | None, language: str) -> list[str]:
        if tool_result is not None and tool_result.success and tool_result.data is not None:
            actions = self.format_tool_data(tool_result.data, language)
        else:
            pool = self._templates.pool(language, intent, "actions")
            count = min(len(pool), self._rng.randint(MIN_ACTIONS, 4))
            actions = pool[:count]

        # Short tool lists are topped up from the intent pool
        if len(actions) < MIN_ACTIONS:
            for extra in self._templates.pool(language, intent, "actions"):
                if len(actions) >= MIN_ACTIONS:
                    break
                if extra not in actions:
                    actions.append(extra)
        return actions[:MAX_ACTIONS]

    def format_tool_data(self, data: Any, language: str = "en") -> list[str]:
        """Turn tool output into action lines.

        Lists give their first four items (resource entries by title), plans
        their first four steps, check-in summaries a score line plus three
        generic lines. Anything else yields the generic actions.
        """
        if isinstance(data, list):
            return [_resource_title(item) for item in data[:MAX_TOOL_ACTIONS]]

        if isinstance(data, dict):
            if isinstance(data.get("steps"), list):
                return [str(step) for step in data["steps"][:MAX_TOOL_ACTIONS]]
            score = data.get("avg_wellness", data.get("avgWellness"))
            if score is not None:
                return self._templates.wellness_actions(language, score)

        return self._templates.generic_actions(language)

    async def compose_with_model(
        self,
        classification: IntentClassification,
        tool_result: ToolResult | None,
        message: str,
        language: str | None,
        user_context: dict[str, Any] | None = None,
    ) -> str:
        """Compose through the backend, falling back to the template reply."""
        fallback = self.compose(classification, tool_result, message, language, user_context)
        if not self.model_enabled:
            return fallback.full_response

        lang = target_language(language, user_context)
        tool_data = tool_result.data if tool_result is not None and tool_result.success else None
        prompt = self._prompts.render(
            "response_composition",
            intent=f"{classification.intent.value} ({describe_intent(classification.intent)})",
            language=language_name(lang),
            tool_section=format_tool_section(tool_data),
            message=message,
        )
        return await self._complete_or(prompt, fallback.full_response)

    async def compose_fast(
        self,
        classification: IntentClassification,
        message: str,
        language: str | None,
        user_context: dict[str, Any] | None = None,
    ) -> str:
        """Fast-path reply from the ``quick_tip_fast`` prompt."""
        fallback = self.compose(classification, None, message, language, user_context)
        if not self.model_enabled:
            return fallback.full_response

        prompt = self._prompts.render(
            "quick_tip_fast",
            message=message,
            language=language_name(target_language(language, user_context)),
        )
        return await self._complete_or(prompt, fallback.full_response)

    async def _complete_or(self, prompt: str, fallback: str) -> str:
        try:
            text = await self._llm.complete(
                prompt, StageType.COMPOSER, system_prompt=SYSTEM_PROMPT, use_cache=True
            )
        except SarthiException as e:
            logger.warning("Model composition failed, using templates: %s", e.code)
            return fallback

        text = text.strip()
        return text or fallback

    async def stream_compose(
        self,
        classification: IntentClassification,
        tool_result: ToolResult | None,
        message: str,
        language: str | None,
        user_context: dict[str, Any] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream the reply from the backend.

        If the model is off or fails before producing content, the template
        reply is sent as a single terminal chunk. Exactly one chunk has
        ``done=True``.
        """
        fallback = self.compose(classification, tool_result, message, language, user_context)
        if not self.model_enabled:
            yield StreamChunk(content=fallback.full_response, done=True)
            return

        lang = target_language(language, user_context)
        tool_data = tool_result.data if tool_result is not None and tool_result.success else None
        prompt = self._prompts.render(
            "response_composition",
            intent=classification.intent.value,
            language=language_name(lang),
            tool_section=format_tool_section(tool_data),
            message=message,
        )

        emitted = False
        async for chunk in self._llm.stream(prompt, StageType.COMPOSER, system_prompt=SYSTEM_PROMPT):
            if chunk.error:
                logger.warning("Streaming composition failed: %s", chunk.error)
                if emitted:
                    yield StreamChunk(content="", done=True, error=chunk.error)
                else:
                    yield StreamChunk(content=fallback.full_response, done=True, error=chunk.error)
                return
            if chunk.done:
                if not emitted:
                    yield StreamChunk(content=fallback.full_response, done=True)
                else:
                    yield chunk
                return
            if chunk.content:
                emitted = True
                yield chunk

        # Iterator ended without a terminal chunk
        yield StreamChunk(content="" if emitted else fallback.full_response, done=True)
