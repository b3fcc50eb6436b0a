"""Pipeline Coordinator.

Runs one turn through the stage sequence:

- RECEIVED -> CRISIS_CHECK
- Critical path: OVERRIDE -> LOG -> DONE
- Fast path: CLASSIFY -> COMPOSE_FAST -> LOG -> DONE
- Full path: CLASSIFY -> PLAN -> DISPATCH -> COMPOSE -> CRITIQUE -> REVISE -> LOG -> DONE

A crisis detection is authoritative: its response is emitted as is and no
later stage runs. Every other stage failure degrades to that stage's
fallback and the turn continues.
"""

import inspect
import logging
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sarthi.core.cache import CacheLayer
from sarthi.core.error_tracker import ErrorTracker
from sarthi.core.exceptions import InputError
from sarthi.core.text import detect_emotional_tone
from sarthi.memory.context import ContextMemoryManager
from sarthi.models import (
    ContextSummary,
    CrisisDetection,
    CrisisSeverity,
    EmotionalTone,
    FinalResponse,
    HistoryMessage,
    Intent,
    IntentClassification,
    Plan,
    Strategy,
    StreamChunk,
    ToolResult,
    TurnRecord,
)
from sarthi.pipeline.composer import Composer, target_language
from sarthi.pipeline.critic import Critic
from sarthi.pipeline.intent import IntentClassifier, default_classification
from sarthi.pipeline.planner import Planner, ToolDispatcher
from sarthi.safety.guardrails import CrisisGuardrailEngine

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 4000
FAST_PATH_CONFIDENCE = 0.7

FALLBACK_RESPONSES = {
    "en": "I'm here to support you. Let's take this one step at a time. You're doing better than you think.",
    "hi": "मैं आपकी सहायता के लिए यहां हूं। चलिए इसे एक-एक कदम करते हैं। आप सोचते हैं उससे बेहतर कर रहे हैं।",
    "es": "Estoy aquí para apoyarte. Vamos a tomarlo paso a paso. Lo estás haciendo mejor de lo que crees.",
}


def fallback_response(language: str) -> str:
    """Generic supportive reply in *language*, English otherwise."""
    return FALLBACK_RESPONSES.get(language, FALLBACK_RESPONSES["en"])


class PipelineState(Enum):
    """States a turn moves through."""

    RECEIVED = "received"
    CRISIS_CHECK = "crisis_check"
    OVERRIDE = "override"
    CLASSIFY = "classify"
    COMPOSE_FAST = "compose_fast"
    PLAN = "plan"
    DISPATCH = "dispatch"
    COMPOSE = "compose"
    CRITIQUE = "critique"
    REVISE = "revise"
    LOG = "log"
    DONE = "done"


@dataclass
class TurnTrace:
    """Path and timings of one turn, for debugging."""

    user_id: str
    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.RECEIVED])
    durations_ms: dict[str, int] = field(default_factory=dict)
    degraded: list[str] = field(default_factory=list)

    def enter(self, state: PipelineState) -> None:
        self.states.append(state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "states": [s.value for s in self.states],
            "durations_ms": dict(self.durations_ms),
            "degraded": list(self.degraded),
        }


class PipelineCoordinator:
    """Runs turns through the conversation pipeline.

    Args:
        guardrails: Crisis detection and response.
        classifier: Intent classification.
        planner: Rule-based strategy and tool selection.
        dispatcher: Runs the planned tool call.
        composer: Reply composition.
        critic: Quality checklist and revision.
        memory: Per-user turn log and summaries.
        error_tracker: Records every stage degradation.
        cache: Shared cache layer, reported in stats.
    """

    def __init__(
        self,
        guardrails: CrisisGuardrailEngine,
        classifier: IntentClassifier,
        planner: Planner,
        dispatcher: ToolDispatcher,
        composer: Composer,
        critic: Critic,
        memory: ContextMemoryManager,
        error_tracker: ErrorTracker | None = None,
        cache: CacheLayer | None = None,
        *,
        enable_crisis_detection: bool = True,
        enable_memory: bool = True,
        enable_tools: bool = True,
        max_message_chars: int = MAX_MESSAGE_CHARS,
    ) -> None:
        self.guardrails = guardrails
        self.classifier = classifier
        self.planner = planner
        self.dispatcher = dispatcher
        self.composer = composer
        self.critic = critic
        self.memory = memory
        self.error_tracker = error_tracker or ErrorTracker()
        self.cache = cache
        self.enable_crisis_detection = enable_crisis_detection
        self.enable_memory = enable_memory
        self.enable_tools = enable_tools
        self.max_message_chars = max_message_chars

    def validate_request(self, user_id: str, message: str) -> None:
        """Reject malformed requests.

        Raises:
            InputError: If the user id or message is empty, or the message
                is too long.
        """
        if not user_id or not user_id.strip():
            raise InputError("user_id must not be empty", field="user_id")
        if not message or not message.strip():
            raise InputError("message must not be empty", field="message")
        if len(message) > self.max_message_chars:
            raise InputError(
                f"message exceeds {self.max_message_chars} characters", field="message"
            )

    async def submit_turn(
        self,
        user_id: str,
        message: str,
        history: list[HistoryMessage | dict[str, str]] | None = None,
        language: str | None = "en",
        user_context: dict[str, Any] | None = None,
    ) -> FinalResponse:
        """Process one user message into a reply.

        Raises:
            InputError: For a malformed request. Nothing else propagates.
        """
        self.validate_request(user_id, message)
        user_context = user_context or {}
        lang = target_language(language, user_context)
        trace = TurnTrace(user_id=user_id)

        try:
            response = await self._run_turn(trace, user_id, message, _history_dicts(history), lang, user_context)
        except Exception as e:
            logger.exception("Pipeline failed for user %s, using fallback", user_id)
            self.error_tracker.record_error("pipeline", e)
            trace.degraded.append("pipeline")
            response = FinalResponse(
                content=fallback_response(lang),
                intent=Intent.THERAPY_SUPPORT,
                confidence=0.5,
                language=lang,
            )

        trace.enter(PipelineState.DONE)
        logger.debug("Turn completed", extra={"trace": trace.to_dict()})
        return response

    async def _run_turn(
        self,
        trace: TurnTrace,
        user_id: str,
        message: str,
        history: list[dict[str, str]],
        lang: str,
        user_context: dict[str, Any],
    ) -> FinalResponse:
        detection = await self._check_crisis(trace, message, lang)
        if detection is not None and detection.is_crisis:
            return await self._crisis_turn(trace, user_id, message, lang, detection, user_context)

        classification = await self._stage(
            trace,
            PipelineState.CLASSIFY,
            lambda: self.classifier.classify(message, history),
            default_classification,
        )

        if classification.intent == Intent.QUICK_TIP and classification.confidence > FAST_PATH_CONFIDENCE:
            content = await self._stage(
                trace,
                PipelineState.COMPOSE_FAST,
                lambda: self.composer.compose_fast(classification, message, lang, user_context),
                lambda: fallback_response(lang),
            )
            tools_used: list[str] = []
        else:
            content, tools_used = await self._full_path(
                trace, user_id, message, lang, classification, user_context
            )

        turn_id = await self._log_turn(
            trace,
            {
                "user_id": user_id,
                "user_message": message,
                "language": lang,
                "intent": classification.intent,
                "confidence": classification.confidence,
                "tools_used": tools_used,
                "response": content,
                "emotional_tone": detect_emotional_tone(message),
                "stress_level": user_context.get("current_stress_level"),
                "wellness_score": user_context.get("wellness_score"),
            },
        )
        return FinalResponse(
            content=content,
            intent=classification.intent,
            confidence=classification.confidence,
            language=lang,
            tools_used=tools_used,
            turn_id=turn_id,
        )

    async def _full_path(
        self,
        trace: TurnTrace,
        user_id: str,
        message: str,
        lang: str,
        classification: IntentClassification,
        user_context: dict[str, Any],
    ) -> tuple[str, list[str]]:
        plan_context = {**user_context, "user_id": user_id, "language": lang}
        plan = await self._stage(
            trace,
            PipelineState.PLAN,
            lambda: self.planner.plan(classification, message, plan_context),
            lambda: Plan(intent=Intent.THERAPY_SUPPORT, strategy=Strategy.EMPATHETIC_VALIDATION),
        )

        tool_result: ToolResult | None = None
        tools_used: list[str] = []
        if plan.tool_needed and self.enable_tools:
            tool_result = await self._stage(
                trace,
                PipelineState.DISPATCH,
                lambda: self.dispatcher.dispatch(plan),
                lambda: ToolResult(success=False, error="Tool dispatch failed"),
            )
            if tool_result.success:
                tools_used.append(plan.tool_name.value)
            else:
                self.error_tracker.record_error("tool", tool_result.error or "Tool failed")
                trace.degraded.append(PipelineState.DISPATCH.value)

        content = await self._stage(
            trace,
            PipelineState.COMPOSE,
            lambda: self.composer.compose_with_model(
                classification, tool_result, message, lang, user_context
            ),
            lambda: fallback_response(lang),
        )

        verdict = await self._stage(
            trace,
            PipelineState.CRITIQUE,
            lambda: self.critic.critique(content, classification.intent, lang, message),
            lambda: None,
        )
        if verdict is not None and not verdict.passed and verdict.revised_response:
            trace.enter(PipelineState.REVISE)
            content = verdict.revised_response

        return content, tools_used

    async def _check_crisis(self, trace: TurnTrace, message: str, lang: str) -> CrisisDetection | None:
        if not self.enable_crisis_detection:
            return None

        # A failed model-backed check falls back to the keyword scan
        return await self._stage(
            trace,
            PipelineState.CRISIS_CHECK,
            lambda: self.guardrails.detect(message, lang),
            lambda: self.guardrails.detect_keywords(message, lang),
        )

    async def _crisis_turn(
        self,
        trace: TurnTrace,
        user_id: str,
        message: str,
        lang: str,
        detection: CrisisDetection,
        user_context: dict[str, Any],
    ) -> FinalResponse:
        trace.enter(PipelineState.OVERRIDE)
        try:
            content = self.guardrails.override_with_crisis_response(detection, lang, message)
        except Exception as e:
            logger.exception("Crisis response failed, sending helpline fallback")
            self.error_tracker.record_error(PipelineState.OVERRIDE.value, e)
            content = f"{fallback_response(lang)}\n\n{self.guardrails.helpline}"

        turn_id = await self._log_turn(
            trace,
            {
                "user_id": user_id,
                "user_message": message,
                "language": lang,
                "intent": Intent.CRISIS,
                "confidence": detection.confidence,
                "response": content,
                "emotional_tone": (
                    EmotionalTone.CRISIS
                    if detection.severity == CrisisSeverity.CRITICAL
                    else EmotionalTone.NEGATIVE
                ),
                "stress_level": user_context.get("current_stress_level"),
                "wellness_score": user_context.get("wellness_score"),
                "crisis_severity": detection.severity,
            },
        )
        return FinalResponse(
            content=content,
            intent=Intent.CRISIS,
            is_crisis=True,
            crisis_severity=detection.severity,
            confidence=detection.confidence,
            language=lang,
            turn_id=turn_id,
        )

    async def _log_turn(self, trace: TurnTrace, data: dict[str, Any]) -> str | None:
        """Write the turn to memory. Failures never affect the reply."""
        if not self.enable_memory:
            return None

        trace.enter(PipelineState.LOG)
        try:
            return await self.memory.write_turn(data)
        except Exception as e:
            logger.warning("Memory write failed for user %s: %s", data.get("user_id"), e)
            self.error_tracker.record_error("memory", e)
            trace.degraded.append(PipelineState.LOG.value)
            return None

    async def _stage(
        self,
        trace: TurnTrace,
        state: PipelineState,
        run: Callable[[], Any],
        fallback: Callable[[], Any],
    ) -> Any:
        """Run one stage, timing it and substituting *fallback* on failure."""
        trace.enter(state)
        start = time.perf_counter()
        try:
            result = run()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.warning("Stage %s failed, using fallback: %s", state.value, e, exc_info=True)
            self.error_tracker.record_error(state.value, e)
            trace.degraded.append(state.value)
            return fallback()
        finally:
            trace.durations_ms[state.value] = int((time.perf_counter() - start) * 1000)

    async def stream_turn(
        self,
        user_id: str,
        message: str,
        history: list[HistoryMessage | dict[str, str]] | None = None,
        language: str | None = "en",
        user_context: dict[str, Any] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream the reply for one message.

        Never raises and always ends with exactly one ``done=True`` chunk.
        The complete streamed reply is written to memory afterwards.
        """
        user_context = user_context or {}
        lang = target_language(language, user_context)
        trace = TurnTrace(user_id=user_id)
        finished = False

        try:
            self.validate_request(user_id, message)

            detection = await self._check_crisis(trace, message, lang)
            if detection is not None and detection.is_crisis:
                response = await self._crisis_turn(trace, user_id, message, lang, detection, user_context)
                finished = True
                yield StreamChunk(content=response.content, done=True)
                return

            classification = await self._stage(
                trace,
                PipelineState.CLASSIFY,
                lambda: self.classifier.classify(message, _history_dicts(history)),
                default_classification,
            )

            trace.enter(PipelineState.COMPOSE)
            parts: list[str] = []
            async for chunk in self.composer.stream_compose(
                classification, None, message, lang, user_context
            ):
                if chunk.content:
                    parts.append(chunk.content)
                if chunk.error:
                    self.error_tracker.record_error(PipelineState.COMPOSE.value, chunk.error)
                    trace.degraded.append(PipelineState.COMPOSE.value)
                finished = finished or chunk.done
                yield chunk

            if not finished:
                finished = True
                yield StreamChunk(content="", done=True)

            await self._log_turn(
                trace,
                {
                    "user_id": user_id,
                    "user_message": message,
                    "language": lang,
                    "intent": classification.intent,
                    "confidence": classification.confidence,
                    "response": "".join(parts),
                    "emotional_tone": detect_emotional_tone(message),
                    "stress_level": user_context.get("current_stress_level"),
                    "wellness_score": user_context.get("wellness_score"),
                },
            )
        except InputError as e:
            if not finished:
                yield StreamChunk(content=e.message, done=True, error="invalid_input")
        except Exception as e:
            logger.exception("Streaming failed for user %s", user_id)
            self.error_tracker.record_error("pipeline", e)
            if not finished:
                yield StreamChunk(content=fallback_response(lang), done=True, error="processing_error")

        trace.enter(PipelineState.DONE)
        logger.debug("Streamed turn completed", extra={"trace": trace.to_dict()})

    async def get_user_context(self, user_id: str) -> ContextSummary | None:
        if not self.enable_memory:
            return None
        return await self.memory.fetch_context(user_id)

    async def get_recent_history(self, user_id: str, limit: int = 10) -> list[TurnRecord]:
        if not self.enable_memory:
            return []
        return await self.memory.get_recent_turns(user_id, limit)

    async def clear_user_data(self, user_id: str) -> None:
        """Erase everything remembered about *user_id*."""
        if self.enable_memory:
            await self.memory.clear_user_data(user_id)

    async def aclose(self) -> None:
        """Close tool collaborators that hold connections."""
        await self.dispatcher.aclose()

    def get_stats(self) -> dict[str, Any]:
        """Feature toggles, memory and cache statistics, recent degradations."""
        stats: dict[str, Any] = {
            "config": {
                "crisis_detection": self.enable_crisis_detection,
                "memory": self.enable_memory,
                "tools": self.enable_tools,
                "model_composition": self.composer.model_enabled,
            },
            "errors": self.error_tracker.get_error_summary(),
        }
        if self.enable_memory:
            stats["memory"] = self.memory.get_memory_stats()
        if self.cache is not None:
            stats["cache"] = self.cache.get_stats()
        return stats


def _history_dicts(history: list[HistoryMessage | dict[str, str]] | None) -> list[dict[str, str]]:
    if not history:
        return []
    return [m.model_dump(mode="json") if isinstance(m, HistoryMessage) else dict(m) for m in history]
