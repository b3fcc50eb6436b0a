"""Intent Classifier.

Labels a message with one of five intents through the language model's
router route. Ambiguous or unparseable results fall back to supportive
listening (``therapy_support``) rather than escalating or dismissing.
"""

import logging

from pydantic import ValidationError

from sarthi.core.cache import CacheRegion, make_cache_key
from sarthi.core.exceptions import SarthiException
from sarthi.core.llm import LLMClient, parse_json_object
from sarthi.core.model_config import StageType
from sarthi.models import MIN_INTENT_CONFIDENCE, Intent, IntentClassification
from sarthi.pipeline.prompts import PromptLibrary, format_history

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 3

INTENT_DESCRIPTIONS: dict[Intent, str] = {
    Intent.THERAPY_SUPPORT: "Emotional support and mental health guidance",
    Intent.QUICK_TIP: "Practical advice and daily tips",
    Intent.PLAN_BUILDER: "Goal setting and habit formation",
    Intent.CRISIS: "Crisis intervention and urgent support",
    Intent.SMALL_TALK: "Casual conversation and general chat",
}


def default_classification() -> IntentClassification:
    """Conservative fallback used whenever classification fails."""
    return IntentClassification(intent=Intent.THERAPY_SUPPORT, confidence=0.5, language="en")


def describe_intent(intent: Intent | str) -> str:
    """Human-readable description of an intent."""
    try:
        return INTENT_DESCRIPTIONS[Intent(intent)]
    except ValueError:
        return "General support"


class IntentClassifier:
    """Classifies messages, caching successful results in the intent region."""

    def __init__(self, llm: LLMClient, prompts: PromptLibrary, cache: CacheRegion) -> None:
        self._llm = llm
        self._prompts = prompts
        self._cache = cache

    async def classify(
        self, message: str, last_turns: list[dict[str, str]] | None = None
    ) -> IntentClassification:
        """Classify *message* given the recent conversation.

        Never raises. Returns the default classification on backend failure,
        malformed output, an unknown label or confidence below 0.55.
        """
        recent = (last_turns or [])[-HISTORY_WINDOW:]
        cache_key = make_cache_key(message, recent, prefix="intent")

        cached, found = self._cache.get(cache_key)
        if found:
            return cached

        prompt = self._prompts.render(
            "intent_classification",
            message=message,
            history=format_history(recent, HISTORY_WINDOW),
            intent_descriptions="\n".join(
                f"- {intent.value}: {desc}" for intent, desc in INTENT_DESCRIPTIONS.items()
            ),
        )

        try:
            raw = await self._llm.complete(prompt, StageType.ROUTER)
            payload = parse_json_object(raw)
            classification = IntentClassification.model_validate(payload)
        except (SarthiException, ValidationError, TypeError, ValueError) as e:
            logger.warning("Intent classification failed, using default: %s", type(e).__name__)
            return default_classification()

        if classification.confidence < MIN_INTENT_CONFIDENCE:
            logger.debug(
                "Low intent confidence %.2f, treating as therapy_support",
                classification.confidence,
            )
            return default_classification()

        self._cache.set(cache_key, classification)
        return classification
