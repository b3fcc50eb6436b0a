"""Conversation Pydantic models for Sarthi.

This module contains the per-turn models exchanged between pipeline stages
and returned to callers.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sarthi.models.safety import CrisisSeverity

# Below this confidence a classification is treated as ambiguous
MIN_INTENT_CONFIDENCE = 0.55


class Intent(str, Enum):
    """Conversational intent of a user message."""

    THERAPY_SUPPORT = "therapy_support"
    QUICK_TIP = "quick_tip"
    PLAN_BUILDER = "plan_builder"
    CRISIS = "crisis"
    SMALL_TALK = "small_talk"


class EmotionalTone(str, Enum):
    """Coarse emotional tone of a user message."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    CRISIS = "crisis"


class IntentClassification(BaseModel):
    """Intent label with confidence and detected language.

    Confidence is clamped into [0, 1] and any confidence below
    ``MIN_INTENT_CONFIDENCE`` forces ``therapy_support``.
    """

    intent: Intent
    confidence: float = Field(..., ge=0.0, le=1.0)
    language: str = "en"

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        """Clamp numeric confidence into [0, 1]."""
        return min(1.0, max(0.0, float(v)))

    @field_validator("language", mode="before")
    @classmethod
    def default_language(cls, v: Any) -> str:
        """Normalize empty or missing language codes to English."""
        if not v or not isinstance(v, str):
            return "en"
        return v.strip().lower() or "en"

    @model_validator(mode="after")
    def force_ambiguous_to_support(self) -> "IntentClassification":
        """Ambiguous input is always treated as needing supportive listening."""
        if self.confidence < MIN_INTENT_CONFIDENCE:
            self.intent = Intent.THERAPY_SUPPORT
        return self


class HistoryMessage(BaseModel):
    """One prior message in the conversation as sent by the caller."""

    role: str = Field(..., description="Either 'user' or 'assistant'")
    content: str = Field(..., description="Message text")


class TurnRecord(BaseModel):
    """One persisted turn. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    timestamp: datetime
    user_message: str
    language: str = "en"
    intent: Intent
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    tools_used: list[str] = Field(default_factory=list)
    response: str
    emotional_tone: EmotionalTone = EmotionalTone.NEUTRAL
    stress_level: float | None = None
    wellness_score: float | None = None
    crisis_severity: CrisisSeverity | None = None


class FinalResponse(BaseModel):
    """Caller-facing reply for one turn."""

    content: str
    intent: Intent
    is_crisis: bool = False
    crisis_severity: CrisisSeverity | None = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    language: str = "en"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tools_used: list[str] = Field(default_factory=list)
    turn_id: str | None = None


class StreamChunk(BaseModel):
    """One piece of a streamed reply. The last chunk has ``done=True``."""

    content: str = ""
    done: bool = False
    error: str | None = None
