"""Context memory Pydantic models for Sarthi."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from sarthi.models.conversation import EmotionalTone, Intent
from sarthi.models.safety import CrisisSeverity


class Trend(str, Enum):
    """Direction of recent wellness scores."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class ResponseStyle(str, Enum):
    """Preferred reply length inferred from past responses."""

    DETAILED = "detailed"
    CONCISE = "concise"
    CASUAL = "casual"


class IntentFrequency(BaseModel):
    intent: Intent
    frequency: int = 0
    last_occurrence: datetime


class WellnessTrend(BaseModel):
    current_score: float = 0.0
    average_score: float = 0.0
    trend: Trend = Trend.STABLE
    last_checkin: datetime | None = None


class CrisisEvent(BaseModel):
    date: datetime
    severity: CrisisSeverity
    resolved: bool = False
    helpline_used: bool = False


class ConversationEntry(BaseModel):
    date: datetime
    topic: str = "general"
    emotional_tone: EmotionalTone = EmotionalTone.NEUTRAL
    tools_used: list[str] = Field(default_factory=list)


class UserPreferences(BaseModel):
    language: str = "en"
    response_style: ResponseStyle = ResponseStyle.CONCISE
    preferred_topics: list[str] = Field(default_factory=list)
    avoided_topics: list[str] = Field(default_factory=list)


class ContextSummary(BaseModel):
    """Rolling summary of a user's recent turns."""

    user_id: str
    recent_intents: list[IntentFrequency] = Field(default_factory=list, max_length=5)
    wellness_trend: WellnessTrend = Field(default_factory=WellnessTrend)
    crisis_history: list[CrisisEvent] = Field(default_factory=list)
    conversation_history: list[ConversationEntry] = Field(default_factory=list, max_length=20)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    last_updated: datetime
