"""Crisis detection Pydantic models for Sarthi.

This module contains the models produced by the Crisis Guardrail Engine.
"""

from enum import Enum

from pydantic import BaseModel, Field


class CrisisSeverity(str, Enum):
    """Ordinal urgency of a safety intervention (low < medium < high < critical)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in the severity ordering, 0 for low."""
        return _SEVERITY_ORDER.index(self)

    def at_least(self, other: "CrisisSeverity") -> bool:
        """Whether this severity is at or above *other*."""
        return self.rank >= other.rank


_SEVERITY_ORDER = [
    CrisisSeverity.LOW,
    CrisisSeverity.MEDIUM,
    CrisisSeverity.HIGH,
    CrisisSeverity.CRITICAL,
]


def max_severity(a: CrisisSeverity, b: CrisisSeverity) -> CrisisSeverity:
    """Return the more urgent of two severities."""
    return a if a.at_least(b) else b


class CrisisType(str, Enum):
    """Kind of crisis, listed in resolution priority order."""

    SUICIDAL = "suicidal"
    SELF_HARM = "self_harm"
    VIOLENCE = "violence"
    PANIC = "panic"
    ACUTE_DISTRESS = "acute_distress"


class CrisisDetection(BaseModel):
    """Result of a crisis check on one message."""

    is_crisis: bool = Field(..., description="Whether the message indicates a crisis")
    severity: CrisisSeverity = Field(CrisisSeverity.LOW, description="Detected severity")
    crisis_type: CrisisType | None = Field(None, description="Resolved crisis type")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Detector confidence")
    keywords: list[str] = Field(default_factory=list, description="Matched lexicon entries")
    language: str = Field("en", description="Language the message was scanned in")


class CrisisResponse(BaseModel):
    """Fixed, localized crisis intervention bundle."""

    immediate_response: str
    next_steps: list[str] = Field(default_factory=list)
    helpline_info: str
    breathing_exercise: str | None = None
    should_defer_advice: bool = False
    requires_human_intervention: bool = False
