"""Planning and composition Pydantic models for Sarthi.

This module contains the plan produced for a turn, the result of its
optional tool call, and the composed and critiqued reply.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from sarthi.models.conversation import Intent

BULLET = "• "


class ToolName(str, Enum):
    """Closed set of external tools a plan may call."""

    FETCH_CHECKINS = "fetch_checkins"
    SUGGEST_MICRO_HABITS = "suggest_micro_habits"
    CREATE_ACTION_PLAN = "create_action_plan"
    LOOKUP_RESOURCES = "lookup_resources"


class Strategy(str, Enum):
    """Response strategy selected by the planner."""

    EMPATHETIC_VALIDATION = "empathetic_validation"
    PRACTICAL_ADVICE = "practical_advice"
    STRUCTURED_PLANNING = "structured_planning"
    CRISIS_INTERVENTION = "crisis_intervention"
    CASUAL_CONVERSATION = "casual_conversation"


class Plan(BaseModel):
    """Strategy and optional single tool call for one turn."""

    intent: Intent
    tool_needed: bool = False
    tool_name: ToolName | None = None
    tool_args: dict[str, Any] | None = None
    strategy: Strategy

    @model_validator(mode="after")
    def check_tool_fields(self) -> "Plan":
        """Crisis plans never call tools; a tool call always names its tool."""
        if self.intent == Intent.CRISIS and self.tool_needed:
            raise ValueError("crisis plans must not call a tool")
        if self.tool_needed and self.tool_name is None:
            raise ValueError("tool_name is required when tool_needed is true")
        return self


class ToolResult(BaseModel):
    """Outcome of one tool call. Transient, never persisted."""

    success: bool
    data: Any = None
    error: str | None = None


class ComposedReply(BaseModel):
    """Structured reply: validation, bullet actions, nudge and call-to-action."""

    validation: str
    actions: list[str] = Field(..., min_length=2, max_length=5)
    nudge: str
    cta: str
    full_response: str = ""

    @model_validator(mode="after")
    def build_full_response(self) -> "ComposedReply":
        """Assemble the fixed layout from the four parts."""
        self.full_response = render_reply(self.validation, self.actions, self.nudge, self.cta)
        return self


def render_reply(validation: str, actions: list[str], nudge: str, cta: str) -> str:
    """Join reply parts into the fixed layout."""
    bullets = "\n".join(f"{BULLET}{action}" for action in actions)
    return f"{validation}\n\n{bullets}\n\n{nudge} {cta}"


class CriticResult(BaseModel):
    """Verdict of the quality checklist."""

    passed: bool
    failed_checks: list[str] = Field(default_factory=list)
    revised_response: str | None = None

    @model_validator(mode="after")
    def require_revision_on_failure(self) -> "CriticResult":
        """A failed verdict always carries a revision."""
        if not self.passed and self.revised_response is None:
            raise ValueError("revised_response is required when passed is false")
        return self
