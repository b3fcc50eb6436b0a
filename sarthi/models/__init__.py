"""Models package for the Sarthi pipeline."""

from sarthi.models.conversation import (
    MIN_INTENT_CONFIDENCE,
    EmotionalTone,
    FinalResponse,
    HistoryMessage,
    Intent,
    IntentClassification,
    StreamChunk,
    TurnRecord,
)
from sarthi.models.memory import (
    ContextSummary,
    ConversationEntry,
    CrisisEvent,
    IntentFrequency,
    ResponseStyle,
    Trend,
    UserPreferences,
    WellnessTrend,
)
from sarthi.models.planning import (
    ComposedReply,
    CriticResult,
    Plan,
    Strategy,
    ToolName,
    ToolResult,
    render_reply,
)
from sarthi.models.safety import (
    CrisisDetection,
    CrisisResponse,
    CrisisSeverity,
    CrisisType,
    max_severity,
)

__all__ = [
    "MIN_INTENT_CONFIDENCE",
    "ComposedReply",
    "ContextSummary",
    "ConversationEntry",
    "CrisisDetection",
    "CrisisEvent",
    "CrisisResponse",
    "CrisisSeverity",
    "CrisisType",
    "CriticResult",
    "EmotionalTone",
    "FinalResponse",
    "HistoryMessage",
    "Intent",
    "IntentClassification",
    "IntentFrequency",
    "Plan",
    "ResponseStyle",
    "StreamChunk",
    "Strategy",
    "ToolName",
    "ToolResult",
    "Trend",
    "TurnRecord",
    "UserPreferences",
    "WellnessTrend",
    "max_severity",
    "render_reply",
]
