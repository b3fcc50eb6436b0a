"""External tool collaborators available to the planner."""

from sarthi.tools.base import Tool
from sarthi.tools.checkins import (
    CheckinSource,
    CheckinSummary,
    FetchCheckinsTool,
    HttpCheckinSource,
    StaticCheckinSource,
)
from sarthi.tools.registry import ToolRegistry, build_default_registry, tool_definitions
from sarthi.tools.wellness import (
    CreateActionPlanTool,
    LookupResourcesTool,
    SuggestMicroHabitsTool,
    WellnessDomain,
)

__all__ = [
    "CheckinSource",
    "CheckinSummary",
    "CreateActionPlanTool",
    "FetchCheckinsTool",
    "HttpCheckinSource",
    "LookupResourcesTool",
    "StaticCheckinSource",
    "SuggestMicroHabitsTool",
    "Tool",
    "ToolRegistry",
    "WellnessDomain",
    "build_default_registry",
    "tool_definitions",
]
