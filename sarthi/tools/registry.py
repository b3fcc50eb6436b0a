"""Closed registry of tools keyed by ``ToolName``."""

import logging
from collections.abc import Iterable
from typing import Any

from sarthi.core.exceptions import UnknownToolError
from sarthi.models import ToolName
from sarthi.tools.base import Tool
from sarthi.tools.checkins import CheckinSource, FetchCheckinsTool
from sarthi.tools.wellness import CreateActionPlanTool, LookupResourcesTool, SuggestMicroHabitsTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Explicit mapping from tool name to tool instance."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[ToolName, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            logger.warning("Replacing registered tool %s", tool.name.value)
        self._tools[tool.name] = tool

    def get(self, name: ToolName | str) -> Tool:
        """Resolve a tool by name.

        Raises:
            UnknownToolError: If the name is not a known, registered tool.
        """
        try:
            return self._tools[ToolName(name)]
        except (ValueError, KeyError):
            raise UnknownToolError(str(getattr(name, "value", name))) from None

    def __contains__(self, name: object) -> bool:
        try:
            return ToolName(name) in self._tools  # type: ignore[arg-type]
        except ValueError:
            return False

    @property
    def names(self) -> list[str]:
        return [name.value for name in self._tools]

    async def aclose(self) -> None:
        for tool in self._tools.values():
            await tool.aclose()

    def definitions(self) -> list[dict[str, Any]]:
        """JSON-schema definitions for every registered tool."""
        return [tool.definition() for tool in self._tools.values()]


def build_default_registry(checkin_source: CheckinSource | None = None) -> ToolRegistry:
    """Registry holding the four built-in tools."""
    return ToolRegistry(
        [
            FetchCheckinsTool(checkin_source),
            SuggestMicroHabitsTool(),
            CreateActionPlanTool(),
            LookupResourcesTool(),
        ]
    )


def tool_definitions() -> list[dict[str, Any]]:
    """Definitions of the built-in tools."""
    return build_default_registry().definitions()
