"""Planner / Tool Dispatcher.

``Planner.plan`` maps an intent and message to a strategy and at most one
tool call through a fixed rule table. ``ToolDispatcher.dispatch`` runs that
call under the tool timeout and turns every failure into an unsuccessful
``ToolResult``.
"""

import logging
from typing import Any

from pydantic import ValidationError

from sarthi.core.exceptions import SarthiException
from sarthi.core.resilience import run_with_timeout
from sarthi.core.text import contains_any, extract_topic
from sarthi.models import Intent, IntentClassification, Plan, Strategy, ToolName, ToolResult
from sarthi.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DOMAINS = ["sleep", "exercise", "mindfulness", "social", "nutrition", "work", "relationships"]
DEFAULT_DOMAIN = "mindfulness"
GOAL_MAX_CHARS = 50

CHECKIN_TRIGGERS = ("stress", "anxiety")
HABIT_TRIGGERS = ("sleep", "exercise")
CAREER_TRIGGERS = ("resign", "job")
RESOURCE_TRIGGERS = ("resource", "article", "read")
TODAY_TRIGGERS = ("today", "now")

CHECKIN_DAYS = 7

STRATEGIES: dict[Intent, Strategy] = {
    Intent.THERAPY_SUPPORT: Strategy.EMPATHETIC_VALIDATION,
    Intent.QUICK_TIP: Strategy.PRACTICAL_ADVICE,
    Intent.PLAN_BUILDER: Strategy.STRUCTURED_PLANNING,
    Intent.CRISIS: Strategy.CRISIS_INTERVENTION,
    Intent.SMALL_TALK: Strategy.CASUAL_CONVERSATION,
}


def extract_domain(message: str) -> str:
    lowered = message.lower()
    return next((d for d in DOMAINS if d in lowered), DEFAULT_DOMAIN)


def extract_goal(message: str) -> str:
    message = message.strip()
    return message[:GOAL_MAX_CHARS] + "..." if len(message) > GOAL_MAX_CHARS else message


def extract_horizon(message: str) -> str:
    return "today" if contains_any(message, TODAY_TRIGGERS) else "week"


class Planner:
    """Deterministic rule table from intent and message to a Plan."""

    def plan(
        self,
        classification: IntentClassification,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> Plan:
        """Select a strategy and optional tool call.

        Args:
            classification: The turn's intent classification.
            message: The user's message.
            context: Turn context; ``user_id`` and ``language`` are used.
        """
        context = context or {}
        intent = classification.intent
        strategy = STRATEGIES[intent]

        if intent in (Intent.CRISIS, Intent.SMALL_TALK):
            return Plan(intent=intent, strategy=strategy)

        if intent == Intent.PLAN_BUILDER or contains_any(message, CAREER_TRIGGERS):
            return self._action_plan(intent, message)

        if intent == Intent.THERAPY_SUPPORT:
            if contains_any(message, RESOURCE_TRIGGERS):
                return Plan(
                    intent=intent,
                    strategy=strategy,
                    tool_needed=True,
                    tool_name=ToolName.LOOKUP_RESOURCES,
                    tool_args={
                        "topic": extract_topic(message),
                        "locale": context.get("language") or "en",
                    },
                )
            if contains_any(message, CHECKIN_TRIGGERS):
                return Plan(
                    intent=intent,
                    strategy=strategy,
                    tool_needed=True,
                    tool_name=ToolName.FETCH_CHECKINS,
                    tool_args={"user_id": context.get("user_id", ""), "days": CHECKIN_DAYS},
                )

        if intent == Intent.QUICK_TIP and contains_any(message, HABIT_TRIGGERS):
            return Plan(
                intent=intent,
                strategy=strategy,
                tool_needed=True,
                tool_name=ToolName.SUGGEST_MICRO_HABITS,
                tool_args={"domain": extract_domain(message)},
            )

        return Plan(intent=intent, strategy=strategy)

    @staticmethod
    def _action_plan(intent: Intent, message: str) -> Plan:
        return Plan(
            intent=intent,
            strategy=Strategy.STRUCTURED_PLANNING,
            tool_needed=True,
            tool_name=ToolName.CREATE_ACTION_PLAN,
            tool_args={"goal": extract_goal(message), "horizon": extract_horizon(message)},
        )


class ToolDispatcher:
    """Runs a plan's single tool call. Never raises."""

    def __init__(self, registry: ToolRegistry, timeout: float = 5.0) -> None:
        self._registry = registry
        self._timeout = timeout

    async def aclose(self) -> None:
        await self._registry.aclose()

    async def dispatch(self, plan: Plan) -> ToolResult:
        if not plan.tool_needed or plan.tool_name is None:
            return ToolResult(success=False, error="No tool requested")

        tool_name = plan.tool_name.value
        try:
            tool = self._registry.get(plan.tool_name)
            args = tool.parse_args(plan.tool_args)
            data = await run_with_timeout(tool.run(args), self._timeout, f"tool:{tool_name}")
        except SarthiException as e:
            logger.warning("Tool %s failed: %s", tool_name, e.message)
            return ToolResult(success=False, error=e.message)
        except ValidationError as e:
            logger.warning("Tool %s rejected arguments: %d errors", tool_name, e.error_count())
            return ToolResult(success=False, error=f"Invalid arguments for {tool_name}")
        except Exception as e:
            logger.exception("Tool %s raised unexpectedly", tool_name)
            return ToolResult(success=False, error=f"Tool execution failed: {type(e).__name__}")

        logger.debug("Tool %s succeeded", tool_name)
        return ToolResult(success=True, data=data)
