"""Built-in wellness tools: micro-habits, action plans and resources."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from sarthi.models import ToolName
from sarthi.tools.base import Tool


class WellnessDomain(str, Enum):
    SLEEP = "sleep"
    EXERCISE = "exercise"
    MINDFULNESS = "mindfulness"
    SOCIAL = "social"
    NUTRITION = "nutrition"
    WORK = "work"
    RELATIONSHIPS = "relationships"


MICRO_HABITS: dict[WellnessDomain, list[str]] = {
    WellnessDomain.SLEEP: ["Go to bed 15 minutes earlier", "Avoid screens 1 hour before sleep"],
    WellnessDomain.EXERCISE: ["Take a 10-minute walk", "Do 5 push-ups"],
    WellnessDomain.MINDFULNESS: ["Take 3 deep breaths", "Notice 5 things you can see"],
    WellnessDomain.SOCIAL: ["Send a message to a friend", "Call family member"],
    WellnessDomain.NUTRITION: ["Drink a glass of water", "Eat one healthy snack"],
}

DEFAULT_HABITS = ["Take a deep breath"]


class MicroHabitsArgs(BaseModel):
    domain: WellnessDomain = Field(..., description="Wellness domain")


class SuggestMicroHabitsTool(Tool):
    name = ToolName.SUGGEST_MICRO_HABITS
    description = "Suggest micro-habits for a specific wellness domain"
    args_model = MicroHabitsArgs

    async def run(self, args: MicroHabitsArgs) -> list[str]:  # type: ignore[override]
        return list(MICRO_HABITS.get(args.domain, DEFAULT_HABITS))


class ActionPlanArgs(BaseModel):
    goal: str = Field(..., min_length=1, description="The goal to plan for")
    horizon: Literal["today", "week"] = Field("week", description="Time horizon for the plan")


PLAN_STEPS = {
    "today": (
        ["Break down the goal", "Set specific times", "Track progress"],
        ["10 minutes", "30 minutes", "5 minutes"],
    ),
    "week": (
        ["Break down the goal", "Set specific times", "Track progress", "Review at the end of the week"],
        ["10 minutes", "30 minutes a day", "5 minutes a day", "15 minutes"],
    ),
}


class CreateActionPlanTool(Tool):
    name = ToolName.CREATE_ACTION_PLAN
    description = "Create a structured action plan for a specific goal"
    args_model = ActionPlanArgs

    async def run(self, args: ActionPlanArgs) -> dict[str, Any]:  # type: ignore[override]
        steps, timebox = PLAN_STEPS[args.horizon]
        return {"goal": args.goal, "horizon": args.horizon, "steps": list(steps), "timebox": list(timebox)}


class ResourceType(str, Enum):
    ARTICLE = "article"
    VIDEO = "video"
    EXERCISE = "exercise"
    MEDITATION = "meditation"
    TOOL = "tool"
    COMMUNITY = "community"


class Resource(BaseModel):
    title: str
    url: str
    type: ResourceType
    description: str


class LookupResourcesArgs(BaseModel):
    topic: str = Field(..., min_length=1, description="Topic to search resources for")
    locale: str = Field("en", description="Language of the resources")


RESOURCE_CATALOG: dict[str, list[Resource]] = {
    "en": [
        Resource(
            title="Understanding stress and how to ease it",
            url="/articles/understanding-stress",
            type=ResourceType.ARTICLE,
            description="How stress shows up in the body and small ways to release it",
        ),
        Resource(
            title="Sleep hygiene basics",
            url="/articles/sleep-hygiene",
            type=ResourceType.ARTICLE,
            description="Simple evening habits for more restful sleep",
        ),
        Resource(
            title="Five-minute breathing practice",
            url="/articles/breathing-practice",
            type=ResourceType.EXERCISE,
            description="A guided breathing routine for anxious moments",
        ),
        Resource(
            title="Body scan meditation",
            url="/articles/body-scan",
            type=ResourceType.MEDITATION,
            description="A short meditation to notice and relax tension",
        ),
        Resource(
            title="Staying connected when you feel alone",
            url="/articles/loneliness",
            type=ResourceType.ARTICLE,
            description="Ways to rebuild connection with friends and family",
        ),
    ],
    "hi": [
        Resource(
            title="तनाव को समझना और कम करना",
            url="/articles/understanding-stress",
            type=ResourceType.ARTICLE,
            description="तनाव शरीर में कैसे दिखता है और उसे कम करने के छोटे तरीके",
        ),
        Resource(
            title="अच्छी नींद की आदतें",
            url="/articles/sleep-hygiene",
            type=ResourceType.ARTICLE,
            description="बेहतर नींद के लिए शाम की आसान आदतें",
        ),
        Resource(
            title="पांच मिनट का श्वास अभ्यास",
            url="/articles/breathing-practice",
            type=ResourceType.EXERCISE,
            description="बेचैनी के पलों के लिए श्वास अभ्यास",
        ),
    ],
}

RESOURCE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "/articles/understanding-stress": ("stress", "anxiety", "work", "तनाव"),
    "/articles/sleep-hygiene": ("sleep", "insomnia", "tired", "नींद"),
    "/articles/breathing-practice": ("anxiety", "panic", "breath", "calm", "सांस"),
    "/articles/body-scan": ("meditation", "mindfulness", "relax"),
    "/articles/loneliness": ("lonely", "loneliness", "alone", "social", "friends"),
}


class LookupResourcesTool(Tool):
    name = ToolName.LOOKUP_RESOURCES
    description = "Find relevant wellness resources for a specific topic"
    args_model = LookupResourcesArgs

    def __init__(self, catalog: dict[str, list[Resource]] | None = None) -> None:
        self._catalog = catalog or RESOURCE_CATALOG

    async def run(self, args: LookupResourcesArgs) -> list[dict[str, Any]]:  # type: ignore[override]
        resources = self._catalog.get(args.locale) or self._catalog["en"]
        topic = args.topic.lower()
        matches = [
            r for r in resources
            if any(kw in topic for kw in RESOURCE_KEYWORDS.get(r.url, ())) or topic in r.title.lower()
        ]
        return [r.model_dump(mode="json") for r in (matches or resources[:2])]
