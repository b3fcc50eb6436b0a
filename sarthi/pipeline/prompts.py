"""Prompt templates for model-backed pipeline stages.

Templates are loaded once into the template cache region and rendered with
``str.format`` fields.
"""

import json
import logging
from typing import Any

from sarthi.core.cache import CacheLayer

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Sarthi, a warm, solution-oriented wellness companion. You validate feelings, "
    "offer small concrete steps, and never give medical diagnoses or clinical advice."
)

PROMPT_TEMPLATES: dict[str, str] = {
    "intent_classification": """Analyze this user message and classify the intent. Return JSON only.

Message: "{message}"
Recent context: {history}

Classify into one of these intents:
{intent_descriptions}

Return JSON: {{"intent": "intent_name", "confidence": 0.0-1.0, "language": "detected_language"}}""",
    "quick_tip_fast": """Provide a quick, practical tip for: "{message}"

Respond in {language} with:
- 1 sentence validation
- 2-3 actionable bullet points
- Keep under 100 words""",
    "response_composition": """Generate a warm, solution-oriented response.

Intent: {intent}
Language: {language}
{tool_section}
User Message: "{message}"

Respond in {language} with:
- 1-2 sentences validation
- 2-5 actionable bullet points
- Optional motivational nudge
- Keep under 180 words""",
    "response_validation": """Revise this response: "{response}"

User message: "{message}"
Intent: {intent}
Language: {language}

The response failed these checks:
{issues}

Return only the revised response text, in {language}, with bullet points for actions.""",
}


def format_history(history: list[dict[str, str]], limit: int = 3) -> str:
    """Render the last *limit* history messages as ``role: content`` lines."""
    recent = history[-limit:] if history else []
    if not recent:
        return "(none)"
    return "\n".join(f"{m.get('role', 'user')}: {m.get('content', '')}" for m in recent)


def format_tool_section(data: Any) -> str:
    if data is None:
        return ""
    return f"Tool Result: {json.dumps(data, ensure_ascii=False, default=str)}\n"


class PromptLibrary:
    """Renders named prompt templates, caching the template text."""

    def __init__(self, cache: CacheLayer, templates: dict[str, str] | None = None) -> None:
        self._cache = cache
        self._templates = templates or PROMPT_TEMPLATES

    def get_template(self, name: str) -> str:
        """Return template text for *name*, loading it into the cache on a miss.

        Raises:
            KeyError: If no template has that name.
        """
        key = f"prompt:{name}"
        cached, found = self._cache.templates.get(key)
        if found:
            return cached
        template = self._templates[name]
        self._cache.set_template(key, template)
        return template

    def render(self, name: str, **variables: Any) -> str:
        """Render template *name* with *variables*."""
        return self.get_template(name).format(**variables)
