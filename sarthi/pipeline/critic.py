"""Critic / Validator.

Runs a fixed quality checklist over a composed reply and, when any check
fails, produces a revision: first from the language model, then from
deterministic text patches.
"""

import logging
import re
from dataclasses import dataclass

from sarthi.core.exceptions import SarthiException
from sarthi.core.llm import LLMClient
from sarthi.core.model_config import StageType
from sarthi.models import CriticResult, Intent
from sarthi.pipeline import critic_rules as rules
from sarthi.pipeline.composer import language_name
from sarthi.pipeline.prompts import PromptLibrary

logger = logging.getLogger(__name__)

DEVANAGARI = re.compile(r"[\u0900-\u097F]")
NON_ASCII = re.compile(r"[^\x00-\x7F]")
ENGLISH_WORD = re.compile(r"\b[a-z]+\b")
BULLET_LINE = re.compile(r"^-|•|\*", re.MULTILINE)
VAGUE = re.compile(r"\b(" + "|".join(map(re.escape, rules.VAGUE_PHRASES)) + r")\b")
IMPERATIVES = re.compile(r"\b(" + "|".join(rules.IMPERATIVE_VERBS) + r")\b")

MIN_DEVANAGARI_CHARS = 5
NON_ASCII_RATIO = 0.3


def _phrases(table: dict[str, list[str]], language: str) -> list[str]:
    if language == "en":
        return table["en"]
    return table.get(language, []) + table["en"]


def _contains_term(lowered: str, term: str) -> bool:
    """Whole-word match for ASCII terms, substring match otherwise."""
    if term.isascii():
        return re.search(rf"\b{re.escape(term)}s?\b", lowered) is not None
    return term in lowered


def check_empathy(response: str, language: str = "en") -> bool:
    lowered = response.lower()
    return any(phrase in lowered for phrase in _phrases(rules.EMPATHY_PHRASES, language))


def check_concrete_steps(response: str, language: str = "en") -> bool:
    lowered = response.lower()
    if any(symbol in lowered for symbol in rules.STEP_SYMBOLS):
        return True
    return any(_contains_term(lowered, word) for word in _phrases(rules.STEP_WORDS, language))


def check_language_consistency(response: str, language: str) -> bool:
    """Script heuristic: English must be mostly ASCII, Hindi must use Devanagari."""
    if language == "en":
        english_words = ENGLISH_WORD.findall(response.lower())
        return len(NON_ASCII.findall(response)) < len(english_words) * NON_ASCII_RATIO
    if language == "hi":
        return len(DEVANAGARI.findall(response)) > MIN_DEVANAGARI_CHARS
    return True


def find_medical_terms(response: str, language: str = "en") -> list[str]:
    lowered = response.lower()
    return [term for term in _phrases(rules.MEDICAL_TERMS, language) if _contains_term(lowered, term)]


@dataclass(frozen=True)
class ActionAssessment:
    """Counts behind ``Critic.is_action_weak``."""

    ok: bool
    bullet_count: int
    imperative_verbs: int
    vague_hits: int
    too_long: bool


class Critic:
    """Quality gate with best-effort revision."""

    def __init__(self, llm: LLMClient | None = None, prompts: PromptLibrary | None = None) -> None:
        self._llm = llm
        self._prompts = prompts

    def run_checklist(self, response: str, language: str) -> dict[str, bool]:
        """Evaluate every check. ``has_medical_claims`` passes when no term is found."""
        return {
            "is_empathetic": check_empathy(response, language),
            "has_concrete_steps": check_concrete_steps(response, language),
            "is_language_consistent": check_language_consistency(response, language),
            "has_medical_claims": not find_medical_terms(response, language),
        }

    async def critique(
        self,
        response: str,
        intent: Intent | str,
        language: str,
        original_message: str,
    ) -> CriticResult:
        """Validate *response* and revise it when any check fails."""
        checklist = self.run_checklist(response, language)
        failed = [name for name, ok in checklist.items() if not ok]
        if not failed:
            return CriticResult(passed=True)

        logger.debug("Critic failed checks: %s", ", ".join(failed))
        revised = await self._revise_with_model(response, failed, intent, language, original_message)
        if revised is None:
            revised = self.apply_patches(response, failed, language)

        return CriticResult(passed=False, failed_checks=failed, revised_response=revised)

    async def _revise_with_model(
        self,
        response: str,
        failed: list[str],
        intent: Intent | str,
        language: str,
        original_message: str,
    ) -> str | None:
        if self._llm is None or self._prompts is None or not self._llm.available:
            return None

        lang_name = language_name(language)
        issues = "\n".join(
            f"- {rules.CHECK_ISSUES[check].format(language=lang_name)}" for check in failed
        )
        prompt = self._prompts.render(
            "response_validation",
            response=response,
            message=original_message,
            intent=getattr(intent, "value", intent),
            language=lang_name,
            issues=issues,
        )
        try:
            revised = await self._llm.complete(prompt, StageType.CRITIC)
        except SarthiException as e:
            logger.warning("Model revision failed, applying patches: %s", e.code)
            return None

        revised = revised.strip()
        return revised or None

    def apply_patches(self, response: str, failed: list[str], language: str) -> str:
        """Deterministic fixes per failed check.

        Returns the original response if patching itself fails.
        """
        try:
            revised = response
            if "has_medical_claims" in failed:
                revised = self.replace_medical_terms(revised, language)
            if "is_empathetic" in failed:
                revised = rules.EMPATHETIC_OPENERS.get(language, rules.EMPATHETIC_OPENERS["en"]) + revised
            if "has_concrete_steps" in failed:
                revised += rules.FIXED_STEPS.get(language, rules.FIXED_STEPS["en"])
            return revised
        except Exception:
            logger.exception("Critic patch rules failed, keeping original response")
            return response

    @staticmethod
    def replace_medical_terms(response: str, language: str = "en") -> str:
        """Swap clinical terms for neutral wording, preserving a plural ``s``."""
        revised = response
        for term in _phrases(rules.MEDICAL_TERMS, language):
            synonym = rules.MEDICAL_SYNONYMS.get(term, "support")
            if term.isascii():
                revised = re.sub(
                    rf"\b{re.escape(term)}(s?)\b",
                    lambda m, s=synonym: s + m.group(1),
                    revised,
                    flags=re.IGNORECASE,
                )
            else:
                revised = revised.replace(term, synonym)
        return revised

    def quick_validate(self, response: str, language: str = "en") -> dict[str, bool]:
        """Empathy, steps and medical-term flags without revision."""
        return {
            "empathy": check_empathy(response, language),
            "steps": check_concrete_steps(response, language),
            "medical": bool(find_medical_terms(response, language)),
        }

    @staticmethod
    def is_action_weak(response: str) -> ActionAssessment:
        """Flag empathy-only or vague replies.

        A reply is strong with at least two bullets, three imperative verbs,
        at most two vague phrases and no more than 1200 characters.
        """
        lowered = response.lower()
        bullet_count = len(BULLET_LINE.findall(response))
        imperative_verbs = len(IMPERATIVES.findall(lowered))
        vague_hits = len(VAGUE.findall(lowered))
        too_long = len(response) > rules.MAX_RESPONSE_CHARS

        ok = (
            bullet_count >= rules.MIN_BULLETS
            and imperative_verbs >= rules.MIN_IMPERATIVES
            and vague_hits <= rules.MAX_VAGUE_HITS
            and not too_long
        )
        return ActionAssessment(
            ok=ok,
            bullet_count=bullet_count,
            imperative_verbs=imperative_verbs,
            vague_hits=vague_hits,
            too_long=too_long,
        )
