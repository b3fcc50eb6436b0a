"""Crisis Guardrail Engine.

Detects crisis indicators in a user message with a weighted keyword scan,
optionally confirmed by the language model, and produces the fixed,
localized crisis response that replaces normal composition.

Severity floors applied after scoring:
- any high-weight keyword  -> at least ``high``
- a high-weight keyword of a suicidal crisis -> ``critical``
"""

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sarthi.core.exceptions import SarthiException
from sarthi.core.llm import LLMClient, parse_json_object
from sarthi.core.model_config import StageType
from sarthi.models import (
    CrisisDetection,
    CrisisResponse,
    CrisisSeverity,
    CrisisType,
    max_severity,
)
from sarthi.safety.lexicons import (
    CRISIS_BUNDLES,
    CRISIS_KEYWORDS,
    CRISIS_TYPE_CUSTOMIZATIONS,
    CRISIS_TYPE_MARKERS,
    DEFAULT_LANGUAGE,
    HELPLINE_SUFFIX,
    HIGH_SEVERITY_KEYWORDS,
    KEYWORD_WEIGHTS,
    MEDIUM_SEVERITY_KEYWORDS,
    SEVERITY_THRESHOLDS,
)

logger = logging.getLogger(__name__)

# Safety audit trail. Records never contain message text.
audit_logger = logging.getLogger("sarthi.safety.audit")

# Model check runs when keyword confidence exceeds this or anything matched
MODEL_CHECK_CONFIDENCE = 0.3
CONFIDENCE_PER_MATCH = 0.3
MAX_KEYWORD_CONFIDENCE = 0.9

CRISIS_CHECK_PROMPT = """Analyze this message for crisis indicators. Return JSON only.

Message: "{message}"
Language: {language}

Check for:
- Self-harm or suicidal thoughts
- Acute mental health crisis
- Violence towards self or others
- Panic or extreme distress
- Urgent need for help

Return JSON: {{
  "isCrisis": boolean,
  "severity": "low|medium|high|critical",
  "confidence": 0.0-1.0,
  "crisisType": "self_harm|suicidal|violence|acute_distress|panic|null",
  "reasoning": "brief explanation"
}}"""


class _ModelVerdict(BaseModel):
    """Strict shape of the model's crisis verdict."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_crisis: bool = Field(..., alias="isCrisis")
    severity: CrisisSeverity
    confidence: float = Field(..., ge=0.0, le=1.0)
    crisis_type: CrisisType | None = Field(None, alias="crisisType")


def keyword_weight(keyword: str) -> float:
    """Weight of a matched keyword by severity class."""
    lowered = keyword.lower()
    if any(high in lowered for high in HIGH_SEVERITY_KEYWORDS):
        return KEYWORD_WEIGHTS["high"]
    if any(medium in lowered for medium in MEDIUM_SEVERITY_KEYWORDS):
        return KEYWORD_WEIGHTS["medium"]
    return KEYWORD_WEIGHTS["low"]


def severity_for_score(score: float) -> CrisisSeverity:
    """First severity threshold crossed by *score*."""
    for threshold, severity in SEVERITY_THRESHOLDS:
        if score >= threshold:
            return severity
    return CrisisSeverity.LOW


def determine_crisis_type(keywords: list[str]) -> CrisisType | None:
    """Resolve the crisis type by fixed priority over matched keywords."""
    lowered = [k.lower() for k in keywords]
    for crisis_type, markers in CRISIS_TYPE_MARKERS:
        if any(marker in keyword for keyword in lowered for marker in markers):
            return crisis_type
    return None


class CrisisGuardrailEngine:
    """Keyword and model-based crisis detector with fixed responses.

    Args:
        llm: Language model client for the optional confirmation check.
        enable_model_check: Whether to run the model check at all.
        helpline_name: Helpline name shown in every response.
        helpline_number: Helpline number shown in every response.
        lexicons: Per-language keyword lists; defaults to the built-in ones.
    """

    def __init__(
        self,
        llm: LLMClient | None = None,
        enable_model_check: bool = True,
        helpline_name: str = "KIRAN",
        helpline_number: str = "1800-599-0019",
        lexicons: dict[str, list[str]] | None = None,
    ) -> None:
        self._llm = llm
        self._enable_model_check = enable_model_check
        self._helpline_name = helpline_name
        self._helpline_number = helpline_number
        self._lexicons = lexicons or CRISIS_KEYWORDS

    @property
    def helpline(self) -> str:
        """Helpline name and number as shown to users."""
        return f"{self._helpline_name}: {self._helpline_number}"

    async def detect(self, message: str, language: str = DEFAULT_LANGUAGE) -> CrisisDetection:
        """Detect crisis indicators in *message*.

        Never raises: a failing model check is ignored and the keyword
        result stands.
        """
        keyword_detection = self.detect_keywords(message, language)

        if not self._should_run_model_check(keyword_detection):
            return keyword_detection

        model_detection = await self._detect_with_model(message, language)
        if model_detection is None:
            return keyword_detection
        return self.combine(keyword_detection, model_detection)

    def scan_terms(self, language: str = DEFAULT_LANGUAGE) -> list[str]:
        """Keywords scanned for *language*.

        The language's own lexicon, then the English one, then every
        high-weight keyword, without duplicates. Users mix languages, so a
        high-weight keyword is caught whatever language the turn is in.
        """
        ordered = [
            *self._lexicons.get(language, []),
            *self._lexicons[DEFAULT_LANGUAGE],
            *HIGH_SEVERITY_KEYWORDS,
        ]
        return list(dict.fromkeys(kw.lower() for kw in ordered))

    def detect_keywords(self, message: str, language: str = DEFAULT_LANGUAGE) -> CrisisDetection:
        """Weighted keyword scan over the terms for *language*."""
        lowered = message.lower()

        found = [kw for kw in self.scan_terms(language) if kw in lowered]
        weights = [keyword_weight(kw) for kw in found]
        score = sum(weights)

        severity = severity_for_score(score)
        crisis_type = determine_crisis_type(found)

        if any(w >= KEYWORD_WEIGHTS["high"] for w in weights):
            floor = CrisisSeverity.CRITICAL if crisis_type == CrisisType.SUICIDAL else CrisisSeverity.HIGH
            severity = max_severity(severity, floor)

        return CrisisDetection(
            is_crisis=bool(found),
            severity=severity,
            crisis_type=crisis_type,
            confidence=min(MAX_KEYWORD_CONFIDENCE, len(found) * CONFIDENCE_PER_MATCH),
            keywords=found,
            language=language,
        )

    def _should_run_model_check(self, detection: CrisisDetection) -> bool:
        if not self._enable_model_check or self._llm is None or not self._llm.available:
            return False
        return detection.confidence > MODEL_CHECK_CONFIDENCE or bool(detection.keywords)

    async def _detect_with_model(self, message: str, language: str) -> CrisisDetection | None:
        """Ask the model for a verdict; ``None`` on any failure."""
        prompt = CRISIS_CHECK_PROMPT.format(message=message.replace('"', "'"), language=language)
        try:
            raw = await self._llm.complete(prompt, StageType.GUARDRAIL)  # type: ignore[union-attr]
            verdict = _ModelVerdict.model_validate(parse_json_object(raw))
        except (SarthiException, ValidationError) as e:
            logger.info("Model crisis check ignored: %s", type(e).__name__)
            return None

        return CrisisDetection(
            is_crisis=verdict.is_crisis,
            severity=verdict.severity,
            crisis_type=verdict.crisis_type,
            confidence=verdict.confidence,
            keywords=[],
            language=language,
        )

    @staticmethod
    def combine(keyword: CrisisDetection, model: CrisisDetection) -> CrisisDetection:
        """Combine keyword and model detections.

        The higher-confidence source wins; ties favour the keyword scan.
        A winning model verdict can raise severity or set a crisis, but never
        lowers the keyword severity or clears a keyword-detected crisis.
        """
        if model.confidence <= keyword.confidence:
            return keyword

        return keyword.model_copy(
            update={
                "is_crisis": model.is_crisis or keyword.is_crisis,
                "severity": max_severity(keyword.severity, model.severity),
                "confidence": model.confidence,
                "crisis_type": model.crisis_type or keyword.crisis_type,
            }
        )

    def generate_crisis_response(
        self, detection: CrisisDetection, language: str = DEFAULT_LANGUAGE
    ) -> CrisisResponse:
        """Build the localized response bundle for a detection."""
        lang = language if language in CRISIS_BUNDLES else DEFAULT_LANGUAGE
        bundle = CRISIS_BUNDLES[lang][detection.severity]

        immediate = self._fill(bundle["immediate_response"])
        steps = [self._fill(step) for step in bundle["next_steps"]]
        breathing = bundle["breathing_exercise"]

        if detection.crisis_type is not None:
            custom = CRISIS_TYPE_CUSTOMIZATIONS[lang].get(detection.crisis_type, {})
            if "append_immediate" in custom:
                immediate += custom["append_immediate"]
            if "replace_steps" in custom:
                steps = list(custom["replace_steps"])
            steps = list(custom.get("prepend", [])) + steps + list(custom.get("append", []))
            breathing = custom.get("breathing_exercise", breathing)

        return CrisisResponse(
            immediate_response=immediate,
            next_steps=steps,
            helpline_info=f"{self.helpline} {HELPLINE_SUFFIX[lang]}",
            breathing_exercise=breathing,
            should_defer_advice=bundle["should_defer_advice"],
            requires_human_intervention=bundle["requires_human_intervention"],
        )

    def override_with_crisis_response(
        self, detection: CrisisDetection, language: str, message: str
    ) -> str:
        """Audit the detection and return the text that replaces composition.

        The text is the immediate response, the next steps as bullets, the
        breathing exercise when present, and the helpline line.
        """
        response = self.generate_crisis_response(detection, language)
        self.log_crisis_detection(detection, message)

        parts = [response.immediate_response]
        if response.next_steps:
            parts.append("\n".join(f"• {step}" for step in response.next_steps))
        if response.breathing_exercise:
            parts.append(response.breathing_exercise)
        parts.append(response.helpline_info)
        return "\n\n".join(parts)

    def log_crisis_detection(self, detection: CrisisDetection, message: str) -> None:
        """Emit the safety audit record. Only the message length is logged."""
        audit: dict[str, Any] = {
            "severity": detection.severity.value,
            "crisis_type": detection.crisis_type.value if detection.crisis_type else None,
            "confidence": detection.confidence,
            "keywords": list(detection.keywords),
            "timestamp": datetime.now(UTC).isoformat(),
            "message_length": len(message),
        }
        audit_logger.warning("Crisis detected", extra={"crisis": audit})

    def _fill(self, text: str) -> str:
        return text.format(name=self._helpline_name, number=self._helpline_number)
