"""Tests for the Crisis Guardrail Engine."""

import json
import logging

import pytest

from sarthi.core.exceptions import BackendTimeout
from sarthi.models import CrisisDetection, CrisisSeverity, CrisisType, max_severity
from sarthi.safety.guardrails import (
    CrisisGuardrailEngine,
    determine_crisis_type,
    keyword_weight,
    severity_for_score,
)
from sarthi.safety.lexicons import HIGH_SEVERITY_KEYWORDS
from tests.conftest import make_llm


def _verdict(**overrides) -> str:
    payload = {
        "isCrisis": True,
        "severity": "high",
        "confidence": 0.9,
        "crisisType": "suicidal",
        "reasoning": "explicit ideation",
    }
    payload.update(overrides)
    return json.dumps(payload)


class TestKeywordScoring:
    """Tests for the weighting helpers."""

    def test_keyword_weights(self) -> None:
        """High, medium and other keywords weigh 2, 1 and 0.5."""
        assert keyword_weight("kill myself") == 2.0
        assert keyword_weight("cut myself") == 1.0
        assert keyword_weight("hopeless") == 0.5

    @pytest.mark.parametrize(
        ("score", "severity"),
        [
            (0.0, CrisisSeverity.LOW),
            (1.5, CrisisSeverity.LOW),
            (2.0, CrisisSeverity.MEDIUM),
            (3.0, CrisisSeverity.HIGH),
            (4.5, CrisisSeverity.CRITICAL),
        ],
    )
    def test_severity_thresholds(self, score: float, severity: CrisisSeverity) -> None:
        """Scores map onto the first threshold they reach."""
        assert severity_for_score(score) == severity

    def test_crisis_type_priority(self) -> None:
        """Suicidal markers win over panic markers."""
        assert determine_crisis_type(["panic attack", "want to die"]) == CrisisType.SUICIDAL
        assert determine_crisis_type(["panic attack"]) == CrisisType.PANIC
        assert determine_crisis_type(["emergency"]) is None

    @pytest.mark.parametrize(
        ("keywords", "crisis_type"),
        [
            (["kill someone"], CrisisType.VIOLENCE),
            (["hurt someone"], CrisisType.VIOLENCE),
            (["किसी को मार दूंगा"], CrisisType.VIOLENCE),
            (["hurt myself", "want to hurt"], CrisisType.SELF_HARM),
            (["खुद को मार लूंगा"], CrisisType.SUICIDAL),
            (["kill someone", "kill myself"], CrisisType.SUICIDAL),
        ],
    )
    def test_self_and_other_directed_types(self, keywords: list[str], crisis_type: CrisisType) -> None:
        """Harm aimed at others resolves to violence, harm aimed at the self does not."""
        assert determine_crisis_type(keywords) == crisis_type

    def test_max_severity(self) -> None:
        """The more urgent severity wins regardless of argument order."""
        assert CrisisSeverity.HIGH.at_least(CrisisSeverity.MEDIUM)
        assert CrisisSeverity.HIGH.at_least(CrisisSeverity.HIGH)
        assert not CrisisSeverity.LOW.at_least(CrisisSeverity.MEDIUM)
        assert max_severity(CrisisSeverity.LOW, CrisisSeverity.CRITICAL) == CrisisSeverity.CRITICAL
        assert max_severity(CrisisSeverity.CRITICAL, CrisisSeverity.LOW) == CrisisSeverity.CRITICAL


class TestDetectKeywords:
    """Tests for the keyword scan."""

    def test_explicit_suicidal_statement_is_critical(self) -> None:
        """A high-weight suicidal keyword floors severity at critical."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords("I want to kill myself", "en")

        assert detection.is_crisis is True
        assert detection.severity == CrisisSeverity.CRITICAL
        assert detection.crisis_type == CrisisType.SUICIDAL
        assert "kill myself" in detection.keywords

    def test_high_weight_non_suicidal_is_at_least_high(self) -> None:
        """Any high-weight keyword floors severity at high."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords("I think I'm having a panic attack", "en")

        assert detection.severity == CrisisSeverity.HIGH
        assert detection.crisis_type == CrisisType.PANIC

    def test_low_weight_match_is_low_crisis(self) -> None:
        """A single low-weight keyword flags a low-severity crisis."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords("Everything feels hopeless", "en")

        assert detection.is_crisis is True
        assert detection.severity == CrisisSeverity.LOW
        assert detection.confidence == pytest.approx(0.3)

    def test_calm_message_is_not_crisis(self) -> None:
        """No keyword means no crisis."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords("I had a lovely walk in the park", "en")

        assert detection.is_crisis is False
        assert detection.severity == CrisisSeverity.LOW
        assert detection.keywords == []
        assert detection.confidence == 0.0

    def test_case_insensitive(self) -> None:
        """Matching ignores case."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        assert engine.detect_keywords("I WANT TO DIE", "en").is_crisis is True

    def test_hindi_lexicon(self) -> None:
        """Hindi messages are scanned with the Hindi lexicon."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords("मैं आत्महत्या के बारे में सोच रहा हूं", "hi")

        assert detection.severity == CrisisSeverity.CRITICAL
        assert detection.crisis_type == CrisisType.SUICIDAL

    def test_unknown_language_uses_english(self) -> None:
        """Languages without a lexicon fall back to English."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        assert engine.detect_keywords("I want to kill myself", "fr").is_crisis is True

    @pytest.mark.parametrize("language", ["hi", "es"])
    def test_english_crisis_text_in_other_languages(self, language: str) -> None:
        """English phrases are caught when the turn is tagged with another language."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords("I want to kill myself", language)

        assert detection.is_crisis is True
        assert detection.severity == CrisisSeverity.CRITICAL
        assert detection.crisis_type == CrisisType.SUICIDAL
        assert detection.language == language

    @pytest.mark.parametrize("language", ["en", "hi", "es"])
    @pytest.mark.parametrize("keyword", HIGH_SEVERITY_KEYWORDS)
    def test_every_high_weight_keyword_in_every_language(self, keyword: str, language: str) -> None:
        """A high-weight keyword is a crisis of at least high severity in any language."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords(f"honestly, {keyword} today", language)

        assert detection.is_crisis is True
        assert detection.severity.at_least(CrisisSeverity.HIGH)

    def test_scan_terms_have_no_duplicates(self) -> None:
        """The requested lexicon comes first and shared terms appear once."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        terms = engine.scan_terms("hi")

        assert len(terms) == len(set(terms))
        assert terms.index("आत्महत्या") < terms.index("kill myself")
        assert set(HIGH_SEVERITY_KEYWORDS) <= set(terms)

    def test_confidence_is_capped(self) -> None:
        """Keyword confidence never exceeds 0.9."""
        engine = CrisisGuardrailEngine(enable_model_check=False)
        detection = engine.detect_keywords(
            "suicide, I want to die, kill myself, end my life, no way out", "en"
        )
        assert detection.confidence == 0.9


class TestCombine:
    """Tests for merging keyword and model detections."""

    def _keyword(self, **kwargs) -> CrisisDetection:
        data = {"is_crisis": True, "severity": CrisisSeverity.HIGH, "confidence": 0.3, "keywords": ["x"]}
        data.update(kwargs)
        return CrisisDetection(**data)

    def test_keyword_wins_ties(self) -> None:
        """Equal confidence keeps the keyword result."""
        keyword = self._keyword(confidence=0.6)
        model = CrisisDetection(is_crisis=False, severity=CrisisSeverity.LOW, confidence=0.6)
        assert CrisisGuardrailEngine.combine(keyword, model) == keyword

    def test_model_raises_severity(self) -> None:
        """A more confident model verdict can raise severity."""
        model = CrisisDetection(
            is_crisis=True, severity=CrisisSeverity.CRITICAL, confidence=0.9, crisis_type=CrisisType.SUICIDAL
        )
        combined = CrisisGuardrailEngine.combine(self._keyword(), model)

        assert combined.severity == CrisisSeverity.CRITICAL
        assert combined.confidence == 0.9
        assert combined.crisis_type == CrisisType.SUICIDAL
        assert combined.keywords == ["x"]

    def test_model_never_lowers_or_clears(self) -> None:
        """A confident 'no crisis' verdict cannot undo the keyword result."""
        model = CrisisDetection(is_crisis=False, severity=CrisisSeverity.LOW, confidence=0.95)
        combined = CrisisGuardrailEngine.combine(self._keyword(), model)

        assert combined.is_crisis is True
        assert combined.severity == CrisisSeverity.HIGH


class TestDetect:
    """Tests for the full detection flow."""

    @pytest.mark.asyncio
    async def test_model_check_skipped_without_keywords(self) -> None:
        """No keyword hits means no model call."""
        llm = make_llm(_verdict())
        engine = CrisisGuardrailEngine(llm=llm)

        detection = await engine.detect("What a sunny morning", "en")

        assert detection.is_crisis is False
        llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_model_check_combines_with_keywords(self) -> None:
        """A keyword hit triggers the model check and the verdicts merge."""
        llm = make_llm(_verdict(severity="critical", confidence=0.95))
        engine = CrisisGuardrailEngine(llm=llm)

        detection = await engine.detect("Everything feels hopeless", "en")

        assert detection.severity == CrisisSeverity.CRITICAL
        assert detection.confidence == 0.95
        llm.complete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_model_failure_keeps_keyword_result(self) -> None:
        """A failing model check is ignored."""
        llm = make_llm(BackendTimeout("guardrail", 12.0))
        engine = CrisisGuardrailEngine(llm=llm)

        detection = await engine.detect("I want to kill myself", "en")

        assert detection.severity == CrisisSeverity.CRITICAL
        assert detection.confidence == pytest.approx(0.3)

    @pytest.mark.asyncio
    async def test_malformed_model_output_is_ignored(self) -> None:
        """Unparseable or invalid verdicts are ignored."""
        llm = make_llm(json.dumps({"isCrisis": True, "severity": "extreme", "confidence": 0.9}))
        engine = CrisisGuardrailEngine(llm=llm)

        detection = await engine.detect("I feel hopeless", "en")

        assert detection.severity == CrisisSeverity.LOW

    @pytest.mark.asyncio
    async def test_disabled_model_check(self) -> None:
        """enable_model_check=False never calls the model."""
        llm = make_llm(_verdict())
        engine = CrisisGuardrailEngine(llm=llm, enable_model_check=False)

        await engine.detect("I want to kill myself", "en")

        llm.complete.assert_not_awaited()


class TestCrisisResponse:
    """Tests for crisis response generation."""

    def test_critical_response_has_helpline(self) -> None:
        """Critical responses defer advice and require a human."""
        engine = CrisisGuardrailEngine()
        detection = engine.detect_keywords("I want to kill myself", "en")

        response = engine.generate_crisis_response(detection, "en")

        assert "KIRAN" in response.immediate_response
        assert "1800-599-0019" in response.immediate_response
        assert response.helpline_info == "KIRAN: 1800-599-0019 (24/7 crisis support)"
        assert response.should_defer_advice is True
        assert response.requires_human_intervention is True

    def test_panic_replaces_steps_and_breathing(self) -> None:
        """Panic crises get grounding steps and box breathing."""
        engine = CrisisGuardrailEngine()
        detection = engine.detect_keywords("I think I'm having a panic attack", "en")

        response = engine.generate_crisis_response(detection, "en")

        assert response.next_steps[0] == "Find a quiet, safe place"
        assert response.breathing_exercise.startswith("Box breathing")

    def test_violence_prepends_emergency_steps(self) -> None:
        """Violence crises lead with emergency services."""
        engine = CrisisGuardrailEngine()
        detection = CrisisDetection(
            is_crisis=True, severity=CrisisSeverity.HIGH, crisis_type=CrisisType.VIOLENCE, confidence=0.6
        )

        response = engine.generate_crisis_response(detection, "en")

        assert response.next_steps[0] == "Call emergency services if needed"
        assert "emergency services immediately" in response.immediate_response

    def test_custom_helpline(self) -> None:
        """The configured helpline is used throughout."""
        engine = CrisisGuardrailEngine(helpline_name="HELPLINE", helpline_number="112")
        detection = engine.detect_keywords("I want to kill myself", "en")

        response = engine.generate_crisis_response(detection, "en")

        assert response.helpline_info.startswith("HELPLINE: 112")
        assert "KIRAN" not in response.immediate_response

    def test_unknown_language_falls_back_to_english(self) -> None:
        """Bundles without a translation use English."""
        engine = CrisisGuardrailEngine()
        detection = engine.detect_keywords("I want to kill myself", "en")

        response = engine.generate_crisis_response(detection, "de")

        assert response.helpline_info.endswith("(24/7 crisis support)")

    def test_override_text_contains_helpline_and_steps(self, caplog: pytest.LogCaptureFixture) -> None:
        """The override joins response, steps and helpline, and audits without message text."""
        engine = CrisisGuardrailEngine()
        message = "I want to kill myself"
        detection = engine.detect_keywords(message, "en")

        with caplog.at_level(logging.WARNING, logger="sarthi.safety.audit"):
            text = engine.override_with_crisis_response(detection, "en", message)

        assert "1800-599-0019" in text
        assert "• " in text
        assert text.endswith("KIRAN: 1800-599-0019 (24/7 crisis support)")

        record = next(r for r in caplog.records if r.name == "sarthi.safety.audit")
        assert record.crisis["severity"] == "critical"
        assert record.crisis["message_length"] == len(message)
        assert message not in record.getMessage()
