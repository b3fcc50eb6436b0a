"""Tests for configuration, exceptions, the error tracker and text heuristics."""

import pytest
from pydantic import ValidationError

from sarthi.core.config import Settings
from sarthi.core.error_tracker import ErrorTracker
from sarthi.core.exceptions import (
    BackendError,
    BackendTimeout,
    InputError,
    NotFoundError,
    ParseError,
    ToolError,
    UnknownToolError,
    sanitize_error,
)
from sarthi.core.resilience import CircuitBreakerOpen
from sarthi.core.text import contains_word, detect_emotional_tone, extract_topic
from sarthi.models import EmotionalTone


class TestSettings:
    """Tests for application settings."""

    def test_defaults(self) -> None:
        """Defaults match the documented pipeline configuration."""
        s = Settings(_env_file=None, LLM_API_KEY="")
        assert s.ENABLE_CRISIS_DETECTION is True
        assert s.ENABLE_LLM_COMPOSITION is False
        assert s.TOOL_TIMEOUT == 5.0
        assert s.INTENT_CACHE_TTL == 120
        assert s.RESPONSE_CACHE_TTL == 300
        assert s.TEMPLATE_CACHE_TTL == 86400
        assert s.CRISIS_RETENTION_DAYS == 90
        assert s.llm_configured is False

    def test_llm_configured_with_key(self) -> None:
        """A non-empty key enables the model-backed stages."""
        s = Settings(_env_file=None, LLM_API_KEY="sk-test")
        assert s.llm_configured is True
        assert "sk-test" not in repr(s)

    def test_cors_origins_list(self) -> None:
        """Origins are split on commas and stripped."""
        s = Settings(_env_file=None, CORS_ORIGINS="http://a.test, http://b.test ,")
        assert s.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_helpline(self) -> None:
        """The helpline string joins name and number."""
        s = Settings(_env_file=None)
        assert s.helpline == "KIRAN: 1800-599-0019"

    def test_checkin_service_url_must_be_http(self) -> None:
        """Non-http URLs are rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, CHECKIN_SERVICE_URL="ftp://checkins.test")

    def test_checkin_service_url_trailing_slash_stripped(self) -> None:
        """A trailing slash is removed."""
        s = Settings(_env_file=None, CHECKIN_SERVICE_URL="https://checkins.test/")
        assert s.CHECKIN_SERVICE_URL == "https://checkins.test"

    def test_environment_flags(self) -> None:
        """APP_ENV drives the environment helpers."""
        assert Settings(_env_file=None, APP_ENV="production").is_production is True
        assert Settings(_env_file=None).is_development is True


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_input_error_carries_field(self) -> None:
        """InputError is a 400 with the offending field."""
        exc = InputError("message is empty", field="message")
        assert exc.status_code == 400
        assert exc.code == "INPUT_ERROR"
        assert exc.details == {"field": "message"}

    def test_not_found_message(self) -> None:
        """NotFoundError names the resource and id."""
        exc = NotFoundError("User context", "u1")
        assert exc.status_code == 404
        assert exc.message == "User context with ID 'u1' not found"

    def test_backend_timeout_is_backend_error(self) -> None:
        """Timeouts are backend errors with their own code."""
        exc = BackendTimeout("router", 12.0)
        assert isinstance(exc, BackendError)
        assert exc.status_code == 504
        assert exc.details == {"stage": "router", "timeout": 12.0}

    def test_unknown_tool_is_tool_error(self) -> None:
        """UnknownToolError keeps the tool name."""
        exc = UnknownToolError("teleport")
        assert isinstance(exc, ToolError)
        assert exc.tool_name == "teleport"
        assert exc.code == "UNKNOWN_TOOL"

    def test_parse_error_truncates_raw(self) -> None:
        """Raw model output is truncated in details."""
        exc = ParseError("expected JSON", raw="x" * 500)
        assert len(exc.details["raw"]) == 200

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (InputError("bad"), "The provided input is invalid. Please check and try again."),
            (BackendTimeout("critic", 1.0), "The assistant took too long to respond. Please try again."),
            (UnknownToolError("x"), "The requested tool is not available."),
            (CircuitBreakerOpen("llm_backend"), "A service dependency is temporarily unavailable. Please try again in a moment."),
            (RuntimeError("secret detail"), "An error occurred. Please try again."),
        ],
    )
    def test_sanitize_error(self, error: Exception, expected: str) -> None:
        """Safe messages never leak exception text."""
        assert sanitize_error(error) == expected


class TestErrorTracker:
    """Tests for stage degradation tracking."""

    def test_records_by_stage_and_type(self) -> None:
        """Summary counts degradations per stage and per error type."""
        tracker = ErrorTracker()
        tracker.record_error("classify", BackendTimeout("router", 1.0))
        tracker.record_error("classify", ParseError("bad json"))
        tracker.record_error("dispatch", "tool_error", "fetch_checkins failed")

        summary = tracker.get_error_summary()
        assert summary["total"] == 3
        assert summary["by_stage"] == {"classify": 2, "dispatch": 1}
        assert summary["by_type"] == {"BackendTimeout": 1, "ParseError": 1, "tool_error": 1}

    def test_recent_errors_newest_first(self) -> None:
        """Recent errors come back newest first."""
        tracker = ErrorTracker()
        tracker.record_error("a", "first")
        tracker.record_error("b", "second")

        recent = tracker.get_recent_errors()
        assert [e["stage"] for e in recent] == ["b", "a"]
        assert recent[1]["message"] == "first"

    def test_bounded_history(self) -> None:
        """Oldest entries are evicted past max_errors."""
        tracker = ErrorTracker(max_errors=3)
        for i in range(5):
            tracker.record_error(f"s{i}", "e")
        assert [e["stage"] for e in tracker.get_recent_errors()] == ["s4", "s3", "s2"]

    def test_reset(self) -> None:
        """reset() clears the history."""
        tracker = ErrorTracker()
        tracker.record_error("a", "e")
        tracker.reset()
        assert tracker.get_error_summary()["total"] == 0

    def test_summary_window(self) -> None:
        """Only degradations inside the period are counted."""
        now = [1000.0]
        tracker = ErrorTracker(clock=lambda: now[0])
        tracker.record_error("compose", "timeout")
        now[0] += 4000
        tracker.record_error("critic", "api_error")

        summary = tracker.get_error_summary(period_seconds=3600)
        assert summary["total"] == 1
        assert summary["by_stage"] == {"critic": 1}


class TestTextHeuristics:
    """Tests for tone and topic heuristics."""

    @pytest.mark.parametrize(
        "message",
        ["How can I improve my diet?", "I studied all night", "I want to build new skills"],
    )
    def test_crisis_words_inside_other_words_are_neutral(self, message: str) -> None:
        """Tone words only match as whole words."""
        assert detect_emotional_tone(message) == EmotionalTone.NEUTRAL

    def test_crisis_tone(self) -> None:
        assert detect_emotional_tone("Sometimes I want to DIE") == EmotionalTone.CRISIS

    def test_tone_order(self) -> None:
        """Negative words win over positive ones."""
        assert detect_emotional_tone("I'm happy but worried") == EmotionalTone.NEGATIVE
        assert detect_emotional_tone("what a great day") == EmotionalTone.POSITIVE

    def test_contains_word(self) -> None:
        assert contains_word("Kill the lights", "kill") is True
        assert contains_word("new skills", "kill") is False
        assert contains_word("end my life now", "end my life") is True

    def test_extract_topic(self) -> None:
        assert extract_topic("I can't sleep lately") == "sleep"
        assert extract_topic("hello there") == "general"
