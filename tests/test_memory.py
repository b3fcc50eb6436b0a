"""Tests for the Context Memory Manager."""

import asyncio
from datetime import timedelta

import pytest
from pydantic import ValidationError

from sarthi.core.text import detect_emotional_tone
from sarthi.memory import ContextMemoryManager, calculate_trend, infer_preferences
from sarthi.models import CrisisSeverity, EmotionalTone, Intent, ResponseStyle, Trend, TurnRecord


def _turn(user_id: str = "u1", **overrides) -> dict:
    data = {
        "user_id": user_id,
        "user_message": "I feel stressed about work",
        "intent": Intent.THERAPY_SUPPORT,
        "response": "I hear you.\n\n• Take 3 deep breaths right now",
        "confidence": 0.8,
    }
    data.update(overrides)
    return data


def _manager(date_clock, **kwargs) -> ContextMemoryManager:
    return ContextMemoryManager(clock=date_clock, **kwargs)


class TestCalculateTrend:
    """Tests for the wellness trend."""

    def test_too_few_scores_is_stable(self) -> None:
        """Fewer than three scores cannot show a trend."""
        assert calculate_trend([9, 1]) == Trend.STABLE

    def test_improving(self) -> None:
        """Recent scores above older ones by more than 0.5 is improving."""
        assert calculate_trend([8, 8, 7, 4, 3]) == Trend.IMPROVING

    def test_declining(self) -> None:
        """Recent scores below older ones is declining."""
        assert calculate_trend([3, 4, 8, 8]) == Trend.DECLINING

    def test_small_change_is_stable(self) -> None:
        """Differences within 0.5 are stable."""
        assert calculate_trend([6.2, 6.0, 6.1, 5.9]) == Trend.STABLE


class TestInferPreferences:
    """Tests for preference inference."""

    def _record(self, response: str, language: str = "en", message: str = "sleep is hard") -> TurnRecord:
        data = _turn(response=response, language=language, user_message=message)
        data.update(id=response[:8], timestamp="2026-03-01T09:00:00Z")
        return TurnRecord.model_validate(data)

    def test_empty(self) -> None:
        """No turns gives defaults."""
        assert infer_preferences([]).response_style == ResponseStyle.CONCISE

    def test_style_from_reply_length(self) -> None:
        """Long replies mean detailed, short ones casual."""
        assert infer_preferences([self._record("x" * 250)]).response_style == ResponseStyle.DETAILED
        assert infer_preferences([self._record("short")]).response_style == ResponseStyle.CASUAL
        assert infer_preferences([self._record("y" * 150)]).response_style == ResponseStyle.CONCISE

    def test_dominant_language_and_topics(self) -> None:
        """The most common language and topics win."""
        turns = [
            self._record("a" * 120, "hi", "sleep again"),
            self._record("b" * 120, "hi", "sleep is bad"),
            self._record("c" * 120, "en", "stress at work"),
        ]
        prefs = infer_preferences(turns)
        assert prefs.language == "hi"
        assert prefs.preferred_topics[0] == "sleep"


class TestWriteTurn:
    """Tests for ContextMemoryManager.write_turn."""

    @pytest.mark.asyncio
    async def test_assigns_id_and_timestamp(self, date_clock) -> None:
        """Missing id and timestamp are filled in."""
        memory = _manager(date_clock)

        turn_id = await memory.write_turn(_turn())

        turns = await memory.get_recent_turns("u1")
        assert turns[0].id == turn_id
        assert turns[0].timestamp == date_clock.now

    @pytest.mark.asyncio
    async def test_duplicate_id_appends_nothing(self, date_clock) -> None:
        """Writing the same id twice keeps one turn."""
        memory = _manager(date_clock)

        first = await memory.write_turn(_turn(id="turn-1"))
        second = await memory.write_turn(_turn(id="turn-1", response="different"))

        assert first == second == "turn-1"
        turns = await memory.get_recent_turns("u1")
        assert len(turns) == 1
        assert turns[0].response.startswith("I hear you")

    @pytest.mark.asyncio
    async def test_invalid_turn_rejected(self, date_clock) -> None:
        """Turns missing required fields fail validation."""
        memory = _manager(date_clock)
        with pytest.raises(ValidationError):
            await memory.write_turn({"user_id": "u1", "user_message": "hi"})

    @pytest.mark.asyncio
    async def test_fifo_cap(self, date_clock) -> None:
        """Only the newest max_turns are kept."""
        memory = _manager(date_clock, max_turns=3)
        for i in range(5):
            date_clock.advance(minutes=1)
            await memory.write_turn(_turn(id=f"t{i}"))

        turns = await memory.get_recent_turns("u1")
        assert [t.id for t in turns] == ["t4", "t3", "t2"]

    @pytest.mark.asyncio
    async def test_concurrent_writes_are_all_recorded(self, date_clock) -> None:
        """Concurrent writes for one user do not lose turns."""
        memory = _manager(date_clock)

        await asyncio.gather(*(memory.write_turn(_turn(id=f"c{i}")) for i in range(20)))

        assert memory.get_memory_stats()["total_turns"] == 20


class TestFetchContext:
    """Tests for context summaries."""

    @pytest.mark.asyncio
    async def test_no_turns(self, date_clock) -> None:
        """Unknown users have no context."""
        assert await _manager(date_clock).fetch_context("nobody") is None

    @pytest.mark.asyncio
    async def test_summary_counts_intents(self, date_clock) -> None:
        """Intent frequencies are tracked most frequent first."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn(intent=Intent.QUICK_TIP))
        await memory.write_turn(_turn(intent=Intent.THERAPY_SUPPORT))
        await memory.write_turn(_turn(intent=Intent.THERAPY_SUPPORT))

        summary = await memory.fetch_context("u1")

        assert summary.recent_intents[0].intent == Intent.THERAPY_SUPPORT
        assert summary.recent_intents[0].frequency == 2
        assert summary.recent_intents[1].frequency == 1
        assert len(summary.conversation_history) == 3
        assert summary.conversation_history[0].topic == "stress"

    @pytest.mark.asyncio
    async def test_wellness_trend(self, date_clock) -> None:
        """Scored turns produce current, average and trend."""
        memory = _manager(date_clock)
        for score in (3, 4, 8, 8):
            date_clock.advance(hours=1)
            await memory.write_turn(_turn(wellness_score=score))

        summary = await memory.fetch_context("u1")

        assert summary.wellness_trend.current_score == 8
        assert summary.wellness_trend.average_score == pytest.approx(5.75)
        assert summary.wellness_trend.trend == Trend.IMPROVING
        assert summary.wellness_trend.last_checkin == date_clock.now

    @pytest.mark.asyncio
    async def test_crisis_history(self, date_clock) -> None:
        """Crisis turns are recorded with helpline use."""
        memory = _manager(date_clock)
        await memory.write_turn(
            _turn(
                emotional_tone=EmotionalTone.CRISIS,
                crisis_severity=CrisisSeverity.CRITICAL,
                response="Please call KIRAN: 1800-599-0019",
            )
        )

        summary = await memory.fetch_context("u1")

        assert len(summary.crisis_history) == 1
        assert summary.crisis_history[0].severity == CrisisSeverity.CRITICAL
        assert summary.crisis_history[0].helpline_used is True

    @pytest.mark.asyncio
    async def test_ordinary_question_is_not_a_crisis(self, date_clock) -> None:
        """Words that merely contain "die" or "kill" leave no crisis history."""
        memory = _manager(date_clock)
        message = "How can I improve my diet?"
        await memory.write_turn(
            _turn(
                user_message=message,
                intent=Intent.QUICK_TIP,
                emotional_tone=detect_emotional_tone(message),
            )
        )

        summary = await memory.fetch_context("u1")

        assert summary.crisis_history == []

    @pytest.mark.asyncio
    async def test_crisis_tone_without_severity_is_not_kept(self, date_clock) -> None:
        """Only turns with a crisis severity count as crisis turns."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn(emotional_tone=EmotionalTone.CRISIS))

        assert (await memory.fetch_context("u1")).crisis_history == []

        date_clock.advance(days=31)
        assert await memory.get_recent_turns("u1") == []

    @pytest.mark.asyncio
    async def test_general_turns_expire_after_retention(self, date_clock) -> None:
        """Ordinary turns are dropped after 30 days."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn())

        date_clock.advance(days=31)

        assert await memory.fetch_context("u1") is None
        assert await memory.get_recent_turns("u1") == []

    @pytest.mark.asyncio
    async def test_crisis_turns_kept_for_ninety_days(self, date_clock) -> None:
        """Crisis turns outlive the general window but not the crisis one."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn(id="normal"))
        await memory.write_turn(_turn(id="crisis", crisis_severity=CrisisSeverity.HIGH))

        date_clock.advance(days=45)
        summary = await memory.fetch_context("u1")
        assert summary is not None
        assert len(summary.crisis_history) == 1
        assert summary.recent_intents == []
        assert [t.id for t in await memory.get_recent_turns("u1")] == ["crisis"]

        date_clock.advance(days=50)
        assert await memory.fetch_context("u1") is None

    @pytest.mark.asyncio
    async def test_fresh_summary_served_from_cache(self, date_clock) -> None:
        """A summary younger than the staleness window is reused."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn())

        first = await memory.fetch_context("u1")
        date_clock.advance(minutes=30)
        second = await memory.fetch_context("u1")

        assert second is first

    @pytest.mark.asyncio
    async def test_stale_summary_recomputed(self, date_clock) -> None:
        """After an hour the summary is rebuilt."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn())

        first = await memory.fetch_context("u1")
        date_clock.advance(hours=2)
        second = await memory.fetch_context("u1")

        assert second is not first
        assert second.last_updated == date_clock.now


class TestClearAndStats:
    """Tests for erasure and statistics."""

    @pytest.mark.asyncio
    async def test_clear_user_data(self, date_clock) -> None:
        """Clearing removes turns and summary for that user only."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn("u1"))
        await memory.write_turn(_turn("u2"))

        await memory.clear_user_data("u1")

        assert await memory.fetch_context("u1") is None
        assert await memory.fetch_context("u2") is not None

    @pytest.mark.asyncio
    async def test_stats(self, date_clock) -> None:
        """Stats count users, turns and cached summaries."""
        memory = _manager(date_clock)
        await memory.write_turn(_turn("u1"))
        await memory.write_turn(_turn("u1"))
        await memory.write_turn(_turn("u2"))

        stats = memory.get_memory_stats()

        assert stats == {
            "total_users": 2,
            "total_turns": 3,
            "average_turns_per_user": 1.5,
            "cached_summaries": 2,
        }

    def test_from_settings(self, offline_settings) -> None:
        """Limits come from settings."""
        memory = ContextMemoryManager.from_settings(offline_settings)
        assert memory.max_turns == 100
        assert memory.crisis_retention == timedelta(days=90)
        assert memory.summary_stale == timedelta(hours=1)
