"""Context Memory Manager.

Keeps a bounded, per-user log of turns in process memory and a rolling
``ContextSummary`` derived from it. The summary is updated incrementally on
every write and fully recomputed on read once it is older than the
staleness window.
"""

import asyncio
import logging
import uuid
from collections import Counter, defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from statistics import fmean
from typing import Any

from sarthi.core.text import extract_topic
from sarthi.models import (
    ContextSummary,
    ConversationEntry,
    CrisisEvent,
    IntentFrequency,
    ResponseStyle,
    Trend,
    TurnRecord,
    UserPreferences,
    WellnessTrend,
)

logger = logging.getLogger(__name__)

MAX_RECENT_INTENTS = 5
MAX_CONVERSATION_HISTORY = 20
MAX_PREFERRED_TOPICS = 3
MIN_TREND_SCORES = 3
TREND_THRESHOLD = 0.5
DETAILED_RESPONSE_CHARS = 200
CASUAL_RESPONSE_CHARS = 100
HELPLINE_MARKERS = ("KIRAN", "1800-599-0019")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_crisis_turn(turn: TurnRecord) -> bool:
    return turn.crisis_severity is not None


def calculate_trend(scores: list[float]) -> Trend:
    """Compare the mean of the first (most recent) half with the rest.

    Args:
        scores: Wellness scores ordered most recent first.
    """
    if len(scores) < MIN_TREND_SCORES:
        return Trend.STABLE

    split = (len(scores) + 1) // 2
    difference = fmean(scores[:split]) - fmean(scores[split:])
    if difference > TREND_THRESHOLD:
        return Trend.IMPROVING
    if difference < -TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE


def infer_preferences(turns: list[TurnRecord]) -> UserPreferences:
    """Dominant language, reply-length style and top topics."""
    if not turns:
        return UserPreferences()

    language = Counter(t.language for t in turns).most_common(1)[0][0]

    avg_length = fmean(len(t.response) for t in turns)
    if avg_length > DETAILED_RESPONSE_CHARS:
        style = ResponseStyle.DETAILED
    elif avg_length < CASUAL_RESPONSE_CHARS:
        style = ResponseStyle.CASUAL
    else:
        style = ResponseStyle.CONCISE

    topics = Counter(extract_topic(t.user_message) for t in turns)
    return UserPreferences(
        language=language,
        response_style=style,
        preferred_topics=[topic for topic, _ in topics.most_common(MAX_PREFERRED_TOPICS)],
    )


def _conversation_entry(turn: TurnRecord) -> ConversationEntry:
    return ConversationEntry(
        date=turn.timestamp,
        topic=extract_topic(turn.user_message),
        emotional_tone=turn.emotional_tone,
        tools_used=list(turn.tools_used),
    )


def _crisis_event(turn: TurnRecord) -> CrisisEvent:
    return CrisisEvent(
        date=turn.timestamp,
        severity=turn.crisis_severity,
        helpline_used=any(marker in turn.response for marker in HELPLINE_MARKERS),
    )


class ContextMemoryManager:
    """In-process turn log and rolling context summaries.

    All mutation of a user's log and summary happens under that user's
    ``asyncio.Lock``.
    """

    def __init__(
        self,
        max_turns: int = 100,
        context_retention_days: int = 30,
        crisis_retention_days: int = 90,
        summary_stale_seconds: int = 3600,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.max_turns = max_turns
        self.context_retention = timedelta(days=context_retention_days)
        self.crisis_retention = timedelta(days=crisis_retention_days)
        self.summary_stale = timedelta(seconds=summary_stale_seconds)
        self._clock = clock or _utcnow

        self._turns: dict[str, list[TurnRecord]] = {}
        self._summaries: dict[str, ContextSummary] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_settings(cls, settings: Any) -> "ContextMemoryManager":
        return cls(
            max_turns=settings.MEMORY_MAX_TURNS,
            context_retention_days=settings.CONTEXT_RETENTION_DAYS,
            crisis_retention_days=settings.CRISIS_RETENTION_DAYS,
            summary_stale_seconds=settings.SUMMARY_STALE_SECONDS,
        )

    async def write_turn(self, data: dict[str, Any]) -> str:
        """Append a turn to the user's log and update their summary.

        Assigns ``id`` and ``timestamp`` when missing. Writing an id that is
        already in the log appends nothing and returns that id.

        Args:
            data: ``TurnRecord`` fields; ``user_id``, ``user_message``,
                ``intent`` and ``response`` are required.

        Returns:
            The turn id.

        Raises:
            pydantic.ValidationError: If *data* is not a valid turn.
        """
        data = dict(data)
        data.setdefault("id", str(uuid.uuid4()))
        data.setdefault("timestamp", self._clock())
        turn = TurnRecord.model_validate(data)

        async with self._locks[turn.user_id]:
            turns = self._turns.setdefault(turn.user_id, [])
            if any(existing.id == turn.id for existing in turns):
                logger.debug("Turn %s already recorded", turn.id)
                return turn.id

            turns.append(turn)
            if len(turns) > self.max_turns:
                del turns[: len(turns) - self.max_turns]

            self._cleanup(turn.user_id)
            self._update_summary(turn)

        logger.debug("Recorded turn %s for user %s", turn.id, turn.user_id)
        return turn.id

    async def fetch_context(self, user_id: str) -> ContextSummary | None:
        """Summary for *user_id*, recomputed when stale. None without turns."""
        async with self._locks[user_id]:
            summary = self._summaries.get(user_id)
            if summary is not None and self._clock() - summary.last_updated < self.summary_stale:
                return summary

            self._cleanup(user_id)
            if not self._turns.get(user_id):
                self._summaries.pop(user_id, None)
                return None

            summary = self._build_summary(user_id)
            self._summaries[user_id] = summary
            return summary

    async def get_recent_turns(self, user_id: str, limit: int = 10) -> list[TurnRecord]:
        """Most recent turns first."""
        turns = self._turns.get(user_id, [])
        return sorted(turns, key=lambda t: t.timestamp, reverse=True)[:limit]

    async def clear_user_data(self, user_id: str) -> None:
        """Erase every turn and the summary held for *user_id*."""
        async with self._locks[user_id]:
            removed = len(self._turns.pop(user_id, []))
            self._summaries.pop(user_id, None)
        self._locks.pop(user_id, None)
        logger.info("Cleared memory for user %s (%d turns)", user_id, removed)

    def get_memory_stats(self) -> dict[str, Any]:
        total_users = len(self._turns)
        total_turns = sum(len(turns) for turns in self._turns.values())
        return {
            "total_users": total_users,
            "total_turns": total_turns,
            "average_turns_per_user": total_turns / total_users if total_users else 0,
            "cached_summaries": len(self._summaries),
        }

    def _cleanup(self, user_id: str) -> None:
        """Drop turns past retention. Crisis turns use the longer window."""
        now = self._clock()
        general_cutoff = now - self.context_retention
        crisis_cutoff = now - self.crisis_retention

        turns = self._turns.get(user_id)
        if turns is not None:
            kept = [
                t for t in turns
                if t.timestamp > (crisis_cutoff if is_crisis_turn(t) else general_cutoff)
            ]
            if len(kept) != len(turns):
                logger.debug("Expired %d turns for user %s", len(turns) - len(kept), user_id)
            self._turns[user_id] = kept

        summary = self._summaries.get(user_id)
        if summary is not None:
            summary.crisis_history = [c for c in summary.crisis_history if c.date > crisis_cutoff]

    def _update_summary(self, turn: TurnRecord) -> None:
        summary = self._summaries.get(turn.user_id)
        if summary is None:
            self._summaries[turn.user_id] = self._build_summary(turn.user_id)
            return

        intents = {f.intent: f for f in summary.recent_intents}
        if turn.intent in intents:
            intents[turn.intent].frequency += 1
            intents[turn.intent].last_occurrence = turn.timestamp
        else:
            intents[turn.intent] = IntentFrequency(
                intent=turn.intent, frequency=1, last_occurrence=turn.timestamp
            )
        summary.recent_intents = sorted(
            intents.values(), key=lambda f: f.frequency, reverse=True
        )[:MAX_RECENT_INTENTS]

        summary.wellness_trend = self._wellness_trend(self._recent_turns(turn.user_id))
        summary.conversation_history = [_conversation_entry(turn)] + summary.conversation_history[
            : MAX_CONVERSATION_HISTORY - 1
        ]
        if is_crisis_turn(turn):
            summary.crisis_history.append(_crisis_event(turn))
        summary.last_updated = self._clock()

    def _recent_turns(self, user_id: str) -> list[TurnRecord]:
        """Turns inside the general retention window, most recent first."""
        cutoff = self._clock() - self.context_retention
        turns = [t for t in self._turns.get(user_id, []) if t.timestamp > cutoff]
        return sorted(turns, key=lambda t: t.timestamp, reverse=True)

    def _build_summary(self, user_id: str) -> ContextSummary:
        recent = self._recent_turns(user_id)

        counts: Counter = Counter()
        last_seen: dict = {}
        for turn in recent:
            counts[turn.intent] += 1
            last_seen.setdefault(turn.intent, turn.timestamp)
        recent_intents = [
            IntentFrequency(intent=intent, frequency=count, last_occurrence=last_seen[intent])
            for intent, count in counts.most_common(MAX_RECENT_INTENTS)
        ]

        crisis_turns = sorted(
            (t for t in self._turns.get(user_id, []) if is_crisis_turn(t)),
            key=lambda t: t.timestamp,
        )

        return ContextSummary(
            user_id=user_id,
            recent_intents=recent_intents,
            wellness_trend=self._wellness_trend(recent),
            crisis_history=[_crisis_event(t) for t in crisis_turns],
            conversation_history=[_conversation_entry(t) for t in recent[:MAX_CONVERSATION_HISTORY]],
            preferences=infer_preferences(recent),
            last_updated=self._clock(),
        )

    @staticmethod
    def _wellness_trend(recent: list[TurnRecord]) -> WellnessTrend:
        scored = [t for t in recent if t.wellness_score is not None]
        scores = [t.wellness_score for t in scored]
        if not scores:
            return WellnessTrend()
        return WellnessTrend(
            current_score=scores[0],
            average_score=fmean(scores),
            trend=calculate_trend(scores),
            last_checkin=scored[0].timestamp,
        )
