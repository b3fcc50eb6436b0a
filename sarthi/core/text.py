"""Small text heuristics shared by pipeline stages and memory."""

import re

from sarthi.models import EmotionalTone

TOPICS = [
    "stress", "anxiety", "sleep", "exercise", "relationships", "work", "family",
    "health", "mood", "goals", "habits", "meditation", "social", "loneliness",
    "depression", "anger", "fear", "joy",
]

DEFAULT_TOPIC = "general"

TONE_WORDS: list[tuple[EmotionalTone, tuple[str, ...]]] = [
    (EmotionalTone.CRISIS, ("kill", "suicide", "die", "end my life", "hurt myself")),
    (EmotionalTone.NEGATIVE, ("sad", "angry", "frustrated", "worried", "anxious", "depressed", "hopeless")),
    (EmotionalTone.POSITIVE, ("happy", "good", "great", "excited", "joy", "love", "wonderful")),
]


def contains_any(text: str, needles: tuple[str, ...] | list[str]) -> bool:
    """Case-insensitive substring match against any needle."""
    lowered = text.lower()
    return any(needle in lowered for needle in needles)


def contains_word(text: str, word: str) -> bool:
    """Case-insensitive whole-word match."""
    return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None


def extract_topic(message: str) -> str:
    """First known topic mentioned in *message*, else ``general``."""
    lowered = message.lower()
    for topic in TOPICS:
        if topic in lowered:
            return topic
    return DEFAULT_TOPIC


def detect_emotional_tone(message: str) -> EmotionalTone:
    """Coarse tone from whole words: crisis, then negative, then positive, else neutral."""
    for tone, words in TONE_WORDS:
        if any(contains_word(message, word) for word in words):
            return tone
    return EmotionalTone.NEUTRAL
