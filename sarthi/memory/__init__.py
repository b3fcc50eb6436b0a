"""Rolling per-user conversation memory."""

from sarthi.memory.context import ContextMemoryManager, calculate_trend, infer_preferences

__all__ = [
    "ContextMemoryManager",
    "calculate_trend",
    "infer_preferences",
]
