"""Sarthi conversational pipeline.

Turns one user message into a safe, structured reply through a fixed
sequence of stages: crisis guardrails, intent classification, planning and
tool dispatch, composition, critique and rolling per-user memory.
"""

__version__ = "1.0.0"
