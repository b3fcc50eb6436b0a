"""Crisis safety layer."""

from sarthi.safety.guardrails import CrisisGuardrailEngine

__all__ = ["CrisisGuardrailEngine"]
