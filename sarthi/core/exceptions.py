"""Custom exceptions for the Sarthi pipeline.

Only ``InputError`` is ever surfaced to a caller of the coordinator. Every
other error is raised by a stage's collaborator and recovered inside that
stage with a static fallback.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Exception type → safe user-facing message mapping
_SAFE_MESSAGES: dict[str, str] = {
    "InputError": "The provided input is invalid. Please check and try again.",
    "BackendTimeout": "The assistant took too long to respond. Please try again.",
    "BackendError": "The assistant is temporarily unavailable.",
    "ParseError": "The assistant returned an unexpected answer.",
    "UnknownToolError": "The requested tool is not available.",
    "ToolError": "A helper service is temporarily unavailable.",
    "NotFoundError": "The requested resource was not found.",
    "CircuitBreakerOpen": "A service dependency is temporarily unavailable. Please try again in a moment.",
    "ValueError": "The provided value is invalid.",
}

_DEFAULT_MESSAGE = "An error occurred. Please try again."


def sanitize_error(e: Exception) -> str:
    """Map an exception to a safe, user-facing error message.

    Walks the exception's MRO so subclasses inherit the message of their
    closest mapped ancestor.

    Args:
        e: The exception to sanitize.

    Returns:
        A safe, generic error message string.
    """
    for cls in type(e).__mro__:
        safe_msg = _SAFE_MESSAGES.get(cls.__name__)
        if safe_msg:
            return safe_msg

    return _DEFAULT_MESSAGE


class SarthiException(Exception):
    """Base exception for all Sarthi-specific errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize Sarthi exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class InputError(SarthiException):
    """Malformed request (400). The only error surfaced to callers."""

    def __init__(
        self, message: str, field: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        """Initialize input error.

        Args:
            message: Error message.
            field: Name of the invalid field.
            details: Additional validation details.
        """
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code="INPUT_ERROR",
            status_code=400,
            details=error_details,
        )


class NotFoundError(SarthiException):
    """Resource not found error (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' not found"
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "resource_id": resource_id},
        )


class BackendError(SarthiException):
    """Language Model Backend call failed (502)."""

    def __init__(self, stage: str, message: str | None = None) -> None:
        """Initialize backend error.

        Args:
            stage: Pipeline stage that issued the call.
            message: Optional error message.
        """
        super().__init__(
            message=message or f"Language model call failed during {stage}",
            code="BACKEND_ERROR",
            status_code=502,
            details={"stage": stage},
        )
        self.stage = stage


class BackendTimeout(BackendError):
    """Language Model Backend call exceeded its stage timeout (504)."""

    def __init__(self, stage: str, timeout: float) -> None:
        """Initialize backend timeout.

        Args:
            stage: Pipeline stage that issued the call.
            timeout: The timeout that was exceeded, in seconds.
        """
        super().__init__(stage, f"Language model call timed out after {timeout:.1f}s during {stage}")
        self.code = "BACKEND_TIMEOUT"
        self.status_code = 504
        self.details["timeout"] = timeout
        self.timeout = timeout


class ParseError(SarthiException):
    """Model output could not be parsed into the expected shape (422)."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        """Initialize parse error.

        Args:
            message: What was expected.
            raw: The offending output, truncated for logs.
        """
        super().__init__(
            message=message,
            code="PARSE_ERROR",
            status_code=422,
            details={"raw": (raw or "")[:200]},
        )


class ToolError(SarthiException):
    """External tool collaborator failed (502)."""

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        """Initialize tool error.

        Args:
            tool_name: Name of the tool that failed.
            message: Optional error message.
        """
        super().__init__(
            message=message or f"Tool '{tool_name}' failed",
            code="TOOL_ERROR",
            status_code=502,
            details={"tool": tool_name},
        )
        self.tool_name = tool_name


class UnknownToolError(ToolError):
    """Plan named a tool that is not registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Unknown tool: {tool_name}")
        self.code = "UNKNOWN_TOOL"
