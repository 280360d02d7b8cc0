"""Error handling utilities for Tedee Hub.

Provides the typed exceptions raised by the API client, the lock controller
and the monitor, plus structured error responses with actionable recovery
suggestions for the MCP tools.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from utils.i18n import translate

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling."""

    TIMEOUT = "timeout"
    DEVICE_UNAVAILABLE = "device_unavailable"
    DEVICE_BUSY = "device_busy"
    DEVICE_NOT_FOUND = "device_not_found"
    NOT_READY = "not_ready"
    INVALID_INPUT = "invalid_input"
    API_ERROR = "api_error"
    OPERATION_FAILED = "operation_failed"
    EXHAUSTED = "exhausted"
    INTERNAL_ERROR = "internal_error"


@dataclass
class ToolError:
    """Structured error response for MCP tools."""

    category: ErrorCategory
    message: str
    device_id: str | None = None
    request_id: str | None = None
    recovery: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to response dict."""
        result: dict[str, Any] = {
            "error": self.message,
            "error_category": self.category.value,
        }
        if self.request_id:
            result["request_id"] = self.request_id
        if self.device_id:
            result["device_id"] = self.device_id
        if self.recovery:
            result["recovery"] = self.recovery
        if self.details:
            result["details"] = self.details
        return result


# Recovery suggestions for different error types
RECOVERY_SUGGESTIONS = {
    ErrorCategory.TIMEOUT: "Lock may be unresponsive. Check the bridge connection and try again.",
    ErrorCategory.DEVICE_UNAVAILABLE: "Lock is unavailable. Check that it is connected and calibrated.",
    ErrorCategory.DEVICE_BUSY: "Another operation is running. Wait a few seconds before retrying.",
    ErrorCategory.DEVICE_NOT_FOUND: "Use 'list_locks' to see available locks.",
    ErrorCategory.NOT_READY: "Check the current lock state with 'get_lock_state' and try again.",
    ErrorCategory.INVALID_INPUT: "Check parameter values and try again.",
    ErrorCategory.API_ERROR: "Tedee API error. Try again in a moment.",
    ErrorCategory.OPERATION_FAILED: "The lock rejected the command. Check the lock and try again.",
    ErrorCategory.EXHAUSTED: "The lock did not confirm in time. Check its state before retrying.",
    ErrorCategory.INTERNAL_ERROR: "An unexpected error occurred. Please try again.",
}


def get_recovery_suggestion(category: ErrorCategory) -> str:
    """Get recovery suggestion for an error category."""
    return RECOVERY_SUGGESTIONS.get(category, "Please try again.")


class TedeeError(Exception):
    """Base class for errors carrying a localized message key."""

    key = "errors.response"

    def __init__(
        self,
        key: str | None = None,
        detail: str | None = None,
        device_id: str | None = None,
    ):
        if key is not None:
            self.key = key
        self.detail = detail
        self.device_id = device_id
        self.message = translate(self.key)
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r}, detail={self.detail!r})"


class DeviceUnavailableError(TedeeError):
    """Raised when a command is sent to an unavailable device."""

    key = "state.notAvailable"


class DeviceBusyError(TedeeError):
    """Raised when a command is sent while the monitor is running."""

    key = "state.inUse"


class PreconditionError(TedeeError):
    """Raised when the lock state does not allow the requested command."""


class ResponseError(TedeeError):
    """Raised on transport failures and malformed API responses."""

    key = "errors.response"

    def __init__(
        self,
        detail: str | None = None,
        status_code: int | None = None,
        device_id: str | None = None,
    ):
        self.status_code = status_code
        super().__init__(detail=detail, device_id=device_id)


class UnknownStateError(ResponseError):
    """Raised when the API reports an absent or unrecognized lock state."""

    key = "state.unknown"

    def __init__(self, state: Any = None, device_id: str | None = None):
        self.state = state
        super().__init__(detail=f"Unrecognized lock state: {state!r}", device_id=device_id)


class OperationFailedError(TedeeError):
    """Raised when the vendor reports a terminal, non-successful operation."""

    key = "errors.operationFailed"

    def __init__(self, operation_id: str, status: str, result: int | None):
        self.operation_id = operation_id
        self.status = status
        self.result = result
        super().__init__(
            detail=f"Operation {operation_id} ended with status {status} (result {result})"
        )


class TooManyTriesError(TedeeError):
    """Raised when a monitor mode exceeds its try ceiling."""

    key = "errors.tooManyTries"

    def __init__(self, mode: str, tries: int):
        self.mode = mode
        self.tries = tries
        super().__init__(detail=f"Stopping, too many tries in {mode} mode ({tries})")


class MonitorTimeoutError(TedeeError):
    """Raised when a monitor cycle outlives its timeout."""

    key = "errors.timeout"

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(detail=f"Monitor cycle exceeded {timeout}s")


class MonitorError(TedeeError):
    """Raised when a monitor cycle ends in failure.

    The message is always the generic response error; the original failure
    is available as ``cause`` and ``__cause__``.
    """

    key = "errors.response"

    def __init__(self, device_id: str, cause: Exception):
        self.cause = cause
        super().__init__(detail=str(cause), device_id=device_id)


class DeviceTimeoutError(Exception):
    """Raised when a device operation times out."""

    def __init__(self, device_id: str, operation: str, timeout: float):
        self.device_id = device_id
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"Device {device_id} timed out during {operation} after {timeout}s"
        )


def generate_request_id() -> str:
    """Generate a short unique request ID for tracing."""
    return str(uuid.uuid4())[:8]


def classify_exception(e: Exception, device_id: str | None = None) -> ToolError:
    """Classify an exception into a structured error.

    Args:
        e: The exception to classify
        device_id: Optional device ID for context

    Returns:
        ToolError with appropriate category and recovery suggestion
    """
    details: dict[str, Any] = {}

    # A failed monitor cycle is classified by what made it fail
    if isinstance(e, MonitorError):
        details["cause"] = e.cause.message if isinstance(e.cause, TedeeError) else str(e.cause)
        inner = classify_exception(e.cause, device_id or e.device_id)
        inner.message = e.message
        inner.details.update(details)
        return inner

    if isinstance(e, TedeeError):
        device_id = e.device_id or device_id
        message = e.message
        if e.detail:
            details["detail"] = e.detail

    if isinstance(e, (asyncio.TimeoutError, DeviceTimeoutError)):
        category = ErrorCategory.TIMEOUT
        message = str(e) if isinstance(e, DeviceTimeoutError) else "Operation timed out"
        if isinstance(e, DeviceTimeoutError):
            device_id = e.device_id
    elif isinstance(e, MonitorTimeoutError):
        category = ErrorCategory.TIMEOUT
    elif isinstance(e, DeviceUnavailableError):
        category = ErrorCategory.DEVICE_UNAVAILABLE
    elif isinstance(e, DeviceBusyError):
        category = ErrorCategory.DEVICE_BUSY
    elif isinstance(e, PreconditionError):
        category = ErrorCategory.NOT_READY
    elif isinstance(e, ResponseError):
        category = ErrorCategory.API_ERROR
        if e.status_code:
            details["status_code"] = e.status_code
    elif isinstance(e, OperationFailedError):
        category = ErrorCategory.OPERATION_FAILED
    elif isinstance(e, TooManyTriesError):
        category = ErrorCategory.EXHAUSTED
    elif isinstance(e, TedeeError):
        category = ErrorCategory.INTERNAL_ERROR
    elif isinstance(e, ValueError):
        category = ErrorCategory.INVALID_INPUT
        message = str(e)
    elif isinstance(e, ConnectionError):
        category = ErrorCategory.API_ERROR
        message = f"Connection error: {e}"
    else:
        category = ErrorCategory.INTERNAL_ERROR
        message = f"Unexpected error: {e}"

    return ToolError(
        category=category,
        message=message,
        device_id=device_id,
        recovery=get_recovery_suggestion(category),
        details=details,
    )


# Default timeouts
DEFAULT_HANDLER_TIMEOUT = 30.0  # Total time for handler execution
DEFAULT_DEVICE_TIMEOUT = 10.0  # Time for issuing a single command
DEFAULT_API_TIMEOUT = 10.0  # Time for external API calls


async def execute_with_timeout(
    coro: Any,
    timeout: float = DEFAULT_DEVICE_TIMEOUT,
    device_id: str | None = None,
    operation: str = "operation",
) -> Any:
    """Execute a coroutine with a timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds
        device_id: Optional device ID for error context
        operation: Operation name for error messages

    Returns:
        Result of the coroutine

    Raises:
        DeviceTimeoutError: If the operation times out
    """
    try:
        async with asyncio.timeout(timeout):
            return await coro
    except asyncio.TimeoutError:
        if device_id:
            raise DeviceTimeoutError(device_id, operation, timeout)
        raise
