"""Custom exception hierarchy for headless."""

from typing import Optional, Any, Dict


class HeadlessError(Exception):
    """Base exception for all headless errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TimeoutError(HeadlessError):
    """Raised when a command reply does not arrive within the timeout window."""

    def __init__(self, operation: str, timeout_ms: int):
        super().__init__(
            f"Operation '{operation}' timed out after {timeout_ms}ms",
            {"operation": operation, "timeout_ms": timeout_ms, "error_code": "TIMEOUT"}
        )
        self.timeout_ms = timeout_ms


class ProtocolError(HeadlessError):
    """Raised when the remote side answers a command with an error payload."""

    def __init__(self, method: str, params: Optional[Dict[str, Any]], error: Dict[str, Any]):
        reason = error.get("message", error) if isinstance(error, dict) else error
        super().__init__(
            f"Command '{method}' failed: {reason}",
            {"method": method, "params": params, "error": error, "error_code": "PROTOCOL_ERROR"}
        )
        self.method = method
        self.params = params
        self.error = error


class MalformedMessageError(HeadlessError):
    """Raised when an inbound frame is neither a reply nor an event.

    Indicates that the transport or protocol contract is violated, so the
    connection stops processing frames.
    """

    def __init__(self, frame: Any):
        super().__init__(
            f"Malformed message: {frame!r}",
            {"frame": frame, "error_code": "MALFORMED_MESSAGE"}
        )
        self.frame = frame


class EvaluationError(HeadlessError):
    """Raised when a function evaluated in the page throws."""

    def __init__(self, function: str, exception_details: Dict[str, Any]):
        description = (
            exception_details.get("exception", {}).get("description")
            or exception_details.get("text")
            or "unknown exception"
        )
        super().__init__(
            f"Evaluation failed: {description}",
            {
                "function": function,
                "exception_details": exception_details,
                "error_code": "EVALUATION_ERROR",
            }
        )
        self.function = function
        self.exception_details = exception_details


class ConnectionClosedError(HeadlessError):
    """Raised when a command cannot complete because the connection is gone."""

    def __init__(self, reason: str):
        super().__init__(
            f"Connection closed: {reason}",
            {"reason": reason, "error_code": "CONNECTION_CLOSED"}
        )


class BrowserNotAvailableError(HeadlessError):
    """Raised when the browser cannot be reached or started."""

    def __init__(self, reason: str):
        super().__init__(
            f"Browser not available: {reason}",
            {"reason": reason, "error_code": "BROWSER_NOT_AVAILABLE"}
        )


class ConfigurationError(HeadlessError):
    """Raised when configuration is invalid."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid configuration: {reason}",
            {"reason": reason, "error_code": "CONFIGURATION_ERROR"}
        )
