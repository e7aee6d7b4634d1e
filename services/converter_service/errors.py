"""
Converter Exceptions
"""

from typing import Optional, Dict, Any


class ConverterError(Exception):
    """Base exception for the converter service."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class RequestValidationError(ConverterError):
    """Raised when a queue message body is not a valid conversion request."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class TransientIOError(ConverterError):
    """Raised when a network, storage or disk operation fails."""

    def __init__(
        self,
        message: str,
        code: str = "TRANSIENT_IO_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class StorageError(TransientIOError):
    """Raised when an object storage operation fails."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message, "STORAGE_ERROR", {"key": key} if key else None)
        self.key = key


class QueueError(TransientIOError):
    """Raised when a work queue operation fails."""

    def __init__(self, message: str, message_id: Optional[str] = None):
        super().__init__(
            message, "QUEUE_ERROR", {"message_id": message_id} if message_id else None
        )
        self.message_id = message_id


class ExternalToolError(ConverterError):
    """Raised when frame extraction or archive building fails."""

    def __init__(
        self,
        tool: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(f"{tool} failed: {message}", "EXTERNAL_TOOL_ERROR", details)
        self.tool = tool


class NotificationError(ConverterError):
    """Raised when the tracking service cannot be notified."""

    def __init__(
        self,
        message: str = "Error sending status of conversion",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "NOTIFICATION_ERROR", details)
        self.status_code = status_code
