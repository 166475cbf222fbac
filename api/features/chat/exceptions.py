"""Exceptions for the Chat feature."""
from typing import Any, Dict, Optional

from api.shared.exceptions import (
    ChatAPIException,
    DatabaseError,
    ExternalServiceError,
    ValidationError,
)


class ChatException(ChatAPIException):
    """Base exception for chat operations."""

    pass


class InvalidMessageError(ValidationError, ChatException):
    """Raised when the inbound message is empty after trimming."""

    def __init__(self, message: str = "Empty message"):
        super().__init__(message)
        self.error_code = "INVALID_INPUT"


class StorageUnavailableError(DatabaseError, ChatException):
    """Raised when any conversation store operation fails."""

    def __init__(
        self,
        message: str = "Database connection lost.",
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details: Dict[str, Any] = {"operation": operation} if operation else {}
        if details:
            error_details.update(details)
        super().__init__(message, error_details)
        self.error_code = "STORAGE_UNAVAILABLE"


class CompletionUnavailableError(ExternalServiceError, ChatException):
    """Raised when the completion provider fails to produce a reply."""

    def __init__(
        self,
        message: str = "AI service timeout. Please try again.",
        model: Optional[str] = None,
    ):
        super().__init__("completion", message, {"model": model} if model else None)
        self.error_code = "SERVICE_UNAVAILABLE"
