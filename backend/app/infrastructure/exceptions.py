"""
Custom Exceptions for Score Portal

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any


class ScorePortalError(Exception):
    """Base exception for all Score Portal errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ScorePortalError):
    """Raised when an input row or request fails validation."""

    def __init__(
        self,
        message: str,
        row_number: Optional[int] = None,
        field: Optional[str] = None,
    ):
        details = {}
        if row_number is not None:
            details["row_number"] = row_number
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.row_number = row_number


class StorageError(ScorePortalError):
    """Raised when repository I/O fails. Fatal for the enclosing operation."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(StorageError):
    """Raised when a requested resource is not found."""
    pass


class DuplicateRecordError(ScorePortalError):
    """Raised when a score already exists for (student, test name, test date)."""

    def __init__(
        self,
        student_external_id: str,
        test_name: str,
        test_date: str,
    ):
        super().__init__(
            f"Score for student {student_external_id} in {test_name} ({test_date}) already exists",
            details={
                "student_external_id": student_external_id,
                "test_name": test_name,
                "test_date": test_date,
            },
        )


class ConfigurationError(ScorePortalError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
