"""
Exception hierarchy for the on-call scheduler.

    SchedulerError (base)
    ├── ConfigurationError
    ├── CoverageError            - a rotation has nobody qualified to staff it
    ├── PersistenceError         - storage write failed (fatal)
    ├── DependencyUnavailable    - calendar / chat / mirror failure (recoverable)
    ├── OverrideValidationError  - VALIDATION_ERROR
    ├── DatabaseOperationError   - DATABASE_ERROR
    ├── ScheduleRegenerationError - SCHEDULE_ERROR
    └── MirrorSyncError          - NOTION_ERROR
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SchedulerError(Exception):
    """
    Base exception for all scheduler errors.

    Attributes:
        error_type: String identifier used in structured responses
        message: Human-readable error message
        details: Additional context about the error
    """

    error_type = "UNKNOWN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": False,
            "error": self.message,
            "error_type": self.error_type,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(SchedulerError):
    error_type = "CONFIGURATION_ERROR"


class CoverageError(SchedulerError):
    error_type = "COVERAGE_ERROR"


class PersistenceError(SchedulerError):
    error_type = "DATABASE_ERROR"


class DependencyUnavailable(SchedulerError):
    """An external collaborator failed after its retry budget."""

    error_type = "DEPENDENCY_UNAVAILABLE"

    def __init__(self, dependency: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.dependency = dependency


class OverrideValidationError(SchedulerError):
    error_type = "VALIDATION_ERROR"


class DatabaseOperationError(SchedulerError):
    error_type = "DATABASE_ERROR"

    def __init__(self, message: str, operation: str):
        super().__init__(message, {"operation": operation})
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": f"Database operation failed: {self.message}",
            "error_type": self.error_type,
            "operation": self.operation,
        }


class ScheduleRegenerationError(SchedulerError):
    error_type = "SCHEDULE_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": f"Schedule regeneration failed: {self.message}",
            "error_type": self.error_type,
        }


class MirrorSyncError(SchedulerError):
    error_type = "NOTION_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": False,
            "error": f"Notion sync failed: {self.message}",
            "error_type": self.error_type,
        }
        if self.details:
            result["details"] = self.details
        return result


def override_error_response(exc: BaseException) -> Dict[str, Any]:
    """Map an exception raised while applying an override to its structured response."""
    if isinstance(exc, (OverrideValidationError, DatabaseOperationError, ScheduleRegenerationError, MirrorSyncError)):
        return exc.to_dict()
    if isinstance(exc, PersistenceError):
        return DatabaseOperationError(exc.message, "persist").to_dict()
    return {
        "success": False,
        "error": str(exc) or "Unknown error occurred",
        "error_type": "UNKNOWN_ERROR",
    }
