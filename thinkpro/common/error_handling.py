"""
Error Handling System for ThinkPro

This module provides the error taxonomy used by the assessment services:
1. A base exception carrying a stable error code and HTTP status
2. Client error classes for validation, authorization, conflicts and state
3. Structured error logging and API error response generation
"""

import logging
import traceback
from enum import Enum
from typing import Any, Dict, Optional

from thinkpro.common.logger import get_logger

logger = get_logger(__name__)


class ErrorCode(Enum):
    """Standard error codes for ThinkPro"""
    # General errors
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    AUTHENTICATION_ERROR = "authentication_error"
    AUTHORIZATION_ERROR = "authorization_error"
    NOT_FOUND_ERROR = "not_found_error"
    CONFLICT_ERROR = "conflict_error"
    STATE_ERROR = "state_error"

    # Assessment errors
    ASSESSMENT_NOT_FOUND = "assessment_not_found"
    ATTEMPT_NOT_FOUND = "attempt_not_found"
    QUESTION_NOT_IN_ASSESSMENT = "question_not_in_assessment"
    ASSESSMENT_NOT_AVAILABLE = "assessment_not_available"
    ASSESSMENT_LOCKED = "assessment_locked"
    ALREADY_COMPLETED = "already_completed"
    ALREADY_SUBMITTED = "already_submitted"
    TIME_EXPIRED = "time_expired"
    NOT_ELIGIBLE = "not_eligible"
    HAS_ATTEMPTS = "has_attempts"

    # Infrastructure errors
    DATABASE_ERROR = "database_error"


class ThinkProError(Exception):
    """Base exception class for all handled ThinkPro errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        """Convert the exception to the API error envelope"""
        response = {
            "success": False,
            "message": self.message,
            "code": self.code.value
        }
        if include_details and self.details:
            response["details"] = self.details
        return response

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.details:
            base_str += f" (details: {self.details})"
        if self.cause:
            base_str += f" caused by {type(self.cause).__name__}: {str(self.cause)}"
        return base_str


class ValidationError(ThinkProError):
    """Missing or malformed input; nothing was changed"""

    status_code = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR
    ):
        super().__init__(message=message, code=code, details=details)


class AuthenticationError(ThinkProError):
    """The caller could not be identified"""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, code=ErrorCode.AUTHENTICATION_ERROR)


class AuthorizationError(ThinkProError):
    """Role, scope or ownership check failed"""

    status_code = 403

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.AUTHORIZATION_ERROR
    ):
        super().__init__(message=message, code=code, details=details)


class NotFoundError(ThinkProError):
    """A requested resource does not exist or is not visible to the caller"""

    status_code = 404

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NOT_FOUND_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code=code, details=details)


class ConflictError(ThinkProError):
    """The request collides with existing state; nothing was changed"""

    status_code = 409

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFLICT_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message=message, code=code, details=details, cause=cause)


class StateError(ThinkProError):
    """The resource is in a state that does not allow the operation"""

    status_code = 400

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.STATE_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code=code, details=details)


class AttemptExpiredError(StateError):
    """
    The attempt's time window has passed.

    Unlike every other handled error this one is raised after a state change:
    the attempt has already been moved to ``timeout`` and persisted.
    """

    def __init__(self, attempt_id: str):
        super().__init__(
            message="Time is up. Assessment has been auto-submitted.",
            code=ErrorCode.TIME_EXPIRED,
            details={"attempt_id": attempt_id}
        )


def error_response(error: Exception, include_details: bool = True) -> Dict[str, Any]:
    """
    Generate a standardized API error response.

    Unhandled exceptions never leak their message; they map to a generic
    internal error.

    Args:
        error: The error to generate a response for
        include_details: Whether to include error details

    Returns:
        Standardized error response dictionary
    """
    if isinstance(error, ThinkProError):
        return error.to_dict(include_details=include_details)
    return {
        "success": False,
        "message": "Internal server error",
        "code": ErrorCode.UNKNOWN_ERROR.value
    }


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    include_stack_trace: bool = True
) -> None:
    """
    Log an error with standardized format.

    Handled client errors are logged at WARNING without a stack trace,
    anything else at ERROR.

    Args:
        error: The error to log
        context: Additional context to include
        include_stack_trace: Whether to include stack trace for unexpected errors
    """
    context_str = ""
    if context:
        context_str = " (context: " + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"

    if isinstance(error, ThinkProError):
        logger.warning(f"ERROR [{error.code.value}]: {error.message}{context_str}")
        return

    message = f"ERROR [{ErrorCode.UNKNOWN_ERROR.value}]: {type(error).__name__}: {error}{context_str}"
    if include_stack_trace:
        message += "\n" + "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    logger.log(logging.ERROR, message)
