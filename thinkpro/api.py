"""
Shared API utilities for the ThinkPro assessment service.

This module provides:
- The standard response envelope
- Exception handlers that map errors onto that envelope
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from thinkpro.common.error_handling import ErrorCode, ThinkProError, error_response, log_error
from thinkpro.common.logger import get_logger

logger = get_logger(__name__)


class APIResponse:
    """Standard API response structure"""

    @staticmethod
    def success(
        data: Any = None,
        message: str = "Success",
        pagination: Optional[Dict[str, int]] = None
    ) -> Dict[str, Any]:
        """
        Create a success response.

        Args:
            data: Response data
            message: Success message
            pagination: Optional ``{page, limit, pages, total}`` block

        Returns:
            Response dictionary
        """
        response = {
            "success": True,
            "message": message,
            "data": data
        }
        if pagination is not None:
            response["pagination"] = pagination
        return response

    @staticmethod
    def error(message: str, details: Optional[Any] = None,
              code: Optional[str] = None) -> Dict[str, Any]:
        """
        Create an error response.

        Args:
            message: Error message
            details: Optional error details
            code: Optional error code

        Returns:
            Response dictionary
        """
        response = {
            "success": False,
            "message": message
        }

        if code:
            response["code"] = code

        if details:
            response["details"] = details

        return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors and return a standardized response.

    Args:
        request: The incoming request
        exc: The validation exception

    Returns:
        A 422 JSON response with per-field details
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "location": list(error.get("loc", [])),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        })

    logger.warning(f"Request validation failed on {request.url.path}: {len(error_details)} error(s)")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=APIResponse.error(
            "Validation error",
            details=error_details,
            code=ErrorCode.VALIDATION_ERROR.value
        )
    )


async def thinkpro_exception_handler(request: Request, exc: ThinkProError) -> JSONResponse:
    """Map a handled ThinkPro error onto its status code and the error envelope."""
    log_error(exc, context={"method": request.method, "path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected error and return a generic internal error."""
    log_error(exc, context={"method": request.method, "path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(exc)
    )
