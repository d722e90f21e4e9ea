"""
Error handling module for the Condition Advisor service

Exception hierarchy with proper HTTP status codes:
- Custom exception classes with proper categorization
- Automatic status code mapping
- Transient vs permanent failure classification
"""
import logging
import traceback
from typing import Optional, Dict, Any
from fastapi import status
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Structured error response model"""
    error_code: str
    error_message: str
    error_details: Optional[Dict[str, Any]] = None
    timestamp: str


class AdvisorServiceError(Exception):
    """
    Base exception for all service errors.

    Attributes:
        http_status: HTTP status code for response
        error_code: Machine-readable error code
        user_message: User-friendly error message
        log_level: Logging level (info, warning, error, critical)
        is_transient: True if error is transient (can retry)
    """
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    user_message: str = "An error occurred"
    log_level: str = "error"
    is_transient: bool = False

    def __init__(self, message: str = None, details: Dict[str, Any] = None):
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInputError(AdvisorServiceError):
    """Raised when request input validation fails"""
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_INPUT"
    user_message = "Invalid input provided"
    log_level = "warning"


class InvalidGenderError(AdvisorServiceError):
    """Raised when the diagnosis gender is neither 'male' nor 'female'"""
    error_code = "INVALID_GENDER"
    user_message = "Gender must be 'male' or 'female'"
    log_level = "warning"


class PrerequisiteMissingError(AdvisorServiceError):
    """Raised when medication info is requested before condition info exists"""
    http_status = status.HTTP_200_OK
    error_code = "PREREQUISITE_MISSING"
    user_message = "Could not process query, GET /diagnosis/condition before this endpoint"
    log_level = "info"


class UpstreamServiceError(AdvisorServiceError):
    """Raised when an external service (ApiMedic, knowledge source) fails"""
    http_status = status.HTTP_502_BAD_GATEWAY
    error_code = "EXTERNAL_SERVICE_FAILED"
    user_message = "External service failed"
    is_transient = True


class ScrapeError(UpstreamServiceError):
    """Raised when a knowledge source cannot be fetched or parsed"""
    error_code = "SCRAPE_FAILED"
    user_message = "Knowledge source could not be scraped"


class ErrorReporter:
    """Maps exceptions to HTTP status codes and creates structured responses."""

    ERROR_CODES = {
        "INVALID_INPUT": "Invalid input provided",
        "INVALID_GENDER": "Gender must be 'male' or 'female'",
        "EXTERNAL_SERVICE_FAILED": "External service failed",
        "STORAGE_ERROR": "Storage operation failed",
        "INTERNAL_SERVER_ERROR": "Internal server error",
        "NOT_FOUND": "Resource not found",
    }

    @staticmethod
    def create_error_response(
        error_code: str,
        error_message: Optional[str] = None,
        error_details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ) -> JSONResponse:
        """Create a structured error response with proper status code"""
        if error_message is None:
            error_message = ErrorReporter.ERROR_CODES.get(error_code, "Unknown error")

        error_response = ErrorResponse(
            error_code=error_code,
            error_message=error_message,
            error_details=error_details,
            timestamp=datetime.now(timezone.utc).isoformat()
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump()
        )

    @staticmethod
    def log_error(
        error_code: str,
        error_message: str,
        error_details: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None,
        log_level: str = "error"
    ):
        """Log error with structured information"""
        log_data = {
            "error_code": error_code,
            "error_details": error_details or {},
        }

        if exception:
            log_data["exception_type"] = type(exception).__name__
            log_data["traceback"] = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )

        log_func = getattr(logger, log_level, logger.error)
        log_func(f"Error: {error_code} - {error_message}", extra=log_data)

    @staticmethod
    def from_service_exception(exc: AdvisorServiceError) -> JSONResponse:
        """Convert AdvisorServiceError to JSONResponse with automatic status mapping"""
        ErrorReporter.log_error(
            error_code=exc.error_code,
            error_message=exc.message,
            error_details=exc.details,
            exception=exc,
            log_level=exc.log_level
        )

        return ErrorReporter.create_error_response(
            error_code=exc.error_code,
            error_message=exc.message,
            error_details=exc.details,
            status_code=exc.http_status
        )

    @staticmethod
    def handle_exception(
        exception: Exception,
        error_code: str = "INTERNAL_SERVER_ERROR",
        error_details: Optional[Dict[str, Any]] = None
    ) -> JSONResponse:
        """Handle an unexpected exception and return a generic 500 response"""
        ErrorReporter.log_error(
            error_code=error_code,
            error_message=str(exception),
            error_details=error_details,
            exception=exception
        )

        # Internal details stay in the log
        return ErrorReporter.create_error_response(
            error_code=error_code,
            error_details=error_details
        )


async def structured_exception_handler(request, exc):
    """Global exception handler for FastAPI

    1. AdvisorServiceError subclasses -> Automatic status code mapping
    2. HTTPException -> Standard HTTP error handling
    3. Other exceptions -> Generic 500 Internal Server Error
    """
    if isinstance(exc, AdvisorServiceError):
        return ErrorReporter.from_service_exception(exc)

    elif isinstance(exc, HTTPException):
        error_code = {
            400: "INVALID_INPUT",
            404: "NOT_FOUND",
            405: "METHOD_NOT_ALLOWED",
            503: "SERVICE_UNAVAILABLE",
        }.get(exc.status_code, "INTERNAL_SERVER_ERROR")

        return ErrorReporter.create_error_response(
            error_code=error_code,
            error_message=str(exc.detail),
            status_code=exc.status_code
        )

    else:
        return ErrorReporter.handle_exception(exc)
