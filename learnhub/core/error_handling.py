"""
Error Handling System
Engine exceptions, the error code registry and standardized error responses
"""
from typing import Dict, Any, List, NamedTuple, Optional, Union
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException
from datetime import datetime, timezone
import logging
import uuid
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Error categories for classification"""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


class ErrorSeverity(str, Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode(NamedTuple):
    code: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity


ERROR_CODES: Dict[str, ErrorCode] = {
    "INVALID_INPUT": ErrorCode("VAL_1202", "Invalid input", ErrorCategory.VALIDATION, ErrorSeverity.LOW),
    "REQUEST_VALIDATION": ErrorCode("VAL_1203", "Validation failed", ErrorCategory.VALIDATION, ErrorSeverity.LOW),
    "RESOURCE_NOT_FOUND": ErrorCode(
        "RES_1301", "Requested resource not found", ErrorCategory.NOT_FOUND, ErrorSeverity.LOW
    ),
    "METHOD_NOT_ALLOWED": ErrorCode("RES_1305", "Method not allowed", ErrorCategory.VALIDATION, ErrorSeverity.LOW),
    "RESOURCE_CONFLICT": ErrorCode("RES_1302", "Resource conflict", ErrorCategory.CONFLICT, ErrorSeverity.LOW),
    "ATTEMPTS_EXHAUSTED": ErrorCode("QUIZ_1501", "No attempts remaining", ErrorCategory.CONFLICT, ErrorSeverity.LOW),
    "STORAGE_UNAVAILABLE": ErrorCode(
        "DB_1601", "Storage backend unavailable", ErrorCategory.DATABASE, ErrorSeverity.HIGH
    ),
    "INTERNAL_SERVER_ERROR": ErrorCode(
        "INT_1801", "Internal server error occurred", ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL
    ),
}

STATUS_CODE_MAPPING = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.DATABASE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR
}

HTTP_STATUS_KEYS = {
    400: "INVALID_INPUT",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "RESOURCE_CONFLICT",
    503: "STORAGE_UNAVAILABLE",
}


class LearnHubError(Exception):
    """Base class for engine failures surfaced to the caller"""

    error_key = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LearnHubError):
    """Referenced course, quiz, submission, category or notification is absent"""

    error_key = "RESOURCE_NOT_FOUND"


class InvalidInputError(LearnHubError):
    """Malformed filter ranges, unsupported sort keys, out-of-range limits"""

    error_key = "INVALID_INPUT"


class AttemptsExhaustedError(LearnHubError):
    """Quiz resubmission beyond the allowed attempt count"""

    error_key = "ATTEMPTS_EXHAUSTED"


class APIError(BaseModel):
    """Failure envelope; mirrors APIResponse with success=False"""
    success: bool = False
    error_id: str
    error_code: str
    error_category: ErrorCategory
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime
    request_id: Optional[str] = None
    severity: ErrorSeverity = ErrorSeverity.MEDIUM


class ValidationErrorDetail(BaseModel):
    """One failing field of a request body or query"""
    field: str
    message: str
    invalid_value: Any = None
    constraint: Optional[str] = None


class ErrorHandler:
    """Turns exceptions into APIError payloads and logs them"""

    def build_error(
        self,
        error_key: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> APIError:
        entry = ERROR_CODES.get(error_key, ERROR_CODES["INTERNAL_SERVER_ERROR"])
        return APIError(
            error_id=str(uuid.uuid4()),
            error_code=entry.code,
            error_category=entry.category,
            message=message or entry.message,
            details=details or None,
            timestamp=datetime.now(timezone.utc),
            request_id=request_id,
            severity=entry.severity
        )

    def handle_domain_error(self, error: LearnHubError, request_id: Optional[str] = None) -> APIError:
        """NotFound, InvalidInput and AttemptsExhausted raised by the services"""
        return self.build_error(error.error_key, error.message, error.details, request_id)

    def handle_validation_error(
        self,
        validation_error: Union[RequestValidationError, ValidationError],
        request_id: Optional[str] = None
    ) -> APIError:
        """Flatten pydantic errors into one entry per field"""
        fields: List[Dict[str, Any]] = [
            ValidationErrorDetail(
                field=".".join(str(loc) for loc in error["loc"]),
                message=error["msg"],
                invalid_value=error.get("input"),
                constraint=error.get("type")
            ).model_dump(mode="json")
            for error in validation_error.errors()
        ]
        return self.build_error(
            "REQUEST_VALIDATION",
            details={"validation_errors": fields, "error_count": len(fields)},
            request_id=request_id
        )

    def handle_http_exception(self, http_exception: HTTPException, request_id: Optional[str] = None) -> APIError:
        """Routing failures and explicit HTTPExceptions"""
        error_key = HTTP_STATUS_KEYS.get(http_exception.status_code, "INTERNAL_SERVER_ERROR")
        return self.build_error(
            error_key,
            str(http_exception.detail),
            {"status_code": http_exception.status_code},
            request_id
        )

    def handle_generic_exception(self, exception: Exception, request_id: Optional[str] = None) -> APIError:
        details = {
            "exception_type": type(exception).__name__,
            "exception_message": str(exception)
        }
        return self.build_error("INTERNAL_SERVER_ERROR", details=details, request_id=request_id)

    def log_error(self, error: APIError, request: Optional[Request] = None):
        """Log level follows severity"""
        message = f"{error.error_code}: {error.message}"
        if request is not None:
            message = f"{message} ({request.method} {request.url.path})"

        level = {
            ErrorSeverity.CRITICAL: logging.CRITICAL,
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.MEDIUM: logging.WARNING,
        }.get(error.severity, logging.INFO)

        logger.log(
            level,
            message,
            extra={
                "error_id": error.error_id,
                "request_id": error.request_id,
                "event_type": f"error_{error.error_category.value}"
            }
        )


# Global error handler instance
error_handler = ErrorHandler()


def create_error_response(error: APIError) -> JSONResponse:
    """Render an APIError as a JSON response"""
    http_status = STATUS_CODE_MAPPING.get(error.error_category, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(
        status_code=http_status,
        content=error.model_dump(mode="json", exclude_none=True),
        headers={
            "X-Error-ID": error.error_id,
            "X-Error-Code": error.error_code
        }
    )


def get_request_id(request: Request) -> str:
    """Request id set by the logging middleware, the caller's header, or a fresh one"""
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
    return request_id or str(uuid.uuid4())
