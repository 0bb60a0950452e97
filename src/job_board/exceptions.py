"""
Domain exceptions and FastAPI exception handlers with request ID support
Standardized error response format: { code, message, status_code, details?, request_id }
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from typing import Optional, Dict, Any

from .logging_config import get_request_id

logger = logging.getLogger(__name__)


class JobBoardError(Exception):
    """Base class for domain errors surfaced to API callers"""

    code = "JOB_BOARD_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidCatalogItem(JobBoardError):
    """Unknown plan or add-on identifier"""

    code = "INVALID_CATALOG_ITEM"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, kind: str, value: Any):
        super().__init__(f"Unknown {kind}: {value!r}", {"kind": kind, "value": str(value)})
        self.kind = kind
        self.value = value


class AmountMismatch(JobBoardError):
    """Processor-confirmed amount differs from the quoted amount"""

    code = "AMOUNT_MISMATCH"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, quoted_cents: int, confirmed_cents: int):
        super().__init__(
            "The confirmed payment does not match the quoted price. Please request a new quote.",
            {"quoted_cents": quoted_cents, "confirmed_cents": confirmed_cents},
        )
        self.quoted_cents = quoted_cents
        self.confirmed_cents = confirmed_cents


class PaymentProcessorUnavailable(JobBoardError):
    """Transient processor failure (network, timeout, rate limit, 5xx)"""

    code = "PAYMENT_PROCESSOR_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, message: str = "The payment processor is unavailable. Please try again."):
        super().__init__(message)


class PaymentDeclined(JobBoardError):
    """The processor declined the payment"""

    code = "PAYMENT_DECLINED"
    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(self, message: str = "Your payment was declined."):
        super().__init__(message)


class PaymentProcessorError(JobBoardError):
    """Non-retryable processor rejection"""

    code = "PAYMENT_PROCESSOR_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str = "The payment could not be processed."):
        super().__init__(message)


class PaymentAlreadyCompleted(JobBoardError):
    """A pending payment for the draft already succeeded and must be confirmed first"""

    code = "PAYMENT_ALREADY_COMPLETED"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self):
        super().__init__("A payment for this job posting has already been completed. Confirm it before changing the plan.")


class InvalidTransition(JobBoardError):
    """Attempted a posting lifecycle edge that is not allowed"""

    code = "INVALID_TRANSITION"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, from_state: str, to_state: str, reason: Optional[str] = None):
        message = f"Cannot transition posting from '{from_state}' to '{to_state}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"from_state": from_state, "to_state": to_state})
        self.from_state = from_state
        self.to_state = to_state


class NotFoundError(JobBoardError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")


class OwnershipError(JobBoardError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, resource: str):
        super().__init__(f"You do not have permission to modify this {resource}")


class RoleAlreadySelected(JobBoardError):
    code = "ROLE_ALREADY_SELECTED"
    status_code = status.HTTP_409_CONFLICT


class RoleSwitchBlocked(JobBoardError):
    code = "ROLE_SWITCH_BLOCKED"
    status_code = status.HTTP_409_CONFLICT


class AccessDenied(JobBoardError):
    """An access gate rejection raised from inside a service call"""

    STATUS_BY_REASON = {
        "unauthenticated": status.HTTP_401_UNAUTHORIZED,
        "role_selection_required": status.HTTP_409_CONFLICT,
        "forbidden_role": status.HTTP_403_FORBIDDEN,
    }

    def __init__(self, reason: str, required_role: Optional[str] = None):
        super().__init__(
            "Your account is not allowed to perform this action",
            {"required_role": required_role} if required_role else None,
        )
        self.reason = reason
        self.code = reason.upper()
        self.status_code = self.STATUS_BY_REASON.get(reason, status.HTTP_403_FORBIDDEN)


class PostingNotOpen(JobBoardError):
    code = "POSTING_NOT_OPEN"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self):
        super().__init__("This job posting is no longer accepting applications")


class InvalidRole(JobBoardError):
    code = "INVALID_ROLE"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, value: Any):
        super().__init__(f"Invalid role: {value!r}. Must be one of: business, job_seeker", {"role": str(value)})


class FeatureNotEntitled(JobBoardError):
    code = "FEATURE_NOT_ENTITLED"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self):
        super().__init__("Featured placement requires the featured or unlimited plan, or the boost add-on")


class DuplicateApplication(JobBoardError):
    code = "DUPLICATE_APPLICATION"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self):
        super().__init__("You have already applied to this job")


class ImmutablePostingField(JobBoardError):
    """Edit touched fields that only payments or lifecycle transitions may change"""

    code = "IMMUTABLE_FIELD"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, fields):
        fields = sorted(fields)
        super().__init__(f"These fields cannot be edited: {', '.join(fields)}", {"fields": fields})


class InvalidApplicationStatus(JobBoardError):
    code = "INVALID_APPLICATION_STATUS"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, value: Any):
        super().__init__(
            f"Invalid application status: {value!r}. Must be one of: pending, reviewed, contacted, rejected",
            {"status": str(value)},
        )


class ErrorResponse:
    """
    Standard error response format

    Schema: { code, message, status_code, details?, request_id }
    """

    @staticmethod
    def create(
        message: str,
        code: str,
        status_code: int,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> dict:
        if request_id is None:
            request_id = get_request_id()

        response = {
            "code": code,
            "message": message,
            "status_code": status_code,
        }
        if request_id:
            response["request_id"] = request_id
        if details:
            response["details"] = details
        return response


async def job_board_exception_handler(request: Request, exc: JobBoardError) -> JSONResponse:
    """Render domain errors with their code and status"""
    request_id = get_request_id()

    error_response = ErrorResponse.create(
        message=exc.message,
        code=exc.code,
        status_code=exc.status_code,
        request_id=request_id,
        details=exc.details or None,
    )

    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{exc.code}: {exc.message}",
        extra={"request_id": request_id, "path": request.url.path}
    )

    headers = {"Retry-After": "5"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=error_response, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with request ID"""
    request_id = get_request_id()

    error_code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHENTICATED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        429: "RATE_LIMITED",
        500: "INTERNAL_ERROR",
        503: "SERVICE_UNAVAILABLE"
    }
    error_code = error_code_map.get(exc.status_code, "HTTP_ERROR")

    detail = exc.detail
    error_message = str(detail) if detail else f"HTTP {exc.status_code} error"
    error_details = None

    # Structured detail from the access gate: {"code": ..., "message": ...}
    if isinstance(detail, dict):
        error_message = detail.get("message", str(detail))
        error_code = detail.get("code", error_code)
        error_details = {k: v for k, v in detail.items() if k not in ["code", "message"]} or None

    error_response = ErrorResponse.create(
        message=error_message,
        code=error_code,
        status_code=exc.status_code,
        request_id=request_id,
        details=error_details,
    )

    logger.warning(
        f"HTTP {exc.status_code}: {error_message}",
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation exceptions with request ID"""
    request_id = get_request_id()

    errors = jsonable_encoder(exc.errors())
    error_messages = [f"{err['loc']}: {err['msg']}" for err in errors]
    detail = "; ".join(error_messages)

    error_response = ErrorResponse.create(
        message=f"Validation error: {detail}",
        code="VALIDATION_ERROR",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        request_id=request_id,
        details={"errors": errors},
    )

    logger.warning(
        f"Validation error: {detail}",
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions with request ID"""
    request_id = get_request_id()

    # Don't expose internal error details outside dev
    from .config import config
    error_message = "Internal server error"
    error_details = None

    if config.ENV == "dev":
        error_message = f"Internal server error: {str(exc)}"
        error_details = {"exception_type": type(exc).__name__}

    error_response = ErrorResponse.create(
        message=error_message,
        code="INTERNAL_ERROR",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        request_id=request_id,
        details=error_details,
    )

    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"request_id": request_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all handlers to the application"""
    app.add_exception_handler(JobBoardError, job_board_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
