"""Error types and handlers producing the ``{"success": false, ...}`` envelope."""

import logging
import traceback
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.core.document_store import StorageError
from src.core.gateway import GatewayError
from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Error rendered to the client with its own status code.

    Subclasses fix ``status_code``, ``error_type`` and a default message;
    callers may pass a more specific message and field-level details.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_message = "Resource not found"


class ValidationError(APIError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"
    default_message = "Validation error"


class AuthorizationError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "authorization_error"
    default_message = "Access denied"


class InvalidSignatureError(APIError):
    """Signature did not match the payload. The caller is untrusted."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "invalid_signature"
    default_message = "Invalid signature"


class MalformedPayloadError(APIError):
    """Signed payload is missing required fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "malformed_payload"
    default_message = "Malformed payload"


class OrderNotFoundError(NotFoundError):
    """Referenced order was never created by this service."""

    error_type = "order_not_found"
    default_message = "Order not found"

    def __init__(self, order_id: str) -> None:
        super().__init__(details=[{"loc": ["order_id"], "msg": order_id, "type": "not_found"}])
        self.order_id = order_id


class GatewayUnavailableError(APIError):
    """The payment gateway could not be reached. Retry with backoff."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_type = "gateway_unavailable"
    default_message = "Payment gateway unavailable"


class StorageFailureError(APIError):
    """The datastore failed after bounded retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "storage_failure"
    default_message = "Payment could not be recorded, please retry"


def to_api_error(exc: Exception) -> APIError | None:
    """Translate a domain exception that escaped its service boundary."""
    if isinstance(exc, APIError):
        return exc
    if isinstance(exc, StorageError):
        return StorageFailureError()
    if isinstance(exc, GatewayError):
        return GatewayUnavailableError()
    return None


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Render an error envelope as a JSON response."""
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def render_api_error(exc: APIError, request_id: str | None = None) -> JSONResponse:
    """Log and render an APIError.

    Client errors are logged at warning level, server-side faults at error.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "API error: %s - %s",
        exc.error_type,
        exc.message,
        extra={"request_id": request_id, "status_code": exc.status_code},
    )
    return create_error_response(
        error_type=exc.error_type,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
    )


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for APIError and the domain errors it wraps."""
    api_error = to_api_error(exc) or APIError()
    if not isinstance(exc, APIError):
        logger.error("%s escaped service boundary: %s", type(exc).__name__, exc)
    return render_api_error(api_error, request.headers.get("X-Request-ID"))


def register_exception_handlers(app: FastAPI) -> None:
    """Register envelope rendering for errors raised inside route handlers."""
    for exc_class in (APIError, StorageError, GatewayError):
        app.add_exception_handler(exc_class, domain_exception_handler)


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Last-resort middleware turning any uncaught exception into an envelope.

    Full stack traces are logged; clients only see a generic message.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except HTTPException as e:
        logger.warning("HTTP exception: %s - %s", e.status_code, e.detail, extra={"request_id": request_id})
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        api_error = to_api_error(e)
        if api_error is not None:
            return render_api_error(api_error, request_id)

        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
