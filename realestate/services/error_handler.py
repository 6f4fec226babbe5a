"""
Error handling service for consistent error response formatting and logging.
Every handler answers with the same ``{"error": {...}}`` envelope; remote store
failures are logged with their underlying cause and tell clients when to retry.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as PydanticValidationError
from realestate.utils.exceptions import APIException, RemoteStoreError
import logging
import uuid

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying after a store outage
STORE_RETRY_AFTER_SECONDS = 5


class ErrorHandlerService:
    """
    Builds error responses for the API exception handlers.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Format error response in a consistent structure.

        Args:
            error_code: Error code identifier
            message: Human-readable error message
            details: Optional list of detailed error information
            request_id: Optional request identifier for tracking

        Returns:
            Formatted error response dictionary
        """
        error: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": ErrorHandlerService._get_current_timestamp(),
        }
        if details:
            error["details"] = details
        if request_id:
            error["request_id"] = request_id
        return {"error": error}

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Answer a domain exception with its own status and code.
        Store outages are logged as errors with their cause; other domain errors are warnings.
        """
        request_id = ErrorHandlerService._generate_request_id()
        headers = dict(exception.headers or {})

        if isinstance(exception, RemoteStoreError):
            ErrorHandlerService._log_store_failure(exception, request_id, request)
            headers.setdefault("Retry-After", str(STORE_RETRY_AFTER_SECONDS))
        else:
            logger.warning(
                f"[{request_id}] {exception.error_code}: {exception.detail}",
                extra={
                    "error_code": exception.error_code,
                    "status_code": exception.status_code,
                    "request_id": request_id,
                    "path": ErrorHandlerService._request_path(request),
                }
            )

        return ErrorHandlerService._respond(
            exception.status_code,
            exception.error_code or "API_ERROR",
            exception.detail,
            request_id,
            details=getattr(exception, "field_errors", None),
            headers=headers or None,
        )

    @staticmethod
    def handle_validation_error(
        exception: PydanticValidationError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Answer request or model validation failures with one entry per offending field."""
        request_id = ErrorHandlerService._generate_request_id()

        details = [
            {
                "field": " -> ".join(str(part) for part in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
                "input": error.get("input"),
            }
            for error in exception.errors()
        ]

        logger.warning(
            f"[{request_id}] Validation failed for {len(details)} field(s)",
            extra={"request_id": request_id, "path": ErrorHandlerService._request_path(request)}
        )

        return ErrorHandlerService._respond(
            422, "VALIDATION_ERROR", "Request validation failed", request_id, details=details
        )

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle plain HTTP exceptions raised by the framework."""
        request_id = ErrorHandlerService._generate_request_id()
        logger.info(f"[{request_id}] HTTP {exception.status_code}: {exception.detail}")

        return ErrorHandlerService._respond(
            exception.status_code,
            f"HTTP_{exception.status_code}",
            str(exception.detail),
            request_id,
            headers=getattr(exception, "headers", None),
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Log an unhandled exception with its traceback and answer with a generic 500.
        """
        request_id = ErrorHandlerService._generate_request_id()

        logger.error(
            f"[{request_id}] Unhandled {type(exception).__name__}: {exception}",
            extra={
                "request_id": request_id,
                "path": ErrorHandlerService._request_path(request),
                "exception_type": type(exception).__name__,
            },
            exc_info=exception
        )

        # Internal details stay in the log
        return ErrorHandlerService._respond(
            500,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred. Please try again later.",
            request_id,
        )

    @staticmethod
    def _log_store_failure(
        exception: RemoteStoreError,
        request_id: str,
        request: Optional[Request]
    ) -> None:
        cause = exception.cause
        logger.error(
            f"[{request_id}] {exception.error_code}: {exception.detail}",
            extra={
                "error_code": exception.error_code,
                "request_id": request_id,
                "path": ErrorHandlerService._request_path(request),
                "cause_type": type(cause).__name__ if cause is not None else None,
                "property_id": getattr(exception, "property_id", None),
            },
            exc_info=cause
        )

    @staticmethod
    def _respond(
        status_code: int,
        error_code: str,
        message: str,
        request_id: str,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> JSONResponse:
        body = ErrorHandlerService.format_error_response(error_code, message, details, request_id)
        return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)

    @staticmethod
    def _request_path(request: Optional[Request]) -> Optional[str]:
        return request.url.path if request is not None else None

    @staticmethod
    def _generate_request_id() -> str:
        """Generate a unique request ID for error tracking."""
        return str(uuid.uuid4())[:8]

    @staticmethod
    def _get_current_timestamp() -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
