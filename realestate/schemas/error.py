"""
Error response schemas for API documentation and consistent error formatting.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(None, description="Field name that caused the error", examples=["whatsapp"])
    message: str = Field(..., description="Human-readable error message")
    type: Optional[str] = Field(None, description="Error type identifier", examples=["value_error"])
    input: Optional[Any] = Field(None, description="Input value that caused the error")


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    code: str = Field(..., description="Error code identifier", examples=["NOT_FOUND"])
    message: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="Error timestamp in ISO format")
    request_id: Optional[str] = Field(None, description="Unique request identifier for tracking")
    details: Optional[List[ErrorDetail]] = Field(None, description="Detailed error information for validation errors")


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""

    error: ErrorResponse


def _example(code: str, message: str) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "timestamp": "2025-01-01T00:00:00Z",
            "request_id": "abc12345"
        }
    }


COMMON_ERROR_RESPONSES = {
    401: {
        "description": "Unauthorized - No signed-in user",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("UNAUTHENTICATED", "Authentication required")}}
    },
    404: {
        "description": "Not Found - Document absent or unparseable",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("NOT_FOUND", "Property not found with ID: abc")}}
    },
    422: {
        "description": "Unprocessable Entity - Validation or geocoding failure",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("VALIDATION_ERROR", "Request validation failed")}}
    },
    500: {
        "description": "Internal Server Error",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("INTERNAL_SERVER_ERROR", "An unexpected error occurred")}}
    },
    503: {
        "description": "Service Unavailable - Remote store failure, retryable",
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example("REMOTE_READ_ERROR", "Failed to list properties")}}
    },
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """Get error response schemas for specific status codes."""
    return {
        code: COMMON_ERROR_RESPONSES[code]
        for code in status_codes
        if code in COMMON_ERROR_RESPONSES
    }


def get_common_error_responses() -> Dict[int, Dict[str, Any]]:
    """Get common error response schemas for most endpoints."""
    return get_error_responses(404, 422, 500, 503)


def get_auth_error_responses() -> Dict[int, Dict[str, Any]]:
    """Error responses for endpoints that need a signed-in user."""
    return get_error_responses(401, 500, 503)
