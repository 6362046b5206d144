"""Error types and response models for Anthropic API compatibility.

Provides error type enums with HTTP status code mapping and
error response structures matching the official API format.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class ErrorType(str, Enum):
    """Anthropic API error types with corresponding HTTP status codes.

    - invalid_request_error (400): Invalid request parameters
    - authentication_error (401): Engine could not authenticate
    - not_found_error (404): Resource not found
    - api_error (500): Engine failure, abort or timeout
    - connection_error (500): Connection reset while talking to the engine
    """

    INVALID_REQUEST = "invalid_request_error"
    AUTHENTICATION = "authentication_error"
    NOT_FOUND = "not_found_error"
    API = "api_error"
    CONNECTION = "connection_error"

    @property
    def status_code(self) -> int:
        """Get HTTP status code for this error type."""
        return {
            ErrorType.INVALID_REQUEST: 400,
            ErrorType.AUTHENTICATION: 401,
            ErrorType.NOT_FOUND: 404,
            ErrorType.API: 500,
            ErrorType.CONNECTION: 500,
        }[self]


class ErrorDetail(BaseModel):
    """Error detail object."""
    type: str
    message: str


class ErrorResponse(BaseModel):
    """Error response body."""
    type: Literal["error"] = "error"
    error: ErrorDetail
