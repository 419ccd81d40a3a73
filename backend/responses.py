"""Standardized response infrastructure for API endpoints.

Provides consistent response format with structured codes and messages.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse


class ResponseCode(str, Enum):
    """Response codes for API responses.

    Ranges: 0xxx=Success, 1xxx=Client Error, 2xxx=Server Error
    """

    # Success codes
    SUCCESS = "0000"
    DOCUMENT_OPENED = "0002"
    DOCUMENT_CLOSED = "0003"
    PROGRESS_SAVED = "0004"

    # Client errors
    VALIDATION_ERROR = "1000"
    UNSUPPORTED_FILE_TYPE = "1001"
    FILE_TOO_LARGE = "1002"
    DOCUMENT_NOT_FOUND = "1003"
    EMPTY_FILE = "1004"
    CORRUPTED_FILE = "1005"
    SESSION_BUSY = "1007"
    PAGE_OUT_OF_RANGE = "1008"
    DOCUMENT_SUPERSEDED = "1009"

    # Server errors
    INTERNAL_ERROR = "2000"


# Response messages mapped to codes
RESPONSE_MESSAGES: dict[ResponseCode, str] = {
    ResponseCode.SUCCESS: "Operation completed successfully",
    ResponseCode.DOCUMENT_OPENED: "Document opened successfully",
    ResponseCode.DOCUMENT_CLOSED: "Document closed",
    ResponseCode.PROGRESS_SAVED: "Reading progress saved",
    ResponseCode.VALIDATION_ERROR: "Request validation failed",
    ResponseCode.UNSUPPORTED_FILE_TYPE: "Unsupported file type. Please upload PDF or EPUB.",
    ResponseCode.FILE_TOO_LARGE: "File exceeds maximum allowed size",
    ResponseCode.DOCUMENT_NOT_FOUND: "No document is open",
    ResponseCode.EMPTY_FILE: "Uploaded file is empty",
    ResponseCode.CORRUPTED_FILE: "Couldn't parse the file. Please make sure it is a valid PDF or EPUB.",
    ResponseCode.SESSION_BUSY: "The assistant is still answering the previous question",
    ResponseCode.PAGE_OUT_OF_RANGE: "Page index is out of range",
    ResponseCode.DOCUMENT_SUPERSEDED: "A newer upload replaced this one",
    ResponseCode.INTERNAL_ERROR: "An internal error occurred",
}

# HTTP status codes for each response code
HTTP_STATUS_MAP: dict[ResponseCode, int] = {
    ResponseCode.SUCCESS: 200,
    ResponseCode.DOCUMENT_OPENED: 201,
    ResponseCode.DOCUMENT_CLOSED: 200,
    ResponseCode.PROGRESS_SAVED: 200,
    ResponseCode.VALIDATION_ERROR: 422,
    ResponseCode.UNSUPPORTED_FILE_TYPE: 400,
    ResponseCode.FILE_TOO_LARGE: 413,
    ResponseCode.DOCUMENT_NOT_FOUND: 404,
    ResponseCode.EMPTY_FILE: 400,
    ResponseCode.CORRUPTED_FILE: 400,
    ResponseCode.SESSION_BUSY: 409,
    ResponseCode.PAGE_OUT_OF_RANGE: 422,
    ResponseCode.DOCUMENT_SUPERSEDED: 409,
    ResponseCode.INTERNAL_ERROR: 500,
}


def get_message(code: ResponseCode) -> str:
    """Get the message for a response code."""
    return RESPONSE_MESSAGES.get(code, "Unknown error")


def get_http_status(code: ResponseCode) -> int:
    """Get HTTP status code for a response code."""
    return HTTP_STATUS_MAP.get(code, 500)


def success_dict(
    code: ResponseCode,
    data: Any = None,
    custom_message: str | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Build a standardized success response dictionary."""
    return {
        "code": code.value,
        "success": True,
        "message": custom_message or get_message(code),
        "timestamp": datetime.now(UTC).isoformat(),
        "request_id": request_id,
        "data": data,
    }


def error_dict(
    code: ResponseCode,
    custom_message: str | None = None,
    error_details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Build a standardized error response dictionary."""
    return {
        "code": code.value,
        "success": False,
        "message": custom_message or get_message(code),
        "timestamp": datetime.now(UTC).isoformat(),
        "request_id": request_id,
        "error_details": error_details,
    }


# --- JSONResponse helpers ---


def success_response(
    code: ResponseCode,
    data: Any = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a JSONResponse with success format."""
    return JSONResponse(
        content=success_dict(code, data, request_id=request_id),
        status_code=get_http_status(code),
    )


def error_response(
    code: ResponseCode,
    custom_message: str | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a JSONResponse with error format."""
    return JSONResponse(
        content=error_dict(code, custom_message, request_id=request_id),
        status_code=get_http_status(code),
    )
