from __future__ import annotations

from typing import Any

from pawgate.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    # Build a consistent error envelope example for OpenAPI docs.
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(description: str, *, code: str, message: str) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": _error_example(code=code, message=message)}},
    }


DEFAULT_ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    422: _response("Validation error", code="REQUEST_VALIDATION_ERROR", message="Validation error"),
    500: _response("Internal server error", code="INTERNAL_ERROR", message="Internal server error"),
}

PARTNER_ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    **DEFAULT_ERROR_RESPONSES,
    400: _response(
        "Missing required fields",
        code="INVALID_REQUEST",
        message="Dog ID and verification reason are required",
    ),
    401: _response("Unauthorized", code="AUTH_UNAUTHORIZED", message="Invalid or expired token"),
    403: _response(
        "Partner not eligible",
        code="PARTNER_INELIGIBLE",
        message="Partner is not eligible for Dog ID verification",
    ),
    404: _response("Not found", code="DOG_ID_NOT_FOUND", message="Dog ID not found"),
    429: _response("Daily limit reached", code="RATE_LIMITED", message="Daily API rate limit exceeded"),
}
