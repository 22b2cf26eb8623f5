from __future__ import annotations

import socket
from typing import Any

import httpx
from pydantic import BaseModel


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def payload(self, *, include_details: bool) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if include_details and self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(ApiError):
    status_code = 400
    code = "VALIDATION_FAILED"
    default_message = "Validation failed"

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        super().__init__()
        self.errors = errors

    def payload(self, *, include_details: bool) -> dict[str, Any]:
        del include_details
        return {"errors": self.errors}


class Unauthenticated(ApiError):
    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class Forbidden(ApiError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to modify this resource"


class NotFound(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class NoFieldsToUpdate(ApiError):
    status_code = 400
    code = "NO_FIELDS_TO_UPDATE"
    default_message = "No fields to update"


class Conflict(ApiError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists"


class ConfigurationError(ApiError):
    status_code = 500
    code = "CONFIG_ERROR"
    default_message = "The AI service is not configured. Contact the administrator."


class InternalError(ApiError):
    pass


class ExternalFailure(BaseModel):
    code: str
    title: str
    message: str
    http_status: int


NETWORK_ERROR = ExternalFailure(
    code="NETWORK_ERROR",
    title="No connection",
    message="Could not reach the service. Check your connection and try again.",
    http_status=503,
)
TIMEOUT_ERROR = ExternalFailure(
    code="TIMEOUT_ERROR",
    title="Request timed out",
    message="The request took too long. Please try again.",
    http_status=504,
)
AUTH_ERROR = ExternalFailure(
    code="AUTH_ERROR",
    title="Authentication error",
    message="There was a problem with the service credentials. Contact the administrator.",
    http_status=502,
)
RATE_LIMIT_ERROR = ExternalFailure(
    code="RATE_LIMIT",
    title="Too many requests",
    message="The request limit was reached. Wait a moment and try again.",
    http_status=429,
)
EXTERNAL_SERVICE_ERROR = ExternalFailure(
    code="EXTERNAL_SERVICE_ERROR",
    title="Service error",
    message="The AI service is not available right now. Please try again later.",
    http_status=502,
)

NETWORK_ERROR_MARKERS = (
    "failed host lookup",
    "no address associated",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "connection refused",
)
NETWORK_ERROR_CODES = {"ENOTFOUND", "EAI_AGAIN", "ECONNREFUSED", "ECONNRESET"}


class ExternalServiceFailure(ApiError):
    def __init__(self, failure: ExternalFailure, *, details: Any = None) -> None:
        super().__init__(failure.message, details=details)
        self.failure = failure
        self.status_code = failure.http_status
        self.code = failure.code

    def payload(self, *, include_details: bool) -> dict[str, Any]:
        error: dict[str, Any] = {
            "code": self.failure.code,
            "title": self.failure.title,
            "message": self.failure.message,
        }
        if include_details and self.details is not None:
            error["details"] = self.details
        return {"ok": False, "error": error}


def _status_of(error: BaseException) -> int | None:
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def _is_network_error(error: BaseException, message: str) -> bool:
    if isinstance(error, (httpx.ConnectError, socket.gaierror, ConnectionError)):
        return True
    if str(getattr(error, "code", "")) in NETWORK_ERROR_CODES:
        return True
    return any(marker in message for marker in NETWORK_ERROR_MARKERS)


def _is_timeout(error: BaseException, message: str) -> bool:
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return True
    if str(getattr(error, "code", "")) == "ETIMEDOUT":
        return True
    return "timeout" in message or "timed out" in message


def classify_external_error(error: BaseException) -> ExternalFailure:
    message = str(error).lower()
    status = _status_of(error)

    if _is_network_error(error, message):
        return NETWORK_ERROR
    if _is_timeout(error, message):
        return TIMEOUT_ERROR
    if status == 401 or "unauthorized" in message or "invalid api key" in message:
        return AUTH_ERROR
    if status == 429 or "rate limit" in message:
        return RATE_LIMIT_ERROR
    return EXTERNAL_SERVICE_ERROR
