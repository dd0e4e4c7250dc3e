"""Typed API errors.

Every error raised on purpose by the services derives from ``APIError``, a
``fastapi.HTTPException`` carrying a fixed status and a machine-readable
``code``. The handlers in ``cinelog.main`` render them as
``{"error": <message>, "code": <code>}``.
"""

from typing import Optional

from fastapi import HTTPException, status

MAX_UPSTREAM_MESSAGE_LENGTH = 200


class APIError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Bad Request"


class UnauthorizedError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_message = "Unauthorized"


class ForbiddenError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Forbidden"


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not Found"


class ConflictError(APIError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Conflict"


class ConfigurationError(APIError):
    code = "configuration_error"
    default_message = "Server is misconfigured"


class UpstreamError(APIError):
    """The metadata provider answered with a non-success status."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"
    default_message = "Upstream service error"

    def __init__(self, upstream_status: int, message: Optional[str] = None):
        self.upstream_status = upstream_status
        # A missing title upstream is a missing title for our callers too.
        if upstream_status == status.HTTP_404_NOT_FOUND:
            self.status_code = status.HTTP_404_NOT_FOUND
        text = f"TMDB API error: {upstream_status}"
        if message:
            text = f"{text} - {message[:MAX_UPSTREAM_MESSAGE_LENGTH]}"
        super().__init__(text)


class UpstreamParseError(APIError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_parse_error"
    default_message = "Upstream service returned an invalid response"


class UpstreamUnavailableError(APIError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "upstream_unavailable"
    default_message = "Upstream service unavailable"


class UpstreamTimeoutError(UpstreamUnavailableError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    code = "upstream_timeout"
    default_message = "Upstream service timed out"


STATUS_CODES = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


def code_for(exc: HTTPException) -> str:
    """Machine code for any HTTPException, typed or not."""
    code = getattr(exc, "code", None)
    if code:
        return code
    return STATUS_CODES.get(exc.status_code, "internal_error" if exc.status_code >= 500 else "error")
