"""Error taxonomy for REST API calls.

Every failure surfaces as an ``ApiError`` subclass carrying a closed
``ErrorKind``, so callers can branch on the kind (re-auth, cooldown, ...)
instead of parsing strings.
"""

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ENDPOINT = "invalid_endpoint"
    NETWORK_FAILURE = "network_failure"
    INVALID_RESPONSE_SHAPE = "invalid_response_shape"
    DECODING_FAILED = "decoding_failed"
    BAD_REQUEST = "bad_request"
    AUTHENTICATION_FAILED = "authentication_failed"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


class ApiError(Exception):
    """Base class for every error raised by the client."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str = "", status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self):
        if self.status is not None:
            return f"{self.kind.value} ({self.status}): {self.message}"
        return f"{self.kind.value}: {self.message}"


class InvalidEndpointError(ApiError):
    kind = ErrorKind.INVALID_ENDPOINT


class InvalidFilterError(InvalidEndpointError, ValueError):
    """A filter that cannot be serialized (e.g. operator without a value)."""


class NetworkFailureError(ApiError):
    kind = ErrorKind.NETWORK_FAILURE


class InvalidResponseShapeError(ApiError):
    kind = ErrorKind.INVALID_RESPONSE_SHAPE


class DecodingFailedError(ApiError):
    kind = ErrorKind.DECODING_FAILED


class ClientError(ApiError):
    """4xx responses."""


class BadRequestError(ClientError):
    kind = ErrorKind.BAD_REQUEST


class AuthenticationFailedError(ClientError):
    kind = ErrorKind.AUTHENTICATION_FAILED


class ForbiddenError(AuthenticationFailedError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(ClientError):
    kind = ErrorKind.NOT_FOUND


class RateLimitExceededError(ClientError):
    kind = ErrorKind.RATE_LIMIT_EXCEEDED

    def __init__(self, message: str = "", status: int | None = 429, retry_after: float | None = None):
        super().__init__(message, status)
        self.retry_after = retry_after


class ServerError(ApiError):
    kind = ErrorKind.SERVER_ERROR


class UnknownStatusError(ApiError):
    kind = ErrorKind.UNKNOWN


def parse_retry_after(headers) -> float | None:
    val = (headers or {}).get("retry-after")
    if val is None:
        return None
    try:
        return float(val)
    except ValueError:
        return None


def error_for_status(status: int, message: str = "", headers=None) -> ApiError:
    """Map a non-2xx HTTP status to exactly one error.

    First match wins: 400, 401, 403, 404, 429, 5xx, then everything else.
    """
    if status == 400:
        return BadRequestError(message, status)
    if status == 401:
        return AuthenticationFailedError(message, status)
    if status == 403:
        return ForbiddenError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status == 429:
        # Body is ignored; only the cooldown hint matters
        return RateLimitExceededError("rate limit exceeded", status, parse_retry_after(headers))
    if 500 <= status <= 599:
        return ServerError(message, status)
    return UnknownStatusError(message or f"unexpected status {status}", status)
