"""Error taxonomy for the Roble API client.

Every failure that leaves the request engine is an ``APIClientError``
subclass carrying a machine-checkable ``ErrorKind``. Raw httpx exceptions
never escape; they are classified by ``NetworkErrorHandler`` first.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Machine-checkable failure categories."""

    NETWORK_UNAVAILABLE = "network_unavailable"
    TIMEOUT = "timeout"
    INVALID_FORMAT = "invalid_format"
    HTTP_ERROR = "http_error"
    AUTH_EXPIRED = "auth_expired"
    UNSUPPORTED_METHOD = "unsupported_method"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"
    INVALID_REFRESH_RESPONSE = "invalid_refresh_response"
    INSERT_FAILED = "insert_failed"
    UNEXPECTED = "unexpected"


class APIClientError(Exception):
    """Base exception for API client errors."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
        user_guidance: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.cause = cause
        self.user_guidance = user_guidance or ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class NetworkUnavailableError(APIClientError):
    """Raised when the server cannot be reached (DNS, refused, no route)."""

    kind = ErrorKind.NETWORK_UNAVAILABLE


class RequestTimeoutError(APIClientError):
    """Raised when a request exceeds its timeout window."""

    kind = ErrorKind.TIMEOUT


class InvalidResponseFormatError(APIClientError):
    """Raised when a response body cannot be decoded where decoding is mandatory."""

    kind = ErrorKind.INVALID_FORMAT


class HTTPStatusError(APIClientError):
    """Raised for any non-2xx response not recovered by a token refresh."""

    kind = ErrorKind.HTTP_ERROR

    def __init__(self, status_code: int, message: str, body: str = ""):
        super().__init__(message, status_code=status_code)
        self.body = body


class TokenRefreshError(APIClientError):
    """Raised when a 401 could not be recovered because the refresh itself failed."""

    kind = ErrorKind.AUTH_EXPIRED


class UnsupportedMethodError(APIClientError):
    """Raised for HTTP verbs the engine does not dispatch."""

    kind = ErrorKind.UNSUPPORTED_METHOD

    def __init__(self, method: str):
        super().__init__(f"HTTP method {method} is not supported")
        self.method = method


class MissingRefreshTokenError(APIClientError):
    """Raised when a refresh is requested but no refresh token is held."""

    kind = ErrorKind.MISSING_REFRESH_TOKEN


class InvalidRefreshResponseError(APIClientError):
    """Raised when the refresh endpoint reply has no access token."""

    kind = ErrorKind.INVALID_REFRESH_RESPONSE


class RecordInsertError(APIClientError):
    """Raised when an insert reply does not contain the inserted record."""

    kind = ErrorKind.INSERT_FAILED


class UnexpectedAPIError(APIClientError):
    """Wraps any failure that fits no other category."""

    kind = ErrorKind.UNEXPECTED
