"""API Client Abstractions for the Roble backend.

All HTTP functionality is contained within dedicated API client classes
built on ``RobleAPIClient``'s request execution engine.
"""

from .base_client import RobleAPIClient
from .auth_client import AuthAPIClient
from .database_client import DatabaseAPIClient
from .roble_database import RobleDatabase
from .errors import (
    APIClientError,
    ErrorKind,
    HTTPStatusError,
    InvalidRefreshResponseError,
    InvalidResponseFormatError,
    MissingRefreshTokenError,
    NetworkUnavailableError,
    RecordInsertError,
    RequestTimeoutError,
    TokenRefreshError,
    UnexpectedAPIError,
    UnsupportedMethodError,
)
from .responses import APIResponse, ResponseKind
from .token_state import TokenState

__all__ = [
    # Clients
    "RobleAPIClient",
    "AuthAPIClient",
    "DatabaseAPIClient",
    "RobleDatabase",
    # Results and state
    "APIResponse",
    "ResponseKind",
    "TokenState",
    # Errors
    "APIClientError",
    "ErrorKind",
    "HTTPStatusError",
    "InvalidRefreshResponseError",
    "InvalidResponseFormatError",
    "MissingRefreshTokenError",
    "NetworkUnavailableError",
    "RecordInsertError",
    "RequestTimeoutError",
    "TokenRefreshError",
    "UnexpectedAPIError",
    "UnsupportedMethodError",
]
