"""Base Roble API Client.

Provides the request execution engine shared by all Roble operations:
URL assembly, header merging with bearer-token injection, timeout
enforcement, response classification and the refresh-and-retry protocol.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from ..config import RobleAPIConfig
from .errors import (
    APIClientError,
    HTTPStatusError,
    InvalidRefreshResponseError,
    MissingRefreshTokenError,
    TokenRefreshError,
    UnexpectedAPIError,
    UnsupportedMethodError,
)
from .network_error_handler import NetworkErrorHandler
from .responses import APIResponse
from .token_state import TokenState

logger = logging.getLogger(__name__)

REFRESH_ENDPOINT = "refresh-token"

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class RobleAPIClient:
    """Base API client with token management and common HTTP functionality."""

    def __init__(
        self,
        config: RobleAPIConfig,
        session: Optional[httpx.AsyncClient] = None,
        tokens: Optional[TokenState] = None,
    ):
        """Initialize base API client.

        Args:
            config: Base URLs, default headers and timeout
            session: Optional pre-built httpx client (custom transport, tests)
            tokens: Optional token record; a fresh, empty one by default
        """
        self.config = config
        self.tokens = tokens if tokens is not None else TokenState()
        self._session = session
        self._owns_session = session is None
        self._refresh_lock: Optional[asyncio.Lock] = None
        self._network_error_handler = NetworkErrorHandler()

    @property
    def session(self) -> httpx.AsyncClient:
        """Get or create the HTTP session."""
        if self._session is None or self._session.is_closed:
            self._session = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
            )
            self._owns_session = True
        return self._session

    @property
    def access_token(self) -> Optional[str]:
        return self.tokens.access_token

    @property
    def is_authenticated(self) -> bool:
        return self.tokens.has_access_token

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        """Install tokens obtained elsewhere (e.g. a previous session)."""
        self.tokens.set(access_token, refresh_token)

    def clear_tokens(self) -> None:
        """Forget both tokens; later requests carry no Authorization header."""
        self.tokens.clear()
        logger.debug("Cleared access and refresh tokens")

    def _build_url(self, base_url: str, endpoint: str) -> str:
        return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _merge_headers(
        self,
        default_headers: Mapping[str, str],
        extra_headers: Optional[Mapping[str, str]],
    ) -> httpx.Headers:
        """Merge headers: JSON content type, service defaults, extras, then bearer.

        The bearer token is only injected when no Authorization header is
        already present, so an explicit one from the defaults or the extras
        wins over the stored access token.
        """
        headers = httpx.Headers({"Content-Type": "application/json"})
        headers.update(default_headers)
        if extra_headers:
            headers.update(extra_headers)
        if "Authorization" not in headers and self.tokens.has_access_token:
            headers["Authorization"] = f"Bearer {self.tokens.access_token}"
        return headers

    async def execute(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        query_params: Optional[Mapping[str, Any]] = None,
        is_auth_request: bool = False,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> APIResponse:
        """Execute a request against the auth or data service.

        A 401 on a data request while a refresh token is held triggers one
        token refresh and one replay of the same request. The replay never
        refreshes again.

        Args:
            method: HTTP verb (GET, POST, PUT, PATCH or DELETE)
            endpoint: Endpoint name relative to the selected base URL
            body: JSON-serializable body; ignored for GET
            query_params: Query parameters, values are stringified
            is_auth_request: Target the auth service instead of the data service
            extra_headers: Call-specific headers

        Returns:
            APIResponse tagged as JSON, RAW or EMPTY

        Raises:
            UnsupportedMethodError: If the verb is not supported
            NetworkUnavailableError: If the server cannot be reached
            RequestTimeoutError: If the timeout window elapses
            TokenRefreshError: If a 401 could not be recovered by refreshing
            HTTPStatusError: If the server returns any other non-2xx status
            APIClientError: For any other failure
        """
        return await self._execute(
            method,
            endpoint,
            body=body,
            query_params=query_params,
            is_auth_request=is_auth_request,
            extra_headers=extra_headers,
            allow_refresh=True,
        )

    async def _execute(
        self,
        method: str,
        endpoint: str,
        body: Any,
        query_params: Optional[Mapping[str, Any]],
        is_auth_request: bool,
        extra_headers: Optional[Mapping[str, str]],
        allow_refresh: bool,
    ) -> APIResponse:
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise UnsupportedMethodError(method)

        if is_auth_request:
            base_url, default_headers = self.config.auth_url, self.config.auth_headers
        else:
            base_url, default_headers = self.config.data_url, self.config.data_headers

        url = self._build_url(base_url, endpoint)
        headers = self._merge_headers(default_headers, extra_headers)
        sent_access_token = self.tokens.access_token

        response = await self._send(method, url, headers, body, query_params)

        if 200 <= response.status_code < 300:
            result = APIResponse.from_body(response.status_code, response.text)
            logger.debug(f"{method} {url} -> {response.status_code} ({result.kind.value})")
            return result

        if (
            response.status_code == 401
            and allow_refresh
            and self.tokens.has_refresh_token
            and not is_auth_request
        ):
            logger.info(f"Received 401 from {endpoint}, refreshing access token")
            await self._refresh_after_unauthorized(sent_access_token)
            logger.info(f"Access token refreshed, retrying {method} {endpoint}")
            return await self._execute(
                method,
                endpoint,
                body=body,
                query_params=query_params,
                is_auth_request=is_auth_request,
                extra_headers=extra_headers,
                allow_refresh=False,
            )

        raise self._http_error(response)

    async def _send(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        body: Any,
        query_params: Optional[Mapping[str, Any]],
    ) -> httpx.Response:
        """Dispatch one request inside its own timeout window."""
        content = None
        if body is not None and method in BODY_METHODS:
            try:
                content = json.dumps(body)
            except (TypeError, ValueError) as e:
                raise UnexpectedAPIError(
                    f"Unexpected error: request body is not JSON serializable: {e}",
                    cause=e,
                ) from e
        params = None
        if query_params:
            params = {key: _query_value(value) for key, value in query_params.items()}

        logger.debug(f"{method} {url}")
        try:
            return await asyncio.wait_for(
                self.session.request(
                    method, url, headers=headers, content=content, params=params
                ),
                timeout=self.config.timeout,
            )
        except APIClientError:
            raise
        except Exception as e:
            error = self._network_error_handler.classify_network_error(
                e, timeout=self.config.timeout
            )
            logger.debug(f"{method} {url} failed: {error.kind.value}: {e}")
            raise error from e

    async def _refresh_after_unauthorized(self, stale_token: Optional[str]) -> None:
        """Refresh the access token once, sharing an in-flight refresh.

        A caller that finds the token already rotated since its request was
        sent reuses that token instead of refreshing again.

        Raises:
            TokenRefreshError: If the refresh call fails for any reason
        """
        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()
        try:
            async with self._refresh_lock:
                current = self.tokens.access_token
                if current and current != stale_token:
                    logger.debug("Access token already refreshed by a concurrent request")
                    return
                await self.refresh_access_token()
        except APIClientError as e:
            logger.warning(f"Token refresh failed: {e}")
            error = TokenRefreshError(
                f"Token expired and could not be refreshed: {e}",
                status_code=401,
                cause=e,
            )
            guidance = self._network_error_handler.guidance_provider.get_guidance(error)
            if guidance is not None:
                error.user_guidance = guidance.format_for_console()
            raise error from e

    async def refresh_access_token(self) -> None:
        """Exchange the held refresh token for a new access token.

        Only the access token is replaced; the refresh token is kept.

        Raises:
            MissingRefreshTokenError: If no refresh token is held
            InvalidRefreshResponseError: If the reply has no access token
            APIClientError: If the refresh request itself fails
        """
        if not self.tokens.has_refresh_token:
            raise MissingRefreshTokenError("No refresh token available")

        response = await self.execute(
            "POST",
            REFRESH_ENDPOINT,
            body={"refreshToken": self.tokens.refresh_token},
            is_auth_request=True,
        )

        payload = response.as_dict()
        new_token = payload.get("accessToken") if payload else None
        if not new_token or not isinstance(new_token, str):
            raise InvalidRefreshResponseError(
                "Invalid response while refreshing the access token",
                status_code=response.status_code,
            )

        self.tokens.access_token = new_token
        logger.debug("Access token refreshed")

    def _http_error(self, response: httpx.Response) -> HTTPStatusError:
        """Build the error for a non-2xx response.

        The server's ``message`` field is used when the body is a JSON
        object carrying one, otherwise the raw body text.
        """
        text = response.text
        detail = text
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict) and "message" in decoded:
            detail = str(decoded["message"])

        logger.debug(f"HTTP {response.status_code} from {response.request.url}")
        return HTTPStatusError(
            response.status_code, f"HTTP {response.status_code}: {detail}", body=text
        )

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session and self._owns_session and not self._session.is_closed:
            await self._session.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
