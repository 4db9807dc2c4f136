"""Tests for transport failure classification."""

import asyncio

import httpx
import pytest

from roble_client.api_clients import (
    ErrorKind,
    HTTPStatusError,
    InvalidResponseFormatError,
    MissingRefreshTokenError,
    NetworkUnavailableError,
    RequestTimeoutError,
    TokenRefreshError,
    UnexpectedAPIError,
)
from roble_client.api_clients.network_error_handler import (
    NetworkErrorHandler,
    UserGuidance,
    UserGuidanceProvider,
)


@pytest.fixture
def handler() -> NetworkErrorHandler:
    return NetworkErrorHandler()


class TestNetworkErrorClassification:
    def test_connection_refused(self, handler):
        error = handler.classify_network_error(
            httpx.ConnectError("[Errno 111] Connection refused")
        )

        assert isinstance(error, NetworkUnavailableError)
        assert error.kind is ErrorKind.NETWORK_UNAVAILABLE
        assert "Network Connection Error" in error.user_guidance

    def test_dns_failure(self, handler):
        error = handler.classify_network_error(
            httpx.ConnectError("[Errno -2] Name or service not known")
        )

        assert isinstance(error, NetworkUnavailableError)
        assert "cannot resolve server address" in str(error)
        assert "DNS Resolution Error" in error.user_guidance

    def test_ssl_failure(self, handler):
        error = handler.classify_network_error(
            httpx.ConnectError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed")
        )

        assert isinstance(error, NetworkUnavailableError)
        assert "SSL Certificate Error" in error.user_guidance

    def test_other_network_error(self, handler):
        error = handler.classify_network_error(httpx.ReadError("connection reset"))

        assert isinstance(error, NetworkUnavailableError)

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ReadTimeout("read timed out"),
            httpx.ConnectTimeout("connect timed out"),
            httpx.PoolTimeout("pool timed out"),
            asyncio.TimeoutError(),
        ],
    )
    def test_timeouts(self, handler, exc):
        error = handler.classify_network_error(exc, timeout=30.0)

        assert isinstance(error, RequestTimeoutError)
        assert error.kind is ErrorKind.TIMEOUT
        assert error.cause is exc
        assert "30 seconds" in error.user_guidance

    def test_decoding_error(self, handler):
        error = handler.classify_network_error(httpx.DecodingError("bad gzip"))

        assert isinstance(error, InvalidResponseFormatError)

    def test_unknown_error_wrapped(self, handler):
        cause = RuntimeError("boom")

        error = handler.classify_network_error(cause)

        assert isinstance(error, UnexpectedAPIError)
        assert error.cause is cause
        assert "boom" in str(error)

    def test_client_errors_pass_through(self, handler):
        original = HTTPStatusError(404, "HTTP 404: missing")

        assert handler.classify_network_error(original) is original


class TestUserGuidance:
    def test_format_for_console(self):
        guidance = UserGuidance(
            error_type="Network Timeout Error",
            troubleshooting_steps=["Try again", "Check the network"],
            contact_info="admin@example.com",
            additional_notes=["Usually temporary"],
        )

        text = guidance.format_for_console()

        assert "Network Timeout Error" in text
        assert "1. Try again" in text
        assert "2. Check the network" in text
        assert "• Usually temporary" in text
        assert "admin@example.com" in text


class TestUserGuidanceProvider:
    @pytest.fixture
    def provider(self) -> UserGuidanceProvider:
        return UserGuidanceProvider()

    @pytest.mark.parametrize(
        "cause,error_type",
        [
            (httpx.ConnectError("[Errno 111] Connection refused"), "Network Connection Error"),
            (httpx.ConnectError("[Errno -2] Name or service not known"), "DNS Resolution Error"),
            (httpx.ConnectError("certificate verify failed"), "SSL Certificate Error"),
        ],
    )
    def test_network_unavailable_uses_cause(self, provider, cause, error_type):
        error = NetworkUnavailableError("No network connection", cause=cause)

        assert provider.get_guidance(error).error_type == error_type

    def test_timeout(self, provider):
        guidance = provider.get_guidance(RequestTimeoutError("timed out"))

        assert guidance.error_type == "Network Timeout Error"

    @pytest.mark.parametrize(
        "error",
        [
            TokenRefreshError("Token expired and could not be refreshed", status_code=401),
            MissingRefreshTokenError("No refresh token available"),
        ],
    )
    def test_auth_errors_suggest_logging_in(self, provider, error):
        guidance = provider.get_guidance(error)

        assert guidance.error_type == "Authentication Expired"
        assert any("Log in again" in step for step in guidance.troubleshooting_steps)

    @pytest.mark.parametrize(
        "error",
        [HTTPStatusError(404, "HTTP 404: missing"), UnexpectedAPIError("Unexpected error: boom")],
    )
    def test_kinds_without_guidance(self, provider, error):
        assert provider.get_guidance(error) is None

    def test_classifier_attaches_dispatched_guidance(self, handler):
        error = handler.classify_network_error(httpx.ConnectError("getaddrinfo failed"))

        assert error.user_guidance == (
            handler.guidance_provider.dns_guidance().format_for_console()
        )
