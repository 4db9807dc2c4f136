"""Network Error Handler for the Roble API Client.

Classifies transport-level failures raised by httpx into the client error
taxonomy and attaches user guidance for console display.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from .errors import (
    APIClientError,
    ErrorKind,
    InvalidResponseFormatError,
    NetworkUnavailableError,
    RequestTimeoutError,
    UnexpectedAPIError,
)

logger = logging.getLogger(__name__)

DNS_ERROR_PATTERNS = [
    r"name.*resolution.*failed",
    r"name.*or.*service.*not.*known",
    r"nodename.*nor.*servname.*provided",
    r"temporary.*failure.*in.*name.*resolution",
    r"getaddrinfo.*failed",
]
SSL_ERROR_PATTERNS = [
    r"ssl.*certificate.*verification.*failed",
    r"certificate.*verify.*failed",
    r"ssl.*handshake.*failed",
    r"bad.*certificate",
]


def _matches_any(patterns: List[str], text: str) -> bool:
    return any(re.search(pattern, text) for pattern in patterns)


@dataclass
class UserGuidance:
    """User guidance information for network errors."""

    error_type: str
    troubleshooting_steps: List[str]
    contact_info: Optional[str] = None
    additional_notes: List[str] = field(default_factory=list)

    def format_for_console(self) -> str:
        """Format guidance for rich console output."""
        content = []
        content.append(f"[bold red]Error Type:[/bold red] {self.error_type}")
        content.append("")
        content.append("[bold yellow]Troubleshooting Steps:[/bold yellow]")

        for i, step in enumerate(self.troubleshooting_steps, 1):
            content.append(f"{i}. {step}")

        if self.additional_notes:
            content.append("")
            content.append("[bold blue]Additional Notes:[/bold blue]")
            for note in self.additional_notes:
                content.append(f"• {note}")

        if self.contact_info:
            content.append("")
            content.append(f"[bold green]Support:[/bold green] {self.contact_info}")

        return "\n".join(content)


class UserGuidanceProvider:
    """Provides user guidance for the different transport failure scenarios."""

    def __init__(self):
        self._guidance_mapping = {
            ErrorKind.NETWORK_UNAVAILABLE: self._network_unavailable_guidance,
            ErrorKind.TIMEOUT: self._timeout_error_guidance,
            ErrorKind.AUTH_EXPIRED: self._auth_guidance,
            ErrorKind.MISSING_REFRESH_TOKEN: self._auth_guidance,
        }

    def get_guidance(self, error: APIClientError) -> Optional[UserGuidance]:
        """Get user guidance for a classified error, or None if there is none."""
        guidance_func = self._guidance_mapping.get(error.kind)
        if guidance_func is None:
            return None
        return guidance_func(error)

    def _network_unavailable_guidance(self, error: APIClientError) -> UserGuidance:
        text = str(error.cause or error).lower()
        if _matches_any(DNS_ERROR_PATTERNS, text):
            return self.dns_guidance()
        if _matches_any(SSL_ERROR_PATTERNS, text):
            return self.ssl_guidance()
        return self.connection_guidance()

    def _timeout_error_guidance(self, error: APIClientError) -> UserGuidance:
        return self.timeout_guidance(None)

    def _auth_guidance(self, error: APIClientError) -> UserGuidance:
        return UserGuidance(
            error_type="Authentication Expired",
            troubleshooting_steps=[
                "Log in again to obtain a new access and refresh token",
                "Check that the refresh token you supplied is the latest one",
            ],
            additional_notes=[
                "Refresh tokens are invalidated by logout",
            ],
        )

    def connection_guidance(self) -> UserGuidance:
        return UserGuidance(
            error_type="Network Connection Error",
            troubleshooting_steps=[
                "Check your internet connection",
                "Verify the auth and data URLs are correct",
                "Check if the Roble backend is running and accessible",
                "Check your firewall or proxy settings",
            ],
            additional_notes=[
                "This error typically indicates the server is not reachable",
            ],
        )

    def dns_guidance(self) -> UserGuidance:
        return UserGuidance(
            error_type="DNS Resolution Error",
            troubleshooting_steps=[
                "Check your internet connection",
                "Verify the server hostname is correct",
                "Check your DNS server settings",
            ],
            additional_notes=[
                "DNS resolution issues are often temporary",
            ],
        )

    def ssl_guidance(self) -> UserGuidance:
        return UserGuidance(
            error_type="SSL Certificate Error",
            troubleshooting_steps=[
                "Check if the server certificate is valid and not expired",
                "Verify the server hostname matches the certificate",
                "Check if you need to update your certificate store",
            ],
            contact_info="Contact your system administrator for certificate issues",
        )

    def timeout_guidance(self, timeout: Optional[float]) -> UserGuidance:
        window = f"{timeout:g} seconds" if timeout else "the configured timeout"
        return UserGuidance(
            error_type="Network Timeout Error",
            troubleshooting_steps=[
                "Check your network connection speed and stability",
                "Try again - this may be a temporary issue",
                f"Consider raising the timeout (currently {window})",
            ],
        )


class NetworkErrorHandler:
    """Maps httpx and asyncio failures onto ``APIClientError`` subclasses."""

    def __init__(self):
        self.guidance_provider = UserGuidanceProvider()

    def classify_network_error(
        self, error: BaseException, timeout: Optional[float] = None
    ) -> APIClientError:
        """Classify a transport failure.

        Args:
            error: The exception raised while sending the request
            timeout: The timeout window in effect, for the guidance text

        Returns:
            The client error to raise in its place
        """
        if isinstance(error, APIClientError):
            return error

        if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
            return self._timeout_error(error, timeout)
        if isinstance(error, httpx.ConnectError):
            return self._with_guidance(self._connect_error(error))
        if isinstance(error, httpx.NetworkError):
            return self._with_guidance(
                NetworkUnavailableError(f"No network connection: {error}", cause=error)
            )
        if isinstance(error, httpx.DecodingError):
            return InvalidResponseFormatError(
                f"Response has an invalid format: {error}", cause=error
            )

        logger.debug(f"Unclassified transport error: {type(error).__name__}: {error}")
        return UnexpectedAPIError(f"Unexpected error: {error}", cause=error)

    def _with_guidance(self, error: APIClientError) -> APIClientError:
        guidance = self.guidance_provider.get_guidance(error)
        if guidance is not None:
            error.user_guidance = guidance.format_for_console()
        return error

    def _connect_error(self, error: httpx.ConnectError) -> NetworkUnavailableError:
        error_message = str(error).lower()
        if _matches_any(DNS_ERROR_PATTERNS, error_message):
            return NetworkUnavailableError(
                "No network connection: cannot resolve server address", cause=error
            )
        if _matches_any(SSL_ERROR_PATTERNS, error_message):
            return NetworkUnavailableError(
                "No network connection: SSL certificate verification failed",
                cause=error,
            )
        return NetworkUnavailableError(f"No network connection: {error}", cause=error)

    def _timeout_error(
        self, error: BaseException, timeout: Optional[float]
    ) -> RequestTimeoutError:
        if isinstance(error, httpx.ConnectTimeout):
            message = "Request timed out while connecting to the server"
        else:
            message = "Request timed out waiting for the server"
        guidance = self.guidance_provider.timeout_guidance(timeout)
        return RequestTimeoutError(
            message, cause=error, user_guidance=guidance.format_for_console()
        )
