"""
Roble Client - async client for the Roble auth and database services.

Wraps login, token refresh and table CRUD behind one request engine that
injects bearer tokens, enforces timeouts and refreshes expired access tokens
transparently.
"""

__version__ = "1.0.0"

from .config import ConfigManager, RobleAPIConfig
from .api_clients import APIClientError, RobleDatabase

__all__ = [
    "__version__",
    "ConfigManager",
    "RobleAPIConfig",
    "APIClientError",
    "RobleDatabase",
]
