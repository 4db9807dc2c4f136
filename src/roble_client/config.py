"""Configuration management for the Roble API client."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

AUTH_URL_ENV = "ROBLE_AUTH_URL"
DATA_URL_ENV = "ROBLE_DATA_URL"


def _check_absolute_url(name: str, value: str) -> None:
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"{name} must be an absolute http(s) URL, got: {value!r}")


class RobleAPIConfig(BaseModel):
    """Base URLs and default headers for the auth and data services.

    Instances are immutable; ``with_bearer_token`` and ``copy_with`` return
    new, re-validated instances.

    Example:
        config = RobleAPIConfig(
            auth_url="https://api.example.com/auth/my-db",
            data_url="https://api.example.com/database/my-db",
        )
    """

    model_config = ConfigDict(frozen=True)

    auth_url: str = Field(..., description="Base URL for login, signup, refresh, logout")
    data_url: str = Field(..., description="Base URL for table and record operations")
    auth_headers: Dict[str, str] = Field(
        default_factory=dict, description="Default headers for auth requests"
    )
    data_headers: Dict[str, str] = Field(
        default_factory=dict, description="Default headers for data requests"
    )
    timeout: float = Field(
        default=30.0, gt=0, description="Per-request timeout in seconds"
    )

    @field_validator("auth_url", "data_url")
    @classmethod
    def require_absolute_url(cls, v: str, info: ValidationInfo) -> str:
        """Reject relative or scheme-less URLs and drop trailing slashes."""
        v = v.strip()
        _check_absolute_url(info.field_name, v)
        return v.rstrip("/")

    @classmethod
    def from_strings(cls, base_auth_url: str, base_data_url: str) -> "RobleAPIConfig":
        """Build a configuration from the two base URLs alone."""
        return cls(auth_url=base_auth_url, data_url=base_data_url)

    def with_bearer_token(self, token: str) -> "RobleAPIConfig":
        """Return a copy sending ``Authorization: Bearer <token>`` to both services."""
        bearer = {"Authorization": f"Bearer {token}"}
        return self.copy_with(
            auth_headers={**self.auth_headers, **bearer},
            data_headers={**self.data_headers, **bearer},
        )

    def copy_with(self, **changes: Any) -> "RobleAPIConfig":
        """Return a copy with the given fields replaced."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown configuration fields: {sorted(unknown)}")
        data = self.model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        return type(self)(**data)

    def validate_urls(self) -> None:
        """Check both URLs are absolute.

        Raises:
            ValueError: If either URL lacks an http(s) scheme
        """
        _check_absolute_url("auth_url", self.auth_url)
        _check_absolute_url("data_url", self.data_url)

    def __str__(self) -> str:
        return (
            f"RobleAPIConfig(auth_url={self.auth_url}, data_url={self.data_url}, "
            f"auth_headers={sorted(self.auth_headers)}, "
            f"data_headers={sorted(self.data_headers)})"
        )


class ConfigManager:
    """Manages configuration loading and saving."""

    DEFAULT_CONFIG_PATH = Path(".roble/config.json")

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else self.DEFAULT_CONFIG_PATH
        self._config: Optional[RobleAPIConfig] = None

    def load(self) -> RobleAPIConfig:
        """Load configuration from file, applying environment URL overrides.

        The file may be absent when both ``ROBLE_AUTH_URL`` and
        ``ROBLE_DATA_URL`` are set.

        Raises:
            ValueError: If the file is missing or its content is invalid
        """
        data: Dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {self.config_path}: {e}")

        if os.environ.get(AUTH_URL_ENV):
            data["auth_url"] = os.environ[AUTH_URL_ENV]
        if os.environ.get(DATA_URL_ENV):
            data["data_url"] = os.environ[DATA_URL_ENV]

        if not data:
            raise ValueError(f"Configuration file not found: {self.config_path}")

        try:
            self._config = RobleAPIConfig(**data)
        except Exception as e:
            raise ValueError(f"Failed to load config from {self.config_path}: {e}")

        logger.debug(f"Loaded configuration: {self._config}")
        return self._config

    def save(self, config: Optional[RobleAPIConfig] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(), f, indent=2)

        self._config = config
        logger.debug(f"Saved configuration to {self.config_path}")
