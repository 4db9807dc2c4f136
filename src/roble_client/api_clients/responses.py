"""Classified results of successful requests."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InvalidResponseFormatError


class ResponseKind(str, Enum):
    """Shape of a successful response body."""

    JSON = "json"
    RAW = "raw"
    EMPTY = "empty"


@dataclass(frozen=True)
class APIResponse:
    """Tagged result of a 2xx response.

    A body that is not valid JSON is kept as ``RAW`` text instead of failing,
    so callers expecting structured data must check ``kind`` (or use
    ``require_json``).
    """

    kind: ResponseKind
    value: Any = None
    status_code: int = 200

    @classmethod
    def from_body(cls, status_code: int, text: str) -> "APIResponse":
        """Classify a successful response body."""
        if not text:
            return cls(ResponseKind.EMPTY, None, status_code)
        try:
            return cls(ResponseKind.JSON, json.loads(text), status_code)
        except ValueError:
            return cls(ResponseKind.RAW, text, status_code)

    @property
    def is_json(self) -> bool:
        return self.kind is ResponseKind.JSON

    @property
    def is_empty(self) -> bool:
        return self.kind is ResponseKind.EMPTY

    @property
    def json_value(self) -> Any:
        """Decoded value for JSON bodies, ``None`` otherwise."""
        return self.value if self.is_json else None

    def as_dict(self) -> Optional[Dict[str, Any]]:
        value = self.json_value
        return value if isinstance(value, dict) else None

    def as_list(self) -> Optional[List[Any]]:
        value = self.json_value
        return value if isinstance(value, list) else None

    def require_json(self) -> Any:
        """Return the decoded body, failing if it was not JSON.

        Raises:
            InvalidResponseFormatError: If the body was not valid JSON
        """
        if self.kind is ResponseKind.RAW:
            raise InvalidResponseFormatError(
                f"Response body is not valid JSON: {str(self.value)[:200]}",
                status_code=self.status_code,
            )
        return self.value
