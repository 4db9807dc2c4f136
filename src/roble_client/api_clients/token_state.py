"""Per-client access/refresh token record."""

from dataclasses import dataclass
from typing import Optional


def _mask(token: Optional[str]) -> str:
    if not token:
        return "None"
    return f"'{token[:4]}...'" if len(token) > 8 else "'***'"


@dataclass
class TokenState:
    """Access and refresh tokens held by a single client instance.

    Mutated only by the client: both set on login, access token replaced on
    refresh, both cleared on ``clear()``.
    """

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    def set(self, access_token: Optional[str], refresh_token: Optional[str]) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None

    def __repr__(self) -> str:
        return (
            f"TokenState(access_token={_mask(self.access_token)}, "
            f"refresh_token={_mask(self.refresh_token)})"
        )
