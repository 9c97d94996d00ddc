"""Authentication type definitions."""

from __future__ import annotations

from typing import Callable, NamedTuple, Sequence


class AccessToken(NamedTuple):
    """Represents an OAuth access token.

    Compatible with azure.core.credentials.AccessToken but avoids the dependency.
    """

    token: str
    """The token string."""

    expires_on: int
    """The token's expiration time in Unix time."""


TokenProvider = Callable[[Sequence[str]], AccessToken]


__all__ = ["AccessToken", "TokenProvider"]
