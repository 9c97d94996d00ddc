from __future__ import annotations

import base64
import json
from typing import Iterable, Sequence

from cloudpc_manager.config.settings import DEFAULT_GRAPH_SCOPES


class PermissionChecker:
    """Compare the scopes granted in an access token with the configured ones.

    Tokens carry short scope names (``CloudPC.ReadWrite.All``) even when the
    request used the resource-qualified form, so both sides are normalised.
    """

    def __init__(self, required_scopes: Sequence[str] | None = None) -> None:
        raw_scopes = required_scopes or DEFAULT_GRAPH_SCOPES
        self._required = [self.normalize_scope(scope) for scope in raw_scopes]

    def missing_scopes(self, access_token: str) -> list[str]:
        granted = {
            self.normalize_scope(scope).lower()
            for scope in self._extract_scopes(access_token)
        }
        return [
            scope
            for scope in self._required
            if scope and not scope.startswith(".") and scope.lower() not in granted
        ]

    @staticmethod
    def normalize_scope(scope: str) -> str:
        """Strip the resource prefix: ``https://graph.microsoft.com/User.Read`` -> ``User.Read``."""
        if "://" in scope:
            return scope.rsplit("/", 1)[-1]
        return scope

    def _extract_scopes(self, token: str) -> Iterable[str]:
        parts = token.split(".")
        if len(parts) < 2:
            return []
        padding = "=" * (-len(parts[1]) % 4)
        try:
            claims = json.loads(base64.urlsafe_b64decode(parts[1] + padding))
        except (ValueError, UnicodeDecodeError):
            return []
        if not isinstance(claims, dict):
            return []
        scopes = claims.get("scp") or claims.get("roles")
        if isinstance(scopes, str):
            return scopes.split()
        if isinstance(scopes, list):
            return [scope for scope in scopes if isinstance(scope, str)]
        return []


__all__ = ["PermissionChecker"]
