from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any, Sequence

import msal

from cloudpc_manager.auth.types import AccessToken, TokenProvider
from cloudpc_manager.config.settings import DEFAULT_GRAPH_SCOPES, Settings
from cloudpc_manager.graph.errors import AuthenticationError
from cloudpc_manager.utils.logging import get_logger

from .permission_checker import PermissionChecker
from .token_cache import TokenCacheManager


logger = get_logger(__name__)

# MSAL adds these itself and rejects them when requested explicitly.
_MSAL_RESERVED_SCOPES = frozenset({"profile", "openid", "offline_access"})


@dataclass(slots=True)
class AuthenticatedUser:
    display_name: str | None
    username: str | None
    home_account_id: str | None
    tenant_id: str | None


class AuthManager:
    """MSAL public client sign-in for the signed-in operator.

    No client secret is involved: the app registration must be a "Mobile and
    desktop applications" platform and sign-in happens in the system browser.
    """

    def __init__(self) -> None:
        self._cache_manager: TokenCacheManager | None = None
        self._app: msal.PublicClientApplication | None = None
        self._settings: Settings | None = None
        self._lock = threading.RLock()
        self._user: AuthenticatedUser | None = None
        self._permission_checker = PermissionChecker()
        self._missing_scopes: list[str] = []

    @property
    def is_configured(self) -> bool:
        return self._app is not None

    def configure(self, settings: Settings) -> None:
        """Create the MSAL client for ``settings``.

        Raises:
            AuthenticationError: the client id is missing or MSAL rejects the
                authority.
        """
        if not settings.client_id:
            raise AuthenticationError(
                "Client ID must be provided before signing in to Microsoft Graph"
            )

        authority = settings.derive_authority()
        cache_manager = TokenCacheManager(settings.token_cache_path)
        try:
            self._app = msal.PublicClientApplication(
                client_id=settings.client_id,
                authority=authority,
                token_cache=cache_manager.cache,
            )
        except ValueError as exc:
            logger.error(
                "Invalid MSAL configuration", authority=authority, error=str(exc)
            )
            raise AuthenticationError(
                f"Invalid authority or tenant: {exc}",
            ) from exc
        self._cache_manager = cache_manager
        self._settings = settings
        scopes = list(settings.configured_scopes())
        self._permission_checker = PermissionChecker(scopes or None)
        self._missing_scopes = []
        self._user = None
        logger.info("Configured MSAL PublicClientApplication", authority=authority)

    def token_provider(self) -> TokenProvider:
        def provider(scopes: Sequence[str]) -> AccessToken:
            return self.acquire_token_sync(scopes)

        return provider

    async def sign_in_interactive(
        self, scopes: Sequence[str] | None = None
    ) -> AccessToken:
        requested = list(scopes or self._configured_scopes())
        return await asyncio.to_thread(self._acquire_token_with_refresh, requested, True)

    async def sign_out(self) -> None:
        await asyncio.to_thread(self._sign_out_sync)

    def acquire_token_sync(self, scopes: Sequence[str] | None = None) -> AccessToken:
        requested = list(scopes or self._configured_scopes())
        try:
            return self._acquire_token_with_refresh(requested, interactive=False)
        except AuthenticationError as exc:
            raise AuthenticationError(
                "Sign in is required before accessing Microsoft Graph",
            ) from exc

    def current_user(self) -> AuthenticatedUser | None:
        return self._user

    def missing_scopes(self) -> list[str]:
        """Scopes configured but absent from the most recent access token."""
        return list(self._missing_scopes)

    # Internal --------------------------------------------------------

    def _configured_scopes(self) -> list[str]:
        if self._settings is not None:
            return list(self._settings.configured_scopes())
        return list(DEFAULT_GRAPH_SCOPES)

    def _filter_scopes(self, scopes: Sequence[str]) -> list[str]:
        filtered = [
            scope
            for scope in scopes
            if scope not in _MSAL_RESERVED_SCOPES and not scope.endswith("/.default")
        ]
        if len(filtered) != len(scopes):
            logger.debug(
                "Filtered reserved scopes",
                removed=sorted(set(scopes) - set(filtered)),
            )
        return filtered

    def _acquire_token_with_refresh(
        self,
        scopes: Sequence[str],
        interactive: bool,
    ) -> AccessToken:
        with self._lock:
            result = self._acquire_token_silent(scopes)
            if result is None:
                if not interactive:
                    raise AuthenticationError("Silent token acquisition failed")
                result = self._acquire_token_interactive(scopes)
            return result

    def _acquire_token_silent(self, scopes: Sequence[str]) -> AccessToken | None:
        app = self._ensure_app()
        account = self._get_account(app)
        if account is None:
            return None
        result = app.acquire_token_silent(self._filter_scopes(scopes), account=account)
        if not result:
            return None
        token = self._process_result(result)
        self._save_cache()
        return token

    def _acquire_token_interactive(self, scopes: Sequence[str]) -> AccessToken:
        app = self._ensure_app()
        try:
            result = app.acquire_token_interactive(
                scopes=self._filter_scopes(scopes),
                prompt="select_account",
            )
        except Exception as exc:  # noqa: BLE001 - browser/loopback failures
            logger.exception("Interactive sign-in failed")
            raise AuthenticationError(f"Interactive sign-in failed: {exc}") from exc
        token = self._process_result(result)
        self._save_cache()
        logger.info(
            "Signed in to Microsoft Graph",
            username=self._user.username if self._user else None,
        )
        return token

    def _sign_out_sync(self) -> None:
        app = self._ensure_app()
        for account in app.get_accounts():
            app.remove_account(account)
        if self._cache_manager is not None:
            self._cache_manager.clear()
            self._cache_manager.attach(app)
        self._user = None
        self._missing_scopes = []
        logger.info("Signed out MSAL accounts")

    def _process_result(self, result: dict[str, Any]) -> AccessToken:
        if "error" in result:
            error_code = result.get("error")
            error_desc = result.get("error_description", error_code)
            if "AADSTS7000218" in str(error_desc) or "client_assertion" in str(
                error_desc
            ).lower():
                raise AuthenticationError(
                    "The app registration is configured as a confidential "
                    "(web) client. Add a 'Mobile and desktop applications' "
                    f"platform with a http://localhost redirect URI.\n\n{error_desc}",
                )
            raise AuthenticationError(f"MSAL error: {error_desc}")

        access_token = result.get("access_token")
        if not isinstance(access_token, str):
            raise AuthenticationError("MSAL response missing access token")

        expires_on = result.get("expires_on")
        expires_in = result.get("expires_in")
        if isinstance(expires_on, (int, str)):
            expiry = int(expires_on)
        elif isinstance(expires_in, (int, str)):
            expiry = int(time.time()) + int(expires_in)
        else:
            expiry = int(time.time()) + 3600

        id_claims = result.get("id_token_claims")
        if isinstance(id_claims, dict):
            self._user = AuthenticatedUser(
                display_name=id_claims.get("name"),
                username=id_claims.get("preferred_username") or id_claims.get("email"),
                home_account_id=id_claims.get("oid"),
                tenant_id=id_claims.get("tid"),
            )

        self._missing_scopes = self._permission_checker.missing_scopes(access_token)
        if self._missing_scopes:
            logger.warning("Access token lacks scopes", missing=self._missing_scopes)
        return AccessToken(access_token, expiry)

    def _get_account(self, app: msal.PublicClientApplication) -> dict[str, Any] | None:
        accounts = app.get_accounts()
        if not accounts:
            return None
        account = accounts[0]
        if self._user is None:
            self._user = AuthenticatedUser(
                display_name=account.get("name"),
                username=account.get("username"),
                home_account_id=account.get("home_account_id"),
                tenant_id=account.get("realm"),
            )
        return account

    def _save_cache(self) -> None:
        if self._cache_manager is not None:
            self._cache_manager.save()

    def _ensure_app(self) -> msal.PublicClientApplication:
        if not self._app:
            raise AuthenticationError("Authentication has not been configured")
        return self._app


__all__ = ["AuthManager", "AuthenticatedUser"]
