from __future__ import annotations

from pathlib import Path

import msal

from cloudpc_manager.config.settings import TOKEN_CACHE_NAME, cache_dir
from cloudpc_manager.utils.logging import get_logger


logger = get_logger(__name__)


class TokenCacheManager:
    """Persist the MSAL token cache between sessions."""

    def __init__(self, cache_path: Path | None = None) -> None:
        self._path = cache_path or cache_dir() / TOKEN_CACHE_NAME
        self._cache = msal.SerializableTokenCache()
        if self._path.exists():
            try:
                self._cache.deserialize(self._path.read_text(encoding="utf-8"))
            except ValueError:
                logger.warning("Discarding unreadable token cache", path=str(self._path))
                self._cache = msal.SerializableTokenCache()

    @property
    def cache(self) -> msal.SerializableTokenCache:
        return self._cache

    @property
    def path(self) -> Path:
        return self._path

    def attach(self, app: msal.PublicClientApplication) -> None:
        app.token_cache = self._cache

    def save(self) -> None:
        if self._cache.has_state_changed:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(self._cache.serialize(), encoding="utf-8")

    def clear(self) -> None:
        self._cache = msal.SerializableTokenCache()
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(
                "Failed to delete token cache",
                path=str(self._path),
                error=str(exc),
            )
            return
        logger.info("Cleared MSAL token cache", path=str(self._path))


__all__ = ["TokenCacheManager"]
