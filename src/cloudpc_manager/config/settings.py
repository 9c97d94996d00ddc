from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping

from dotenv import dotenv_values
from platformdirs import user_cache_dir, user_config_dir

APP_NAME = "CloudPCManager"
ENV_PREFIX = "CLOUDPC_MANAGER_"
ENV_FILE_NAME = "settings.env"
TOKEN_CACHE_NAME = "token_cache.bin"
DEFAULT_GRAPH_HOST = "https://graph.microsoft.com"
DEFAULT_TENANT = "organizations"
LOGIN_HOST = "https://login.microsoftonline.com"

DEFAULT_GRAPH_SCOPES: tuple[str, ...] = (
    f"{DEFAULT_GRAPH_HOST}/User.Read",
    f"{DEFAULT_GRAPH_HOST}/CloudPC.ReadWrite.All",
)


def _ensure(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_dir() -> Path:
    return _ensure(Path(user_config_dir(APP_NAME, roaming=True)))


def cache_dir() -> Path:
    return _ensure(Path(user_cache_dir(APP_NAME)))


def log_dir() -> Path:
    return _ensure(cache_dir() / "logs")


def default_token_cache_path() -> Path:
    return cache_dir() / TOKEN_CACHE_NAME


@dataclass(slots=True)
class Settings:
    """Tenant and app registration data required by MSAL and Graph.

    Authentication uses an MSAL public client, so no client secret is stored.
    The app registration must be configured as "Mobile and desktop
    applications" with delegated ``CloudPC.ReadWrite.All`` consent.
    """

    tenant_id: str | None = None
    client_id: str | None = None
    authority: str | None = None
    graph_host: str = DEFAULT_GRAPH_HOST
    graph_scopes: list[str] = field(default_factory=lambda: list(DEFAULT_GRAPH_SCOPES))
    token_cache_path: Path = field(default_factory=default_token_cache_path)

    def configured_scopes(self) -> Iterator[str]:
        """Configured scopes followed by any missing defaults, without duplicates."""

        seen: set[str] = set()
        for scope in (*self.graph_scopes, *DEFAULT_GRAPH_SCOPES):
            if scope and scope not in seen:
                seen.add(scope)
                yield scope

    @property
    def is_configured(self) -> bool:
        return bool(self.tenant_id and self.client_id)

    def derive_authority(self) -> str:
        if self.authority:
            return self.authority
        return f"{LOGIN_HOST}/{self.tenant_id or DEFAULT_TENANT}"


class SettingsManager:
    """Read settings from ``settings.env`` and ``CLOUDPC_MANAGER_*`` variables.

    Process environment wins over the file; the file is only written by
    :meth:`save`.
    """

    def __init__(self, env_file: Path | None = None) -> None:
        self._env_file = env_file or config_dir() / ENV_FILE_NAME

    @property
    def env_file(self) -> Path:
        return self._env_file

    def load(self) -> Settings:
        values = self._collect()
        settings = Settings(
            tenant_id=values.get("TENANT_ID"),
            client_id=values.get("CLIENT_ID"),
            authority=values.get("AUTHORITY"),
        )
        if host := values.get("GRAPH_HOST"):
            settings.graph_host = host.rstrip("/")
        if scopes := _split_scopes(values.get("SCOPES")):
            settings.graph_scopes = scopes
        if cache_path := values.get("TOKEN_CACHE_PATH"):
            settings.token_cache_path = Path(cache_path).expanduser()
        return settings

    def save(self, settings: Settings) -> None:
        entries = {
            "TENANT_ID": settings.tenant_id or "",
            "CLIENT_ID": settings.client_id or "",
            "AUTHORITY": settings.authority or "",
            "GRAPH_HOST": settings.graph_host,
            "SCOPES": ";".join(settings.configured_scopes()),
            "TOKEN_CACHE_PATH": str(settings.token_cache_path),
        }
        self._env_file.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"{ENV_PREFIX}{key}={value}" for key, value in entries.items()]
        self._env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def _collect(self) -> dict[str, str]:
        merged: dict[str, str] = {}
        sources: list[Mapping[str, str | None]] = [os.environ]
        if self._env_file.exists():
            sources.insert(0, dotenv_values(self._env_file))
        for source in sources:
            for name, value in source.items():
                if name.startswith(ENV_PREFIX) and value:
                    merged[name[len(ENV_PREFIX) :]] = value
        return merged


def _split_scopes(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [scope.strip() for scope in raw.split(";") if scope.strip()]


__all__ = [
    "DEFAULT_GRAPH_HOST",
    "DEFAULT_GRAPH_SCOPES",
    "Settings",
    "SettingsManager",
    "cache_dir",
    "config_dir",
    "log_dir",
]
