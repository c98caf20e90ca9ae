"""Application configuration loaded via python-decouple with typed helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Final, Protocol, cast

from decouple import (
    Config as DecoupleConfig,
    RepositoryEmpty,
    RepositoryEnv,
)

from .constants import DEFAULT_FALLBACK_DB

_DOTENV_PATH: Final[Path] = Path(".env")


def _build_decouple_config() -> DecoupleConfig:
    # Gracefully handle missing .env (e.g., in CI/tests) by falling back to an empty repository.
    try:
        return DecoupleConfig(RepositoryEnv(str(_DOTENV_PATH)))
    except FileNotFoundError:
        # Fall back to an empty repository (reads only os.environ; all .env lookups use defaults)
        return DecoupleConfig(RepositoryEmpty())


_decouple_config: Final[DecoupleConfig] = _build_decouple_config()


@dataclass(slots=True, frozen=True)
class DatabaseSettings:
    """Where to look for the Claude database root."""

    # Explicit root; consulted right after --claude-db and before probing.
    override: str | None
    # Last candidate of the probe list.
    fallback_path: str


@dataclass(slots=True, frozen=True)
class PackSettings:
    """Packing behaviour shared by every ``pack`` invocation."""

    extra_excludes: list[str]
    compression_level: int
    staging_dir: str | None


@dataclass(slots=True, frozen=True)
class Settings:
    """Top-level application settings."""

    environment: str
    database: DatabaseSettings
    pack: PackSettings
    # Logging
    log_level: str
    log_json_enabled: bool


def _bool(value: str, *, default: bool) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "t", "yes", "y"}:
        return True
    if normalized in {"0", "false", "f", "no", "n"}:
        return False
    return default


def _int(value: str, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _compression_level(value: str) -> int:
    level = _int(value, default=9)
    return min(max(level, 0), 9)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""
    environment = _decouple_config("APP_ENVIRONMENT", default="production")

    def _csv(name: str, default: str) -> list[str]:
        raw = _decouple_config(name, default=default)
        items = [part.strip() for part in raw.split(",") if part.strip()]
        return items

    database_settings = DatabaseSettings(
        override=_decouple_config("CLAUDEPACK_CLAUDE_DB", default="").strip() or None,
        fallback_path=_decouple_config("CLAUDEPACK_FALLBACK_DB", default=DEFAULT_FALLBACK_DB).strip()
        or DEFAULT_FALLBACK_DB,
    )

    pack_settings = PackSettings(
        extra_excludes=_csv("CLAUDEPACK_EXTRA_EXCLUDES", default=""),
        compression_level=_compression_level(_decouple_config("CLAUDEPACK_COMPRESSION_LEVEL", default="9")),
        staging_dir=_decouple_config("CLAUDEPACK_STAGING_DIR", default="").strip() or None,
    )

    return Settings(
        environment=environment,
        database=database_settings,
        pack=pack_settings,
        log_level=_decouple_config("LOG_LEVEL", default="WARNING"),
        log_json_enabled=_bool(_decouple_config("LOG_JSON_ENABLED", default="false"), default=False),
    )


class _CacheClearable(Protocol):
    def cache_clear(self) -> None: ...


def clear_settings_cache() -> None:
    """Clear the lru_cache for get_settings in a type-checker-friendly way."""
    cache_clear = getattr(cast(_CacheClearable, get_settings), "cache_clear", None)
    if callable(cache_clear):
        cache_clear()
