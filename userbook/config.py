"""Configuration management for the userbook service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .database import resolve_database_path

_KNOWN_KEYS = {"database_path", "host", "port", "log_level", "cors_origins"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _parse_origins(value: object) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError("cors_origins must be a string or a list of strings")
    return tuple(item.strip() for item in items if item.strip())


def _parse_port(value: object) -> int:
    try:
        port = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid port: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"Port out of range: {port}")
    return port


def _parse_log_level(value: object) -> str:
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level: {value!r}")
    return level


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service."""

    database_path: Path
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ("*",)

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        unknown = set(data.keys()) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_db_path = data.get("database_path")
        if raw_db_path:
            expanded = Path(str(raw_db_path)).expanduser()
            if not expanded.is_absolute() and base_path is not None:
                expanded = base_path / expanded
            database_path = expanded.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        return Settings(
            database_path=database_path,
            host=str(data.get("host", "0.0.0.0")),
            port=_parse_port(data.get("port", 3000)),
            log_level=_parse_log_level(data.get("log_level", "INFO")),
            cors_origins=_parse_origins(data.get("cors_origins", ["*"])),
        )

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        overrides: Dict[str, object] = {}
        if env.get("USERBOOK_DB_PATH"):
            overrides["database_path"] = resolve_database_path(env["USERBOOK_DB_PATH"])
        if env.get("USERBOOK_HOST"):
            overrides["host"] = env["USERBOOK_HOST"].strip()
        if env.get("USERBOOK_PORT"):
            overrides["port"] = _parse_port(env["USERBOOK_PORT"])
        if env.get("USERBOOK_LOG_LEVEL"):
            overrides["log_level"] = _parse_log_level(env["USERBOOK_LOG_LEVEL"])
        if env.get("USERBOOK_CORS_ORIGINS"):
            overrides["cors_origins"] = _parse_origins(env["USERBOOK_CORS_ORIGINS"])
        return replace(self, **overrides) if overrides else self


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "userbook.yaml").resolve(strict=False)
    return candidate


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from YAML (when present) and apply environment overrides.

    An explicitly requested file must exist; the default location is optional.
    """
    env = os.environ if environ is None else environ
    explicit = config_path is not None or bool(env.get("USERBOOK_CONFIG"))
    path = config_path or resolve_config_path(env.get("USERBOOK_CONFIG"))

    raw: Dict[str, object] = {}
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        raw = loaded
    elif explicit:
        raise FileNotFoundError(f"Configuration file not found: {path}")

    settings = Settings.from_dict(raw, base_path=path.parent)
    return settings.with_env_overrides(env)


__all__ = ["Settings", "load_settings", "resolve_config_path"]
