"""Configuration management for the mentor portal service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .store import resolve_database_path

_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: object, name: str) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value {value!r} for {name}")


def _parse_latency(value: object) -> float:
    try:
        scale = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid latency scale {value!r}") from exc
    if scale < 0:
        raise ValueError("Latency scale must not be negative")
    return scale


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the portal."""

    database_path: Path
    session_secret: Optional[str] = None
    latency_scale: float = 1.0
    seed_defaults: bool = True
    session_secure: bool = False

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw mapping data, e.g. a parsed YAML file."""

        raw_db = data.get("database_path")
        if raw_db:
            candidate = Path(str(raw_db)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        secret = data.get("session_secret")
        return Settings(
            database_path=database_path,
            session_secret=str(secret) if secret else None,
            latency_scale=_parse_latency(data.get("latency_scale", 1.0)),
            seed_defaults=_parse_bool(data.get("seed_defaults", True), "seed_defaults"),
            session_secure=_parse_bool(data.get("session_secure", False), "session_secure"),
        )


def _load_yaml(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    portal = raw.get("portal", raw)
    if not isinstance(portal, dict):
        raise ValueError("The 'portal' section must be a mapping")
    return dict(portal)


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    env = os.environ if environ is None else environ

    if config_path is None and env.get("PORTAL_CONFIG"):
        config_path = Path(env["PORTAL_CONFIG"]).expanduser().resolve(strict=False)

    data: Dict[str, object] = {}
    base_path: Path | None = None
    if config_path is not None:
        data = _load_yaml(config_path)
        base_path = config_path.parent

    env_db_path = env.get("PORTAL_DB_PATH")
    overrides = {
        "database_path": str(resolve_database_path(env_db_path)) if env_db_path else None,
        "session_secret": env.get("PORTAL_SESSION_SECRET"),
        "latency_scale": env.get("PORTAL_LATENCY_SCALE"),
        "seed_defaults": env.get("PORTAL_SEED_DEFAULTS"),
        "session_secure": env.get("PORTAL_SESSION_SECURE"),
    }
    for key, value in overrides.items():
        if value is not None and value.strip() != "":
            data[key] = value

    return Settings.from_dict(data, base_path=base_path)


__all__ = ["Settings", "load_settings"]
