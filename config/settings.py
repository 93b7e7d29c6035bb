"""
Configuration loader for the moment notifier.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class ScheduleConfig:
    utc_offset_minutes: int = 120                     # fixed offset, no DST
    accent_color: int = 0xFFFFFF                      # embed colour for posts
    windows: list[dict[str, Any]] = field(default_factory=list)  # empty → built-in table


@dataclass
class DatabaseConfig:
    url: str = "sqlite:///./moments.db"               # postgresql:// | mysql:// | sqlite://
    store_backend: str = "memory"                      # "sql" | "memory" | "file"
    store_file_dir: str = "./data"                     # directory for file backend


@dataclass
class DiscordConfig:
    token: str = ""
    application_id: str = ""
    public_key: str = ""                               # hex Ed25519 key for interactions
    api_base: str = "https://discord.com/api/v10"
    command_guild_ids: list[str] = field(default_factory=list)  # empty → global command
    rate_per_second: float = 5.0
    burst: int = 5
    breaker_threshold: int = 5                         # consecutive failures per channel
    breaker_recovery_s: float = 300.0


@dataclass
class Settings:
    app_name: str = "MomentNotifier"
    debug: bool = False
    log_level: str = "INFO"
    dispatch_enabled: bool = True
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    messages: dict[str, str] = field(default_factory=dict)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_color(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    # "#ffffff", "0xffffff" and "ffffff" all accepted
    return int(str(value).strip().lstrip("#"), 16)


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "MOMENTS_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = _as_bool(raw.get("debug"), settings.debug)
        settings.log_level = raw.get("log_level", settings.log_level)
        settings.dispatch_enabled = _as_bool(raw.get("dispatch_enabled"), settings.dispatch_enabled)

        if "schedule" in raw:
            sc = raw["schedule"] or {}
            settings.schedule = ScheduleConfig(
                utc_offset_minutes=int(sc.get("utc_offset_minutes", 120)),
                accent_color=_as_color(sc.get("accent_color"), 0xFFFFFF),
                windows=list(sc.get("windows") or []),
            )

        if "database" in raw:
            db = raw["database"] or {}
            settings.database = DatabaseConfig(
                url=db.get("url", settings.database.url),
                store_backend=db.get("store_backend", settings.database.store_backend),
                store_file_dir=db.get("store_file_dir", settings.database.store_file_dir),
            )

        if "discord" in raw:
            dc = raw["discord"] or {}
            settings.discord = DiscordConfig(
                token=dc.get("token", ""),
                application_id=str(dc.get("application_id", "") or ""),
                public_key=dc.get("public_key", ""),
                api_base=dc.get("api_base", settings.discord.api_base),
                command_guild_ids=[str(g) for g in (dc.get("command_guild_ids") or [])],
                rate_per_second=float(dc.get("rate_per_second", 5.0)),
                burst=int(dc.get("burst", 5)),
                breaker_threshold=int(dc.get("breaker_threshold", 5)),
                breaker_recovery_s=float(dc.get("breaker_recovery_s", 300.0)),
            )

        settings.messages = dict(raw.get("messages") or {})

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None
