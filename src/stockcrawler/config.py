"""Crawler configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from stockcrawler.errors import ConfigError

CONFIG_PATH = "app.json"


@dataclass
class CrawlerConfig:
    """Configuration for the crawler process.

    Attributes:
        database_url: SQLAlchemy database URL.
        timezone: IANA zone used for cron evaluation and business dates.
        tick_seconds: Dispatcher tick interval (at most one second).
        drain_timeout_seconds: Grace period for in-flight jobs on shutdown.
        goodinfo_delay_seconds: Spacing between Goodinfo requests.
        yahoo_delay_seconds: Spacing between Yahoo requests.
        http_timeout_seconds: Per-request timeout for fetch adapters.
        ttl_seconds: Default TTL for derived-value cache entries.
        cache_max_entries: LRU bound of the derived-value cache.
        cache_lock_timeout_seconds: Max wait for the shared cache lock.
        telegram_token: Telegram bot token; empty disables Telegram.
        telegram_allowed: Chat id -> display name of notified chats.
        log_level: Root log level name.
        log_dir: Directory for rotating log files; ``None`` logs to console only.
        log_name: Prefix of log file names.
    """

    database_url: str = "sqlite:///stockcrawler.db"
    timezone: str = "Asia/Taipei"
    tick_seconds: float = 0.5
    drain_timeout_seconds: float = 300.0
    goodinfo_delay_seconds: float = 90.0
    yahoo_delay_seconds: float = 30.0
    http_timeout_seconds: float = 30.0
    ttl_seconds: int = 3600
    cache_max_entries: int = 1000
    cache_lock_timeout_seconds: float = 10.0
    telegram_token: str = ""
    telegram_allowed: dict[int, str] = field(default_factory=dict)
    log_level: str = "INFO"
    log_dir: str | None = None
    log_name: str = "stockcrawler"

    def __post_init__(self) -> None:
        if not 0 < self.tick_seconds <= 1:
            raise ConfigError(f"tick_seconds must be in (0, 1], got {self.tick_seconds}")
        for name in ("goodinfo_delay_seconds", "yahoo_delay_seconds", "drain_timeout_seconds"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")
        if self.ttl_seconds <= 0:
            raise ConfigError("ttl_seconds must be > 0")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown timezone: {self.timezone}") from exc
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log level: {self.log_level}")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


# env var -> (field name, converter)
_ENV_FIELDS: dict[str, tuple[str, Any]] = {
    "DATABASE_URL": ("database_url", str),
    "STOCKCRAWLER_TIMEZONE": ("timezone", str),
    "STOCKCRAWLER_TICK_SECONDS": ("tick_seconds", float),
    "STOCKCRAWLER_DRAIN_SECONDS": ("drain_timeout_seconds", float),
    "GOODINFO_DELAY_SECONDS": ("goodinfo_delay_seconds", float),
    "YAHOO_DELAY_SECONDS": ("yahoo_delay_seconds", float),
    "HTTP_TIMEOUT_SECONDS": ("http_timeout_seconds", float),
    "STOCKCRAWLER_TTL_SECONDS": ("ttl_seconds", int),
    "STOCKCRAWLER_CACHE_MAX_ENTRIES": ("cache_max_entries", int),
    "STOCKCRAWLER_LOCK_TIMEOUT_SECONDS": ("cache_lock_timeout_seconds", float),
    "TELEGRAM_TOKEN": ("telegram_token", str),
    "TELEGRAM_ALLOWED": ("telegram_allowed", lambda raw: _parse_allowed(json.loads(raw))),
    "LOG_LEVEL": ("log_level", str),
    "LOG_DIR": ("log_dir", str),
}


def load_config(
    env_path: Path | str | None = None,
    config_path: Path | str | None = None,
) -> CrawlerConfig:
    """Build a config from an optional JSON file, overridden by env vars.

    ``.env`` is loaded first (existing environment variables win). The JSON
    file defaults to ``$STOCKCRAWLER_CONFIG`` or ``app.json`` in the working
    directory and is skipped when absent.
    """
    load_dotenv(env_path, override=False)

    values: dict[str, Any] = {}
    path = Path(config_path or os.getenv("STOCKCRAWLER_CONFIG", CONFIG_PATH))
    if path.exists():
        values.update(_read_config_file(path))

    for env_var, (name, convert) in _ENV_FIELDS.items():
        raw = os.getenv(env_var)
        if raw is None or raw == "":
            continue
        try:
            values[name] = convert(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for {env_var}: {raw!r}") from exc

    try:
        return CrawlerConfig(**values)
    except TypeError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Can't read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    known = {f.name for f in fields(CrawlerConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    if "telegram_allowed" in raw:
        try:
            raw["telegram_allowed"] = _parse_allowed(raw["telegram_allowed"])
        except ValueError as exc:
            raise ConfigError(f"Invalid telegram_allowed in {path}: {exc}") from exc
    return raw


def _parse_allowed(value: Any) -> dict[int, str]:
    if not isinstance(value, dict):
        raise ValueError("telegram_allowed must be an object of chat id -> name")
    return {int(chat_id): str(name) for chat_id, name in value.items()}
