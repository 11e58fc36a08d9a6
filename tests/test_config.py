"""Tests for configuration loading and logging setup."""

import json
import logging

import pytest

from stockcrawler.config import CrawlerConfig, load_config
from stockcrawler.errors import ConfigError
from stockcrawler.log import configure_logging

ENV_VARS = [
    "DATABASE_URL", "STOCKCRAWLER_TIMEZONE", "STOCKCRAWLER_TICK_SECONDS",
    "STOCKCRAWLER_DRAIN_SECONDS", "GOODINFO_DELAY_SECONDS", "YAHOO_DELAY_SECONDS",
    "HTTP_TIMEOUT_SECONDS", "STOCKCRAWLER_TTL_SECONDS", "STOCKCRAWLER_CACHE_MAX_ENTRIES",
    "STOCKCRAWLER_LOCK_TIMEOUT_SECONDS", "TELEGRAM_TOKEN", "TELEGRAM_ALLOWED",
    "LOG_LEVEL", "LOG_DIR", "STOCKCRAWLER_CONFIG",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for var in ENV_VARS:
        # registers the variable so values loaded from .env are undone too
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestCrawlerConfig:
    def test_defaults(self):
        cfg = CrawlerConfig()
        assert cfg.timezone == "Asia/Taipei"
        assert cfg.goodinfo_delay_seconds == 90
        assert cfg.yahoo_delay_seconds == 30
        assert cfg.tick_seconds <= 1
        assert str(cfg.tz) == "Asia/Taipei"

    @pytest.mark.parametrize("kwargs", [
        {"tick_seconds": 0},
        {"tick_seconds": 1.5},
        {"goodinfo_delay_seconds": -1},
        {"ttl_seconds": 0},
        {"timezone": "Mars/Olympus_Mons"},
        {"log_level": "LOUD"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigError):
            CrawlerConfig(**kwargs)


class TestLoadConfig:
    def test_env_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://crawler@db/stocks")
        monkeypatch.setenv("GOODINFO_DELAY_SECONDS", "120")
        monkeypatch.setenv("TELEGRAM_ALLOWED", '{"12345": "ops"}')
        cfg = load_config(env_path=clean_env / "missing.env")
        assert cfg.database_url == "postgresql+psycopg2://crawler@db/stocks"
        assert cfg.goodinfo_delay_seconds == 120.0
        assert cfg.telegram_allowed == {12345: "ops"}

    def test_dotenv_file(self, clean_env):
        env_file = clean_env / ".env"
        env_file.write_text("YAHOO_DELAY_SECONDS=45\nLOG_LEVEL=DEBUG\n")
        cfg = load_config(env_path=env_file)
        assert cfg.yahoo_delay_seconds == 45.0
        assert cfg.log_level == "DEBUG"

    def test_json_file_then_env(self, clean_env, monkeypatch):
        config_file = clean_env / "app.json"
        config_file.write_text(json.dumps({"ttl_seconds": 600, "yahoo_delay_seconds": 10}))
        monkeypatch.setenv("YAHOO_DELAY_SECONDS", "20")
        cfg = load_config(env_path=clean_env / "missing.env")
        assert cfg.ttl_seconds == 600
        assert cfg.yahoo_delay_seconds == 20.0

    def test_unknown_json_key(self, clean_env):
        config_file = clean_env / "custom.json"
        config_file.write_text(json.dumps({"polygon_api_key": "x"}))
        with pytest.raises(ConfigError):
            load_config(env_path=clean_env / "missing.env", config_path=config_file)

    def test_bad_env_value(self, clean_env, monkeypatch):
        monkeypatch.setenv("STOCKCRAWLER_TICK_SECONDS", "fast")
        with pytest.raises(ConfigError):
            load_config(env_path=clean_env / "missing.env")

    def test_bad_log_level(self, clean_env, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        with pytest.raises(ConfigError, match="LOUD"):
            load_config(env_path=clean_env / "missing.env")

    def test_bad_allowed_map(self, clean_env, monkeypatch):
        monkeypatch.setenv("TELEGRAM_ALLOWED", '["ops"]')
        with pytest.raises(ConfigError):
            load_config(env_path=clean_env / "missing.env")


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("stockcrawler")
    saved = (logger.level, logger.propagate, list(logger.handlers))
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(saved[0])
    logger.propagate = saved[1]
    for handler in saved[2]:
        logger.addHandler(handler)


class TestConfigureLogging:
    def test_level_files(self, tmp_path, restore_logger):
        logger = configure_logging("DEBUG", tmp_path / "logs", name="crawler")
        logging.getLogger("stockcrawler.pipeline").info("hello info")
        logging.getLogger("stockcrawler.scheduler").error("hello error")
        for handler in logger.handlers:
            handler.flush()

        info = (tmp_path / "logs" / "crawler_info.log").read_text(encoding="utf-8")
        error = (tmp_path / "logs" / "crawler_error.log").read_text(encoding="utf-8")
        assert "hello info" in info and "hello error" not in info
        assert "hello error" in error and "hello info" not in error

    def test_console_only(self, restore_logger):
        logger = configure_logging("WARNING")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_unknown_level(self, restore_logger):
        with pytest.raises(ValueError):
            configure_logging("LOUD")
