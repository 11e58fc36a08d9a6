"""Crawler error types."""

from __future__ import annotations

from enum import Enum


class CrawlerErrorCode(Enum):
    """Error classification codes."""

    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK = "network"
    DECODE_FAILED = "decode_failed"
    NOT_FOUND = "not_found"
    DATABASE = "database"
    LOCK_TIMEOUT = "lock_timeout"
    LOCK_POISONED = "lock_poisoned"
    INVALID_CRON = "invalid_cron"
    INVALID_CONFIG = "invalid_config"
    NOTIFY_FAILED = "notify_failed"


class CrawlerError(Exception):
    """Crawler exception with error code and retryable flag.

    Attributes:
        message: Human-readable error description.
        code: Structured error code for programmatic handling.
        retryable: Whether the same work may succeed on a later run.
    """

    def __init__(
        self,
        message: str,
        code: CrawlerErrorCode,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable


class FetchError(CrawlerError):
    """Network, timeout or decoding failure from an external source."""

    def __init__(
        self,
        message: str,
        code: CrawlerErrorCode = CrawlerErrorCode.NETWORK,
        source: str | None = None,
    ) -> None:
        super().__init__(message, code=code, retryable=True)
        self.source = source


class PersistError(CrawlerError):
    """Read or write failure against the relational store."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=CrawlerErrorCode.DATABASE, retryable=True)


class CacheLockError(CrawlerError):
    """Shared cache lock contention or poisoning.

    A poisoned cache means a writer failed half way through applying an
    update; the map can no longer be trusted and the process must stop.
    """

    def __init__(self, message: str, poisoned: bool = False) -> None:
        super().__init__(
            message,
            code=CrawlerErrorCode.LOCK_POISONED if poisoned else CrawlerErrorCode.LOCK_TIMEOUT,
            retryable=not poisoned,
        )

    @property
    def fatal(self) -> bool:
        return self.code is CrawlerErrorCode.LOCK_POISONED


class SchedulerConfigError(CrawlerError):
    """Malformed job registration (bad cron expression, duplicate job)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=CrawlerErrorCode.INVALID_CRON)


class ConfigError(CrawlerError):
    """Invalid static configuration value."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=CrawlerErrorCode.INVALID_CONFIG)


class NotificationError(CrawlerError):
    """Operator notification could not be delivered."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=CrawlerErrorCode.NOTIFY_FAILED, retryable=True)
