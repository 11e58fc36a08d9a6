"""stockcrawler: scheduled Taiwan stock data collection.

Keeps a relational store of listed stocks, dividends, monthly revenue and
daily quotes in step with public sources (Goodinfo, Yahoo, TWSE open data),
and notifies an operator chat about ex-dividend days.

Quick start::

    from stockcrawler import create_crawler_from_env
    crawler = create_crawler_from_env()
    asyncio.run(crawler.serve())
"""

from __future__ import annotations

from stockcrawler.app import DEFAULT_JOBS, Crawler, create_crawler_from_env
from stockcrawler.cache import ReadWriteLock, SharedCache, TtlCache
from stockcrawler.config import CrawlerConfig, load_config
from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.errors import (
    CacheLockError,
    ConfigError,
    CrawlerError,
    CrawlerErrorCode,
    FetchError,
    NotificationError,
    PersistError,
    SchedulerConfigError,
)
from stockcrawler.models import (
    Candidate,
    CandidatePredicate,
    DailyQuote,
    DividendRecord,
    RevenueRecord,
    StockRecord,
    SuspendListing,
    WriteOutcome,
)
from stockcrawler.notifier import BaseNotifier, LogNotifier, TelegramNotifier
from stockcrawler.pipeline import PipelineReport, ReconciliationPipeline, SnapshotReconciliation
from stockcrawler.scheduler import Scheduler

__version__ = "0.1.0"

__all__ = [
    "Crawler",
    "create_crawler_from_env",
    "DEFAULT_JOBS",
    "CrawlerConfig",
    "load_config",
    "Scheduler",
    "SharedCache",
    "TtlCache",
    "ReadWriteLock",
    "PersistenceGateway",
    "ReconciliationPipeline",
    "SnapshotReconciliation",
    "PipelineReport",
    "BaseNotifier",
    "LogNotifier",
    "TelegramNotifier",
    "StockRecord",
    "DividendRecord",
    "SuspendListing",
    "RevenueRecord",
    "DailyQuote",
    "Candidate",
    "CandidatePredicate",
    "WriteOutcome",
    "CrawlerError",
    "CrawlerErrorCode",
    "FetchError",
    "PersistError",
    "CacheLockError",
    "SchedulerConfigError",
    "ConfigError",
    "NotificationError",
]
