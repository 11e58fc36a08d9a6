"""Crawler container wiring store, caches, sources, notifier and scheduler together."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from stockcrawler.backfill import dividend, quotes, reminder, revenue, suspend_listing
from stockcrawler.cache import SharedCache, TtlCache
from stockcrawler.config import CrawlerConfig, load_config
from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.notifier import BaseNotifier, LogNotifier, TelegramNotifier
from stockcrawler.providers import create_source
from stockcrawler.providers.base import BaseDividendSource, BaseMarketSource
from stockcrawler.scheduler import Scheduler

logger = logging.getLogger(__name__)

# (cron expression, job id, Crawler method)
DEFAULT_JOBS: list[tuple[str, str, str]] = [
    ("0 0 1 * * *", "backfill::dividend", "backfill_dividend"),
    ("0 0 5 * * *", "crawler::revenue", "crawl_revenue"),
    ("0 5 5 * * *", "crawler::suspend_listing", "crawl_suspend_listing"),
    ("0 0 8 * * *", "notify::ex_dividend", "remind_ex_dividend"),
    ("0 0 15 * * mon-fri", "crawler::listed_quotes", "crawl_quotes"),
]


class Crawler:
    """Process-wide context shared by every scheduled job.

    Usage::

        from stockcrawler import create_crawler_from_env
        crawler = create_crawler_from_env()
        asyncio.run(crawler.serve())
    """

    def __init__(
        self,
        config: CrawlerConfig,
        gateway: PersistenceGateway | None = None,
        notifier: BaseNotifier | None = None,
        sources: dict[str, Any] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.gateway = gateway or PersistenceGateway.from_url(config.database_url)
        self.stocks = SharedCache(lock_timeout=config.cache_lock_timeout_seconds)
        self.derived = TtlCache(
            ttl_seconds=config.ttl_seconds,
            max_entries=config.cache_max_entries,
        )

        if notifier is not None:
            self.notifier = notifier
        elif config.telegram_token:
            self.notifier = TelegramNotifier(
                config.telegram_token,
                config.telegram_allowed,
                timeout=config.http_timeout_seconds,
            )
        else:
            self.notifier = LogNotifier()

        # Build sources, letting callers swap any of them out
        sources = dict(sources or {})
        timeout = config.http_timeout_seconds
        self.goodinfo: BaseDividendSource = sources.get("goodinfo") or create_source("goodinfo", timeout=timeout)
        self.yahoo: BaseDividendSource = sources.get("yahoo") or create_source("yahoo", timeout=timeout)
        self.suspend_listing_source: BaseMarketSource = (
            sources.get("twse_suspend_listing") or create_source("twse_suspend_listing", timeout=timeout)
        )
        self.quote_source: BaseMarketSource = (
            sources.get("twse_quotes") or create_source("twse_quotes", timeout=timeout)
        )
        self.revenue_source: BaseMarketSource = (
            sources.get("twse_revenue") or create_source("twse_revenue", timeout=timeout)
        )

        self._clock = clock or (lambda: datetime.now(config.tz))
        self.scheduler = Scheduler(
            tz=config.tz,
            tick_seconds=config.tick_seconds,
            notifier=self.notifier,
            clock=self._clock,
            drain_timeout=config.drain_timeout_seconds,
        )

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------ jobs

    async def backfill_dividend(self) -> None:
        await dividend.execute(
            self.gateway,
            self.goodinfo,
            self.yahoo,
            year=self.now().year,
            goodinfo_delay=self.config.goodinfo_delay_seconds,
            yahoo_delay=self.config.yahoo_delay_seconds,
        )

    async def crawl_suspend_listing(self) -> None:
        await suspend_listing.execute(
            self.gateway, self.stocks, self.suspend_listing_source, self.now()
        )

    async def crawl_revenue(self) -> None:
        await revenue.execute(self.gateway, self.revenue_source)

    async def crawl_quotes(self) -> None:
        await quotes.execute(self.gateway, self.quote_source, self.derived)

    async def remind_ex_dividend(self) -> None:
        await reminder.execute(self.gateway, self.derived, self.notifier, self.now().date())

    def job(self, task_id: str) -> Callable[[], Awaitable[None]]:
        for _, job_id, method in DEFAULT_JOBS:
            if job_id == task_id:
                return getattr(self, method)
        raise KeyError(f"Unknown job '{task_id}'. Known: {', '.join(j for _, j, _ in DEFAULT_JOBS)}")

    # ------------------------------------------------------------- lifecycle

    def register_default_jobs(self) -> None:
        for cron_expr, task_id, method in DEFAULT_JOBS:
            self.scheduler.register(cron_expr, task_id, getattr(self, method))

    async def start(self) -> None:
        """Create the schema if needed and warm the shared stock cache."""
        self.gateway.create_schema()
        await self.stocks.load(self.gateway)

    async def serve(self) -> None:
        await self.start()
        self.register_default_jobs()
        try:
            await self.scheduler.run()
        finally:
            self.close()

    async def run_once(self, task_id: str) -> None:
        await self.start()
        try:
            await self.job(task_id)()
        finally:
            self.close()

    def close(self) -> None:
        self.gateway.dispose()


def create_crawler_from_env(
    env_path: Path | str | None = None,
    config_path: Path | str | None = None,
) -> Crawler:
    """Zero-config factory reading ``.env``, an optional JSON file and env vars.

    See ``load_config`` for the recognised variables.
    """
    return Crawler(load_config(env_path=env_path, config_path=config_path))
