"""Mark delisted stocks.

The published list covers every delisting ever recorded; only notices from
ROC year 110 (2021) onwards are considered. Changes are computed against a
copy of the shared stock cache and written back to it only after the store
accepted them.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from stockcrawler.cache import SharedCache
from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.models.stock import StockRecord
from stockcrawler.models.suspend_listing import SuspendListing
from stockcrawler.pipeline import PipelineReport, SnapshotReconciliation
from stockcrawler.providers.base import BaseMarketSource

logger = logging.getLogger(__name__)

MIN_ROC_YEAR = 110


class SuspendListingReconciliation(SnapshotReconciliation[StockRecord]):
    name = "crawler::suspend_listing"

    def __init__(
        self,
        gateway: PersistenceGateway,
        cache: SharedCache,
        source: BaseMarketSource,
    ) -> None:
        super().__init__(gateway)
        self.cache = cache
        self.source = source

    async def fetch(self) -> list[SuspendListing]:
        rows = await self.source.visit()
        notices = []
        for row in rows:
            notice = SuspendListing.from_row(row)
            roc_year = notice.roc_year
            if roc_year is None or roc_year < MIN_ROC_YEAR:
                continue
            notices.append(notice)
        return notices

    async def load_stored(self, fetched: list[SuspendListing]) -> dict[str, StockRecord]:
        return self.cache.read_all()

    def compute_deltas(
        self, stored: dict[str, StockRecord], fetched: list[SuspendListing]
    ) -> list[StockRecord]:
        deltas: dict[str, StockRecord] = {}
        for notice in fetched:
            stock = stored.get(notice.stock_symbol)
            if stock is None or stock.suspend_listing:
                continue
            deltas[stock.stock_symbol] = replace(stock, suspend_listing=True)
        return list(deltas.values())

    async def after_persist(self, persisted: list[StockRecord], report: PipelineReport) -> None:
        if persisted:
            self.cache.apply_updates(persisted)
            logger.info("%s: %d stock(s) marked delisted", self.name, len(persisted))


async def execute(
    gateway: PersistenceGateway,
    cache: SharedCache,
    source: BaseMarketSource,
    now: datetime,
) -> PipelineReport | None:
    """Reconcile delistings; nothing is done on Saturdays and Sundays."""
    if now.weekday() >= 5:
        logger.info("crawler::suspend_listing skipped on weekend (%s)", now.date())
        return None
    return await SuspendListingReconciliation(gateway, cache, source).run()
