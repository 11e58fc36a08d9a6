"""End-of-day quotes of listed securities.

Derived values in the TTL cache are computed from stored quotes, so the
whole cache is dropped once a run has gone through.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from datetime import date
from typing import Any

from stockcrawler.cache import TtlCache
from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.models.quote import DailyQuote
from stockcrawler.pipeline import PipelineReport, SnapshotReconciliation
from stockcrawler.providers.base import BaseMarketSource

logger = logging.getLogger(__name__)


def roc_date(value: str) -> date:
    """``"1130517"`` -> ``date(2024, 5, 17)``."""
    value = value.strip()
    if len(value) < 6 or not value.isdigit():
        raise ValueError(f"bad ROC date: {value!r}")
    return date(int(value[:-4]) + 1911, int(value[-4:-2]), int(value[-2:]))


def _price(value: Any) -> float:
    text = str(value or "").replace(",", "").strip()
    # "X" prefixes a change that is not comparable (ex-rights day etc.)
    text = text.lstrip("X+")
    if text in ("", "-", "--"):
        return 0.0
    return float(text)


def _count(value: Any) -> int:
    text = str(value or "").replace(",", "").strip()
    if text in ("", "-", "--"):
        return 0
    return int(float(text))


def quote_from_row(row: dict[str, Any]) -> DailyQuote:
    return DailyQuote(
        security_code=str(row["Code"]).strip(),
        date=roc_date(str(row["Date"])),
        opening_price=_price(row.get("OpeningPrice")),
        highest_price=_price(row.get("HighestPrice")),
        lowest_price=_price(row.get("LowestPrice")),
        closing_price=_price(row.get("ClosingPrice")),
        change=_price(row.get("Change")),
        trade_volume=_count(row.get("TradeVolume")),
        trade_value=_count(row.get("TradeValue")),
        transactions=_count(row.get("Transaction")),
    )


class ListedQuoteReconciliation(SnapshotReconciliation[DailyQuote]):
    name = "crawler::listed_quotes"

    def __init__(
        self,
        gateway: PersistenceGateway,
        source: BaseMarketSource,
        ttl_cache: TtlCache,
    ) -> None:
        super().__init__(gateway)
        self.source = source
        self.ttl_cache = ttl_cache

    async def fetch(self) -> list[DailyQuote]:
        quotes = []
        for row in await self.source.visit():
            try:
                quotes.append(quote_from_row(row))
            except (KeyError, ValueError) as exc:
                logger.warning("%s: skipping malformed row %r: %s", self.name, row, exc)
        return quotes

    async def load_stored(self, fetched: list[DailyQuote]) -> dict[Hashable, DailyQuote]:
        stored: dict[Hashable, DailyQuote] = {}
        for day in sorted({q.date for q in fetched}):
            stored.update(await self.gateway.fetch_quotes(day))
        return stored

    async def after_persist(self, persisted: list[DailyQuote], report: PipelineReport) -> None:
        self.ttl_cache.clear_all()
        logger.info("%s: derived-value cache cleared", self.name)


async def execute(gateway: PersistenceGateway, source: BaseMarketSource, ttl_cache: TtlCache):
    return await ListedQuoteReconciliation(gateway, source, ttl_cache).run()
