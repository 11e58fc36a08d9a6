"""Morning reminder of stocks going ex-dividend today."""

from __future__ import annotations

import logging
from datetime import date

from stockcrawler.cache import TtlCache
from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.models.stock import StockRecord
from stockcrawler.notifier import BaseNotifier

logger = logging.getLogger(__name__)


def format_reminder(day: date, stocks: list[StockRecord]) -> str:
    lines = [f"{day.isoformat()} 除權息股票:"]
    lines.extend(f"{s.stock_symbol} {s.name}" for s in stocks)
    return "\n".join(lines)


async def execute(
    gateway: PersistenceGateway,
    ttl_cache: TtlCache,
    notifier: BaseNotifier,
    today: date,
) -> int:
    """Send today's ex-dividend list; returns how many stocks were listed."""
    stocks = await ttl_cache.get_or_compute(
        ("stocks_with_dividends_on", today),
        lambda: gateway.fetch_stocks_with_dividends_on(today),
    )
    if not stocks:
        logger.info("No ex-dividend stocks on %s", today)
        return 0
    await notifier.send(format_reminder(today, stocks))
    return len(stocks)
