"""Monthly revenue of listed companies."""

from __future__ import annotations

import logging
from collections.abc import Hashable
from typing import Any

from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.models.revenue import RevenueRecord
from stockcrawler.pipeline import PipelineReport, SnapshotReconciliation
from stockcrawler.providers.base import BaseMarketSource

logger = logging.getLogger(__name__)

# publisher column -> RevenueRecord field
COLUMNS = {
    "營業收入-當月營收": "monthly",
    "營業收入-上月營收": "last_month",
    "營業收入-去年當月營收": "last_year_this_month",
    "營業收入-上月比較增減(%)": "compared_with_last_month",
    "營業收入-去年同月增減(%)": "compared_with_last_year_same_month",
    "累計營業收入-當月累計營收": "monthly_accumulated",
    "累計營業收入-去年累計營收": "last_year_monthly_accumulated",
    "累計營業收入-前期比較增減(%)": "accumulated_compared_with_last_year",
}


def roc_month(value: str) -> int:
    """``"11304"`` (ROC year + month) -> ``202404``."""
    value = value.strip()
    if len(value) < 4 or not value.isdigit():
        raise ValueError(f"bad ROC month: {value!r}")
    year, month = int(value[:-2]) + 1911, int(value[-2:])
    if not 1 <= month <= 12:
        raise ValueError(f"bad ROC month: {value!r}")
    return year * 100 + month


def to_number(value: Any) -> float:
    text = str(value).replace(",", "").strip()
    if text in ("", "-", "--", "N/A"):
        return 0.0
    return float(text)


def revenue_from_row(row: dict[str, Any]) -> RevenueRecord:
    values = {field: to_number(row.get(column, "")) for column, field in COLUMNS.items()}
    return RevenueRecord(
        security_code=str(row["公司代號"]).strip(),
        date=roc_month(str(row["資料年月"])),
        **values,
    )


class RevenueReconciliation(SnapshotReconciliation[RevenueRecord]):
    name = "crawler::revenue"

    def __init__(self, gateway: PersistenceGateway, source: BaseMarketSource) -> None:
        super().__init__(gateway)
        self.source = source

    async def fetch(self) -> list[RevenueRecord]:
        records = []
        for row in await self.source.visit():
            try:
                records.append(revenue_from_row(row))
            except (KeyError, ValueError) as exc:
                logger.warning("%s: skipping malformed row %r: %s", self.name, row, exc)
        return records

    async def load_stored(self, fetched: list[RevenueRecord]) -> dict[Hashable, RevenueRecord]:
        stored: dict[Hashable, RevenueRecord] = {}
        for month in sorted({r.date for r in fetched}):
            stored.update(await self.gateway.fetch_revenues(month))
        return stored

    async def after_persist(self, persisted: list[RevenueRecord], report: PipelineReport) -> None:
        await self.gateway.rebuild_revenue_last_date()


async def execute(gateway: PersistenceGateway, source: BaseMarketSource) -> PipelineReport:
    return await RevenueReconciliation(gateway, source).run()
