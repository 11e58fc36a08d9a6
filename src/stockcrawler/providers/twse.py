"""Taiwan Stock Exchange open-data sources (whole market)."""

from __future__ import annotations

import io
import logging
from typing import Any

import pandas as pd

from stockcrawler.errors import CrawlerErrorCode, FetchError
from stockcrawler.providers.base import BaseMarketSource
from stockcrawler.providers.http import HttpClient

logger = logging.getLogger(__name__)

SUSPEND_LISTING_URL = "https://openapi.twse.com.tw/v1/company/suspendListingCsvAndHtml"
DAILY_QUOTES_URL = "https://openapi.twse.com.tw/v1/exchangeReport/STOCK_DAY_ALL"
MONTHLY_REVENUE_URL = "https://mopsfin.twse.com.tw/opendata/t187ap05_L.csv"


class _JsonListSource(BaseMarketSource):
    url: str = ""

    def __init__(self, timeout: float = 30.0, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(timeout=timeout, source=self.name)

    async def visit(self) -> list[dict[str, Any]]:
        logger.info("visit url: %s", self.url)
        payload = await self.client.get_json(self.url)
        if not isinstance(payload, list):
            raise FetchError(
                f"{self.name}: expected a JSON array from {self.url}",
                code=CrawlerErrorCode.DECODE_FAILED,
                source=self.name,
            )
        return [row for row in payload if isinstance(row, dict)]


class SuspendListingSource(_JsonListSource):
    """Delisted companies (``DelistingDate``, ``Company``, ``Code``)."""

    name = "twse_suspend_listing"
    url = SUSPEND_LISTING_URL


class ListedQuoteSource(_JsonListSource):
    """Latest trading day's closing quotes of every listed security.

    Rows carry ``Date`` (ROC ``YYYMMDD``), ``Code``, ``Name``,
    ``TradeVolume``, ``TradeValue``, ``OpeningPrice``, ``HighestPrice``,
    ``LowestPrice``, ``ClosingPrice``, ``Change`` and ``Transaction``.
    """

    name = "twse_quotes"
    url = DAILY_QUOTES_URL


class MonthlyRevenueSource(BaseMarketSource):
    """Monthly revenue of listed companies, published as CSV.

    Column headers are the publisher's (``資料年月``, ``公司代號``,
    ``營業收入-當月營收``, ...) and are passed through untouched.
    """

    name = "twse_revenue"

    def __init__(self, timeout: float = 30.0, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(timeout=timeout, source=self.name)

    async def visit(self) -> list[dict[str, Any]]:
        logger.info("visit url: %s", MONTHLY_REVENUE_URL)
        text = await self.client.get_text(MONTHLY_REVENUE_URL, encoding="utf-8-sig")
        return parse_revenue_csv(text)


def parse_revenue_csv(text: str) -> list[dict[str, Any]]:
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise FetchError(
            f"twse_revenue: can't parse revenue CSV: {exc}",
            code=CrawlerErrorCode.DECODE_FAILED,
            source="twse_revenue",
        ) from exc
    df.columns = [str(c).strip() for c in df.columns]
    return df.to_dict(orient="records")
