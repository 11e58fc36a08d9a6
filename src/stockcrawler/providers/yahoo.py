"""Yahoo! Stock (Taiwan) dividend source (JSON).

Each item of the ``dividends`` array carries the earnings period
(``"2023Q4"``, ``"2023"``), ISO timestamps for the ex-dividend/ex-rights and
payment dates, and per-share amounts.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from stockcrawler.errors import CrawlerErrorCode, FetchError
from stockcrawler.models.dividend import DividendRecord
from stockcrawler.providers.base import BaseDividendSource
from stockcrawler.providers.goodinfo import parse_period
from stockcrawler.providers.http import HttpClient

URL = "https://tw.stock.yahoo.com/_td-stock/api/resource/StockServices.dividends"

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")

logger = logging.getLogger(__name__)


def _iso_date(value: Any) -> str:
    """ISO date prefix of ``value``; anything else (``"-"``, ``None``) is ``""``."""
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        return ""
    return value[:10]


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def distribution_year(year_of_dividend: int, quarter: int, ex_dates: tuple[str, str]) -> int:
    """Calendar year a distribution is paid in.

    Taken from the first announced ex-date; otherwise inferred from the
    usual Taiwan cadence (annual and Q3/Q4 pay the following year, Q1/Q2 the
    same year).
    """
    for ex_date in ex_dates:
        if _ISO_DATE_RE.match(ex_date):
            return int(ex_date[:4])
    if quarter in (1, 2):
        return year_of_dividend
    return year_of_dividend + 1


def parse_dividends(symbol: str, payload: Any) -> dict[int, list[DividendRecord]]:
    items = payload.get("dividends") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise FetchError(
            f"yahoo: unexpected dividend payload for {symbol}",
            code=CrawlerErrorCode.DECODE_FAILED,
            source="yahoo",
        )

    result: dict[int, list[DividendRecord]] = {}
    for item in items:
        if not isinstance(item, dict):
            logger.warning("yahoo: skipping malformed dividend item for %s: %r", symbol, item)
            continue
        try:
            record = _parse_item(symbol, item)
        except (TypeError, ValueError) as exc:
            logger.warning("yahoo: skipping dividend item for %s: %r (%s)", symbol, item, exc)
            continue
        if record is not None:
            result.setdefault(record.year, []).append(record)
    return result


def _parse_item(symbol: str, item: dict[str, Any]) -> DividendRecord | None:
    period = parse_period(str(item.get("period", "")))
    if period is None:
        return None
    year_of_dividend, quarter = period
    ex1 = _iso_date(item.get("exDividendDate"))
    ex2 = _iso_date(item.get("exRightsDate"))
    return DividendRecord(
        security_code=symbol,
        year=distribution_year(year_of_dividend, quarter, (ex1, ex2)),
        quarter=quarter,
        year_of_dividend=year_of_dividend,
        cash_dividend=_amount(item.get("cashDividend")),
        stock_dividend=_amount(item.get("stockDividend")),
        ex_dividend_date1=ex1,
        ex_dividend_date2=ex2,
        payable_date1=_iso_date(item.get("cashPayDate")),
        payable_date2=_iso_date(item.get("stockPayDate")),
    )


class YahooDividendSource(BaseDividendSource):
    """Dividend calendar from Yahoo! Stock Taiwan."""

    name = "yahoo"

    def __init__(self, timeout: float = 30.0, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(timeout=timeout, source=self.name)

    async def visit(self, symbol: str) -> dict[int, list[DividendRecord]]:
        url = f"{URL};limit=100;showUpcoming=true;symbol={symbol}.TW"
        payload = await self.client.get_json(url)
        return parse_dividends(symbol, payload)
