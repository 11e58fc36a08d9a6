"""Goodinfo! dividend schedule source (HTML).

The dividend schedule page lists one row per distribution in a table with id
``tblDetail``. Columns used (0-based):

    0  distribution year, e.g. ``2024``
    1  period the earnings belong to: ``2023``, ``23Q3``/``2023Q3`` or ``2023H1``
    3  ex-dividend date (cash), e.g. ``'24/06/13``
    5  ex-rights date (stock)
    8  cash payable date
    10 stock distribution date
    12 cash dividend per share
    13 stock dividend per share

Goodinfo rate-limits aggressively; callers space requests well apart.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from bs4 import BeautifulSoup

from stockcrawler.errors import CrawlerErrorCode, FetchError
from stockcrawler.models.dividend import DividendRecord
from stockcrawler.providers.base import BaseDividendSource
from stockcrawler.providers.http import HttpClient

URL = "https://goodinfo.tw/tw/StockDividendSchedule.asp"

logger = logging.getLogger(__name__)

COL_YEAR = 0
COL_PERIOD = 1
COL_EX_DIVIDEND = 3
COL_EX_RIGHTS = 5
COL_CASH_PAYABLE = 8
COL_STOCK_PAYABLE = 10
COL_CASH = 12
COL_STOCK = 13

_PERIOD_RE = re.compile(r"^(?P<year>\d{2}|\d{4})(?:(?P<kind>[QH])(?P<n>[1-4]))?$")
_DATE_RE = re.compile(r"^'?(?P<y>\d{2}|\d{4})/(?P<m>\d{1,2})/(?P<d>\d{1,2})$")


def _full_year(raw: str) -> int:
    year = int(raw)
    return year + 2000 if year < 100 else year


def parse_period(text: str) -> tuple[int, int] | None:
    """``"2023Q2"`` -> (2023, 2); ``"2023H1"`` -> (2023, 2); ``"2023"`` -> (2023, 0).

    Half-year periods map to the quarter they end in.
    """
    match = _PERIOD_RE.match(text.strip())
    if not match:
        return None
    year = _full_year(match["year"])
    kind = match["kind"]
    if kind is None:
        return year, 0
    n = int(match["n"])
    if kind == "H":
        if n > 2:
            return None
        return year, n * 2
    return year, n


def parse_date(text: str) -> str:
    """``"'24/06/13"`` -> ``"2024-06-13"``; placeholders become ``""``."""
    match = _DATE_RE.match(text.strip())
    if not match:
        return ""
    return f"{_full_year(match['y']):04d}-{int(match['m']):02d}-{int(match['d']):02d}"


def _parse_amount(text: str) -> float:
    cleaned = text.strip().replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _parse_row(symbol: str, cells: list[str]) -> DividendRecord | None:
    period = parse_period(cells[COL_PERIOD])
    if period is None:
        return None
    year_of_dividend, quarter = period
    return DividendRecord(
        security_code=symbol,
        year=int(cells[COL_YEAR]),
        quarter=quarter,
        year_of_dividend=year_of_dividend,
        cash_dividend=_parse_amount(cells[COL_CASH]),
        stock_dividend=_parse_amount(cells[COL_STOCK]),
        ex_dividend_date1=parse_date(cells[COL_EX_DIVIDEND]),
        ex_dividend_date2=parse_date(cells[COL_EX_RIGHTS]),
        payable_date1=parse_date(cells[COL_CASH_PAYABLE]),
        payable_date2=parse_date(cells[COL_STOCK_PAYABLE]),
    )


def parse_dividend_table(symbol: str, html: str) -> dict[int, list[DividendRecord]]:
    """Parse the ``tblDetail`` table into records grouped by distribution year."""
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find("table", id="tblDetail")
    if table is None:
        raise FetchError(
            f"goodinfo: dividend table not found for {symbol}",
            code=CrawlerErrorCode.DECODE_FAILED,
            source="goodinfo",
        )

    result: dict[int, list[DividendRecord]] = {}
    for tr in table.find_all("tr"):
        cells = [td.get_text(strip=True) for td in tr.find_all("td")]
        if len(cells) <= COL_STOCK or not cells[COL_YEAR].isdigit():
            continue  # header or summary row
        try:
            record = _parse_row(symbol, cells)
        except (TypeError, ValueError) as exc:
            logger.warning("goodinfo: skipping row for %s: %r (%s)", symbol, cells, exc)
            continue
        if record is None:
            continue
        result.setdefault(record.year, []).append(record)
    return result


class GoodinfoDividendSource(BaseDividendSource):
    """Dividend history scraped from Goodinfo!."""

    name = "goodinfo"

    def __init__(self, timeout: float = 30.0, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(
            timeout=timeout,
            headers={"Referer": "https://goodinfo.tw/tw/index.asp"},
            source=self.name,
        )

    async def visit(self, symbol: str) -> dict[int, list[DividendRecord]]:
        params: dict[str, Any] = {"STOCK_ID": symbol}
        html = await self.client.get_text(URL, params=params, encoding="utf-8")
        return parse_dividend_table(symbol, html)
