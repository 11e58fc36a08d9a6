"""Mock sources for testing and dry runs, no network access."""

from __future__ import annotations

import time
from typing import Any

from stockcrawler.errors import FetchError
from stockcrawler.models.dividend import DividendRecord
from stockcrawler.providers.base import BaseDividendSource, BaseMarketSource


class MockDividendSource(BaseDividendSource):
    """In-memory dividend source returning pre-loaded records.

    Use ``set_dividends`` / ``set_error`` to configure responses. Every call
    is recorded in ``calls`` as ``(symbol, monotonic start time)``.
    """

    name = "mock_dividend"

    def __init__(self) -> None:
        self._dividends: dict[str, dict[int, list[DividendRecord]]] = {}
        self._errors: dict[str, FetchError] = {}
        self.calls: list[tuple[str, float]] = []

    # --- Pre-load helpers ---

    def set_dividends(self, symbol: str, records: list[DividendRecord]) -> None:
        grouped: dict[int, list[DividendRecord]] = {}
        for record in records:
            grouped.setdefault(record.year, []).append(record)
        self._dividends[symbol] = grouped

    def set_error(self, symbol: str, error: FetchError | None = None) -> None:
        self._errors[symbol] = error or FetchError(f"mock failure for {symbol}", source=self.name)

    # --- Source implementation ---

    async def visit(self, symbol: str) -> dict[int, list[DividendRecord]]:
        self.calls.append((symbol, time.monotonic()))
        if symbol in self._errors:
            raise self._errors[symbol]
        return {year: list(records) for year, records in self._dividends.get(symbol, {}).items()}


class MockMarketSource(BaseMarketSource):
    """Whole-market source returning configurable rows."""

    name = "mock_market"

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows: list[dict[str, Any]] = list(rows or [])
        self.error: FetchError | None = None
        self.calls = 0

    def set_rows(self, rows: list[dict[str, Any]]) -> None:
        self.rows = list(rows)

    def set_error(self, error: FetchError | None = None) -> None:
        self.error = error or FetchError("mock market failure", source=self.name)

    async def visit(self) -> list[dict[str, Any]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]
