"""Abstract base classes for fetch adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from stockcrawler.models.dividend import DividendRecord


class BaseDividendSource(ABC):
    """Per-symbol dividend source.

    ``visit`` returns the source's dividend history grouped by distribution
    year, or raises ``FetchError``. Implementations do their own parsing;
    callers only see typed records.
    """

    name: str = "dividend"

    @abstractmethod
    async def visit(self, symbol: str) -> dict[int, list[DividendRecord]]:
        """Fetch dividend records for ``symbol``.

        Args:
            symbol: Stock code, e.g. ``"2330"``.

        Returns:
            Mapping of distribution year -> records of that year.
        """
        ...


class BaseMarketSource(ABC):
    """Whole-market source returning raw rows.

    Rows are JSON-like dicts whose keys are the publisher's own field names,
    kept verbatim.
    """

    name: str = "market"

    @abstractmethod
    async def visit(self) -> list[dict[str, Any]]:
        """Fetch every row currently published."""
        ...
