"""Fetch adapter registry."""

from __future__ import annotations

import importlib

from stockcrawler.providers.base import BaseDividendSource, BaseMarketSource

# name -> dotted class path, imported on first use
SOURCE_CLASSES: dict[str, str] = {
    "goodinfo": "stockcrawler.providers.goodinfo.GoodinfoDividendSource",
    "yahoo": "stockcrawler.providers.yahoo.YahooDividendSource",
    "twse_suspend_listing": "stockcrawler.providers.twse.SuspendListingSource",
    "twse_quotes": "stockcrawler.providers.twse.ListedQuoteSource",
    "twse_revenue": "stockcrawler.providers.twse.MonthlyRevenueSource",
    "mock_dividend": "stockcrawler.providers.mock.MockDividendSource",
    "mock_market": "stockcrawler.providers.mock.MockMarketSource",
}


def create_source(name: str, **kwargs) -> BaseDividendSource | BaseMarketSource:
    """Instantiate a source by registry name, forwarding kwargs to its constructor."""
    if name not in SOURCE_CLASSES:
        raise KeyError(f"Unknown source '{name}'. Known: {', '.join(SOURCE_CLASSES)}")
    module_path, cls_name = SOURCE_CLASSES[name].rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls(**kwargs)


__all__ = ["BaseDividendSource", "BaseMarketSource", "SOURCE_CLASSES", "create_source"]
