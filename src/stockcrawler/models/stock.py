"""Stock reference data model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StockRecord:
    """Slowly-changing descriptive data for one listed security.

    Instances are immutable snapshots; a job that observes a change builds a
    new record with ``dataclasses.replace`` and hands it back to the shared
    cache.

    Attributes:
        stock_symbol: Exchange code, e.g. ``"2330"``.
        name: Display name.
        suspend_listing: Whether the security has been delisted.
        industry: Industry classification.
        market: Listing market (``TWSE``, ``TPEx``, ``Emerging``).
        isin: International securities identification number.
    """

    stock_symbol: str
    name: str
    suspend_listing: bool = False
    industry: str = ""
    market: str = ""
    isin: str = ""

    @property
    def key(self) -> str:
        return self.stock_symbol
