"""End-of-day quote data model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type


@dataclass(frozen=True)
class DailyQuote:
    """Closing quote of one listed security for a trading day.

    Attributes:
        security_code: Stock symbol.
        date: Trading day.
        opening_price: First trade price.
        highest_price: Session high.
        lowest_price: Session low.
        closing_price: Last trade price.
        change: Change versus previous close.
        trade_volume: Shares traded.
        trade_value: Turnover in TWD.
        transactions: Number of trades.
    """

    security_code: str
    date: date_type
    opening_price: float = 0.0
    highest_price: float = 0.0
    lowest_price: float = 0.0
    closing_price: float = 0.0
    change: float = 0.0
    trade_volume: int = 0
    trade_value: int = 0
    transactions: int = 0

    @property
    def key(self) -> tuple[str, date_type]:
        return (self.security_code, self.date)
