"""Monthly revenue data model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RevenueRecord:
    """Monthly revenue report of one company (amounts in thousand TWD).

    Attributes:
        security_code: Stock symbol.
        date: Reporting month as ``YYYYMM``.
        monthly: Revenue of the month.
        last_month: Revenue of the previous month.
        last_year_this_month: Revenue of the same month last year.
        monthly_accumulated: Year-to-date revenue.
        last_year_monthly_accumulated: Year-to-date revenue last year.
        compared_with_last_month: Month-over-month change (%).
        compared_with_last_year_same_month: Year-over-year change (%).
        accumulated_compared_with_last_year: Year-to-date change (%).
    """

    security_code: str
    date: int
    monthly: float = 0.0
    last_month: float = 0.0
    last_year_this_month: float = 0.0
    monthly_accumulated: float = 0.0
    last_year_monthly_accumulated: float = 0.0
    compared_with_last_month: float = 0.0
    compared_with_last_year_same_month: float = 0.0
    accumulated_compared_with_last_year: float = 0.0

    @property
    def key(self) -> tuple[str, int]:
        return (self.security_code, self.date)
