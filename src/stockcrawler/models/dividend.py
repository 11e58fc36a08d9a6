"""Dividend distribution data model."""

from __future__ import annotations

from dataclasses import dataclass

DATE_FIELDS = ("ex_dividend_date1", "ex_dividend_date2", "payable_date1", "payable_date2")


@dataclass(frozen=True)
class DividendRecord:
    """One dividend distribution of a security.

    Dates are ``YYYY-MM-DD`` strings, ``""`` while the company has not
    announced them yet.

    Attributes:
        security_code: Stock symbol.
        year: Calendar year the distribution is paid in.
        quarter: Distribution period within the year (0 = annual, 1-4 = quarter).
        year_of_dividend: Fiscal year whose earnings are distributed.
        cash_dividend: Cash dividend per share.
        stock_dividend: Stock dividend per share.
        ex_dividend_date1: Ex-dividend date of the cash part.
        ex_dividend_date2: Ex-rights date of the stock part.
        payable_date1: Cash payment date.
        payable_date2: Stock distribution date.
    """

    security_code: str
    year: int
    quarter: int = 0
    year_of_dividend: int = 0
    cash_dividend: float = 0.0
    stock_dividend: float = 0.0
    ex_dividend_date1: str = ""
    ex_dividend_date2: str = ""
    payable_date1: str = ""
    payable_date2: str = ""

    @property
    def key(self) -> tuple[str, int, int]:
        return (self.security_code, self.year, self.quarter)

    @property
    def is_unannounced(self) -> bool:
        """Both ex-dividend dates are still blank."""
        return not self.ex_dividend_date1 and not self.ex_dividend_date2

    def dates(self) -> tuple[str, str, str, str]:
        return tuple(getattr(self, name) for name in DATE_FIELDS)  # type: ignore[return-value]

    def differs_from(self, other: DividendRecord) -> bool:
        """True when any ex-dividend or payable date differs."""
        return self.dates() != other.dates()
