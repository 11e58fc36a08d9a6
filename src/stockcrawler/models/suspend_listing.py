"""Suspended (delisted) company row as published by TWSE."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SuspendListing:
    """Delisting notice.

    The source's JSON keys are kept verbatim in ``raw`` so fields added by
    the publisher later are not lost.

    Attributes:
        delisting_date: ROC calendar date, e.g. ``"1120703"``.
        name: Company name.
        stock_symbol: Stock code.
        raw: Original row.
    """

    delisting_date: str
    name: str
    stock_symbol: str
    raw: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> SuspendListing:
        return cls(
            delisting_date=str(row.get("DelistingDate", "")).strip(),
            name=str(row.get("Company", "")).strip(),
            stock_symbol=str(row.get("Code", "")).strip(),
            raw=dict(row),
        )

    @property
    def roc_year(self) -> int | None:
        """Minguo year (first three digits of the date), ``None`` if unparseable."""
        head = self.delisting_date[:3]
        if len(head) != 3 or not head.isdigit():
            return None
        return int(head)
