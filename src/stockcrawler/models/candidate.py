"""Reconciliation work items and persistence outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class CandidatePredicate(Enum):
    """Completeness predicates understood by the persistence gateway."""

    WITHOUT_OR_MULTIPLE_DIVIDENDS = "without_or_multiple_dividends"
    UNANNOUNCED_EX_DIVIDEND = "unannounced_ex_dividend"


@dataclass(frozen=True)
class Candidate:
    """Entity (symbol + period) needing a fetch/reconcile pass.

    Attributes:
        symbol: Stock symbol to fetch.
        period: Target period, e.g. the dividend year.
        stored: Stored record that made this a candidate, if any.
    """

    symbol: str
    period: int
    stored: Any = None


@dataclass(frozen=True)
class WriteOutcome:
    """Result of one upsert."""

    rows_affected: int
