"""Crawler data models."""

from stockcrawler.models.candidate import Candidate, CandidatePredicate, WriteOutcome
from stockcrawler.models.dividend import DividendRecord
from stockcrawler.models.quote import DailyQuote
from stockcrawler.models.revenue import RevenueRecord
from stockcrawler.models.stock import StockRecord
from stockcrawler.models.suspend_listing import SuspendListing

__all__ = [
    "StockRecord",
    "DividendRecord",
    "SuspendListing",
    "RevenueRecord",
    "DailyQuote",
    "Candidate",
    "CandidatePredicate",
    "WriteOutcome",
]
