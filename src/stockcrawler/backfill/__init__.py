"""Scheduled reconciliation jobs."""

from stockcrawler.backfill import dividend, quotes, reminder, revenue, suspend_listing

__all__ = ["dividend", "quotes", "reminder", "revenue", "suspend_listing"]
