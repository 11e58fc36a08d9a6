"""Relational store access."""

from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.db.tables import Base, DailyQuoteRow, Dividend, Revenue, RevenueLastDate, Stock

__all__ = ["PersistenceGateway", "Base", "Stock", "Dividend", "Revenue", "RevenueLastDate", "DailyQuoteRow"]
