"""SQLAlchemy table models.

Column names match the dataclass field names in ``stockcrawler.models`` so
records map onto rows one to one. Primary keys are the natural identity keys
used as upsert conflict targets.
"""

from sqlalchemy import BigInteger, Boolean, Column, Date, DateTime, Float, Index, Integer, String, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Stock(Base):
    """Listed security reference data."""

    __tablename__ = "stocks"

    stock_symbol = Column(String(16), primary_key=True)
    name = Column(String(64), nullable=False, default="")
    suspend_listing = Column(Boolean, nullable=False, default=False, index=True)
    industry = Column(String(64), nullable=False, default="")
    market = Column(String(16), nullable=False, default="")
    isin = Column(String(16), nullable=False, default="")
    updated_at = Column(DateTime, server_default=func.now())


class Dividend(Base):
    """Dividend distributions, one row per (security, year, quarter)."""

    __tablename__ = "dividend"

    security_code = Column(String(16), primary_key=True)
    year = Column(Integer, primary_key=True)
    quarter = Column(Integer, primary_key=True, default=0)
    year_of_dividend = Column(Integer, nullable=False, default=0)
    cash_dividend = Column(Float, nullable=False, default=0.0)
    stock_dividend = Column(Float, nullable=False, default=0.0)
    ex_dividend_date1 = Column(String(10), nullable=False, default="")
    ex_dividend_date2 = Column(String(10), nullable=False, default="")
    payable_date1 = Column(String(10), nullable=False, default="")
    payable_date2 = Column(String(10), nullable=False, default="")
    updated_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        # "Which dividends of this year are still unannounced?"
        Index("idx_dividend_year_ex_dates", "year", "ex_dividend_date1", "ex_dividend_date2"),
    )


class Revenue(Base):
    """Monthly revenue, one row per (security, YYYYMM)."""

    __tablename__ = "revenue"

    security_code = Column(String(16), primary_key=True)
    date = Column(Integer, primary_key=True)
    monthly = Column(Float, nullable=False, default=0.0)
    last_month = Column(Float, nullable=False, default=0.0)
    last_year_this_month = Column(Float, nullable=False, default=0.0)
    monthly_accumulated = Column(Float, nullable=False, default=0.0)
    last_year_monthly_accumulated = Column(Float, nullable=False, default=0.0)
    compared_with_last_month = Column(Float, nullable=False, default=0.0)
    compared_with_last_year_same_month = Column(Float, nullable=False, default=0.0)
    accumulated_compared_with_last_year = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, server_default=func.now())


class RevenueLastDate(Base):
    """Latest reported month per security, rebuilt from ``revenue``."""

    __tablename__ = "revenue_last_date"

    security_code = Column(String(16), primary_key=True)
    date = Column(Integer, nullable=False)
    updated_at = Column(DateTime, server_default=func.now())


class DailyQuoteRow(Base):
    """End-of-day quotes, one row per (security, trading day)."""

    __tablename__ = "daily_quotes"

    security_code = Column(String(16), primary_key=True)
    date = Column(Date, primary_key=True)
    opening_price = Column(Float, nullable=False, default=0.0)
    highest_price = Column(Float, nullable=False, default=0.0)
    lowest_price = Column(Float, nullable=False, default=0.0)
    closing_price = Column(Float, nullable=False, default=0.0)
    change = Column(Float, nullable=False, default=0.0)
    trade_volume = Column(BigInteger, nullable=False, default=0)
    trade_value = Column(BigInteger, nullable=False, default=0)
    transactions = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_daily_quotes_date", "date"),
    )
