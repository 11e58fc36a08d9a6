"""Tests for data models."""

from dataclasses import FrozenInstanceError, replace
from datetime import date

import pytest

from stockcrawler.models import (
    Candidate,
    DailyQuote,
    DividendRecord,
    RevenueRecord,
    StockRecord,
    SuspendListing,
)


class TestDividendRecord:
    def test_key(self, sample_dividend):
        assert sample_dividend.key == ("2330", 2023, 2)

    def test_unannounced(self, sample_dividend):
        assert not sample_dividend.is_unannounced
        blank = replace(sample_dividend, ex_dividend_date1="")
        assert blank.is_unannounced
        assert not replace(blank, ex_dividend_date2="2023-12-14").is_unannounced

    def test_differs_only_on_dates(self, sample_dividend):
        assert not sample_dividend.differs_from(replace(sample_dividend, cash_dividend=9.9))
        assert sample_dividend.differs_from(replace(sample_dividend, payable_date2="2024-01-11"))

    def test_frozen(self, sample_dividend):
        with pytest.raises(FrozenInstanceError):
            sample_dividend.year = 2024


class TestSuspendListing:
    def test_from_row(self):
        notice = SuspendListing.from_row({"DelistingDate": "1120703 ", "Company": "康友-KY", "Code": "6452", "Extra": 1})
        assert notice.stock_symbol == "6452"
        assert notice.delisting_date == "1120703"
        assert notice.roc_year == 112
        assert notice.raw["Extra"] == 1

    def test_unparseable_date(self):
        assert SuspendListing.from_row({"DelistingDate": "", "Code": "1"}).roc_year is None

    def test_raw_not_compared(self):
        a = SuspendListing("1120703", "x", "6452", {"a": 1})
        b = SuspendListing("1120703", "x", "6452", {"b": 2})
        assert a == b


class TestKeys:
    def test_record_keys(self):
        assert StockRecord("2330", "台積電").key == "2330"
        assert RevenueRecord("2330", 202404).key == ("2330", 202404)
        assert DailyQuote("2330", date(2024, 5, 17)).key == ("2330", date(2024, 5, 17))

    def test_candidate_defaults(self):
        candidate = Candidate("2330", 2024)
        assert candidate.stored is None
