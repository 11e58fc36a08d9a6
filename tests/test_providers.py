"""Tests for the fetch adapters' parsers, HTTP error mapping and registry."""

import asyncio

import pytest
import requests

from stockcrawler.errors import CrawlerErrorCode, FetchError
from stockcrawler.providers import SOURCE_CLASSES, create_source
from stockcrawler.providers.goodinfo import parse_date, parse_dividend_table, parse_period
from stockcrawler.providers.http import HttpClient
from stockcrawler.providers.mock import MockDividendSource, MockMarketSource
from stockcrawler.providers.twse import parse_revenue_csv
from stockcrawler.providers.yahoo import distribution_year, parse_dividends


def _row(year, period, ex_div="-", ex_rights="-", cash_pay="-", stock_pay="-", cash="0", stock="0"):
    cells = [year, period, "", ex_div, "", ex_rights, "", "", cash_pay, "", stock_pay, "", cash, stock, "", ""]
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


GOODINFO_HTML = (
    "<html><body><table id='tblDetail'>"
    "<tr><th>股利發放年度</th><th>股利所屬期間</th></tr>"
    + _row("2024", "24Q1", ex_div="'24/09/12", cash_pay="'24/10/09", cash="4")
    + _row("2024", "23Q4", ex_div="'24/06/13", cash_pay="'24/07/11", cash="3.5")
    + _row("2023", "2023H1", ex_div="'23/09/14", cash="3")
    + _row("2025", "24Q4", cash="4.5")
    + _row("∟", "累計", cash="11")
    + "</table></body></html>"
)


class TestGoodinfo:
    def test_parse_period(self):
        assert parse_period("2023Q2") == (2023, 2)
        assert parse_period("23Q3") == (2023, 3)
        assert parse_period("2023H1") == (2023, 2)
        assert parse_period("2023H2") == (2023, 4)
        assert parse_period("2023") == (2023, 0)
        assert parse_period("累計") is None
        assert parse_period("2023H3") is None

    def test_parse_date(self):
        assert parse_date("'24/06/13") == "2024-06-13"
        assert parse_date("2024/6/3") == "2024-06-03"
        assert parse_date("-") == ""
        assert parse_date("即將除息") == ""

    def test_parse_table(self):
        result = parse_dividend_table("2330", GOODINFO_HTML)
        assert sorted(result) == [2023, 2024, 2025]
        q1, q4 = result[2024]
        assert (q1.year, q1.quarter, q1.year_of_dividend) == (2024, 1, 2024)
        assert q1.ex_dividend_date1 == "2024-09-12"
        assert q1.payable_date1 == "2024-10-09"
        assert q1.cash_dividend == 4.0
        assert (q4.quarter, q4.year_of_dividend) == (4, 2023)
        assert result[2023][0].quarter == 2
        assert result[2025][0].is_unannounced

    def test_malformed_row_is_skipped(self):
        html = GOODINFO_HTML.replace("</table>", _row("202²", "24Q2", cash="1") + "</table>")
        result = parse_dividend_table("2330", html)
        assert sorted(result) == [2023, 2024, 2025]

    def test_missing_table(self):
        with pytest.raises(FetchError) as exc_info:
            parse_dividend_table("2330", "<html><body>系統忙碌中</body></html>")
        assert exc_info.value.code == CrawlerErrorCode.DECODE_FAILED


class TestYahoo:
    PAYLOAD = {
        "dividends": [
            {
                "period": "2024Q1",
                "exDividendDate": "2024-09-12T00:00:00+08:00",
                "cashPayDate": "2024-10-09T00:00:00+08:00",
                "cashDividend": 4.0,
                "stockDividend": None,
            },
            {"period": "2024Q4", "cashDividend": "4.5"},
            {"period": "bogus"},
        ]
    }

    def test_parse(self):
        result = parse_dividends("2330", self.PAYLOAD)
        assert sorted(result) == [2024, 2025]
        q1 = result[2024][0]
        assert q1.ex_dividend_date1 == "2024-09-12"
        assert q1.payable_date1 == "2024-10-09"
        assert q1.stock_dividend == 0.0
        q4 = result[2025][0]
        assert q4.is_unannounced
        assert q4.cash_dividend == 4.5

    def test_distribution_year(self):
        assert distribution_year(2023, 0, ("", "")) == 2024
        assert distribution_year(2024, 2, ("", "")) == 2024
        assert distribution_year(2023, 4, ("", "2024-03-20")) == 2024

    def test_malformed_items_are_skipped(self):
        payload = {
            "dividends": [
                None,
                "2024Q1",
                {"period": "2023", "exDividendDate": "-", "exRightsDate": "N/A", "cashPayDate": 20240809},
                {"period": "2024Q2", "exDividendDate": "2024-12-12T00:00:00+08:00"},
            ]
        }
        result = parse_dividends("2330", payload)
        assert sorted(result) == [2024]
        annual, q2 = result[2024]
        assert annual.is_unannounced
        assert annual.payable_date1 == ""
        assert q2.ex_dividend_date1 == "2024-12-12"

    def test_unexpected_payload(self):
        with pytest.raises(FetchError):
            parse_dividends("2330", {"error": "not found"})


class TestRevenueCsv:
    def test_parse(self):
        text = (
            "出表日期,資料年月,公司代號,公司名稱,營業收入-當月營收\n"
            "1130510,11304,2330,台積電,236021112\n"
            "1130510,11304,1101,台泥,9000000\n"
        )
        rows = parse_revenue_csv(text)
        assert len(rows) == 2
        assert rows[0]["公司代號"] == "2330"
        assert rows[0]["營業收入-當月營收"] == "236021112"

    def test_empty(self):
        with pytest.raises(FetchError):
            parse_revenue_csv("")


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.encoding = None

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    def get(self, url, params=None, timeout=None):
        if self.error is not None:
            raise self.error
        return self.response


class TestHttpClient:
    def _client(self, **kwargs):
        client = HttpClient(timeout=1, source="test")
        client.session = FakeSession(**kwargs)
        return client

    def test_json(self):
        client = self._client(response=FakeResponse(payload=[{"Code": "2330"}]))
        assert asyncio.run(client.get_json("https://example.test")) == [{"Code": "2330"}]

    @pytest.mark.parametrize("kwargs, code", [
        ({"error": requests.Timeout()}, CrawlerErrorCode.TIMEOUT),
        ({"error": requests.ConnectionError("reset")}, CrawlerErrorCode.NETWORK),
        ({"response": FakeResponse(429)}, CrawlerErrorCode.RATE_LIMITED),
        ({"response": FakeResponse(404)}, CrawlerErrorCode.NOT_FOUND),
        ({"response": FakeResponse(503)}, CrawlerErrorCode.NETWORK),
        ({"response": FakeResponse(200, text="<html>")}, CrawlerErrorCode.DECODE_FAILED),
    ])
    def test_errors(self, kwargs, code):
        client = self._client(**kwargs)
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(client.get_json("https://example.test"))
        assert exc_info.value.code == code
        assert exc_info.value.retryable


class TestRegistry:
    def test_known_sources(self):
        assert {"goodinfo", "yahoo", "twse_quotes", "twse_revenue", "twse_suspend_listing"} <= set(SOURCE_CLASSES)

    def test_create(self):
        assert isinstance(create_source("mock_dividend"), MockDividendSource)
        market = create_source("mock_market", rows=[{"Code": "2330"}])
        assert isinstance(market, MockMarketSource)
        assert asyncio.run(market.visit()) == [{"Code": "2330"}]

    def test_unknown(self):
        with pytest.raises(KeyError):
            create_source("polygon")
