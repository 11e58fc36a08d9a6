"""Shared fixtures for stockcrawler tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.models.dividend import DividendRecord
from stockcrawler.models.stock import StockRecord


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway(tmp_path) -> PersistenceGateway:
    gw = PersistenceGateway.from_url(f"sqlite:///{tmp_path / 'crawler.db'}")
    gw.create_schema()
    yield gw
    gw.dispose()


@pytest.fixture
def sample_stocks() -> list[StockRecord]:
    return [
        StockRecord("1101", "台泥", industry="水泥工業", market="TWSE"),
        StockRecord("2330", "台積電", industry="半導體業", market="TWSE"),
        StockRecord("2412", "中華電", industry="通信網路業", market="TWSE"),
    ]


@pytest.fixture
def sample_dividend() -> DividendRecord:
    """2330's 2023 Q2 distribution, paid in 2023."""
    return DividendRecord(
        security_code="2330",
        year=2023,
        quarter=2,
        year_of_dividend=2023,
        cash_dividend=3.0,
        ex_dividend_date1="2023-12-14",
        payable_date1="2024-01-11",
    )
