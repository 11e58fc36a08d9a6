"""Dividend backfill: two reconciliation pipelines run side by side.

``WithoutOrMultipleDividendPipeline`` fills in years for which a stock has
no dividend row yet (or several, since quarterly payers keep announcing)
from Goodinfo. ``UnannouncedExDividendPipeline`` revisits stored rows whose
ex-dividend dates are still blank using Yahoo. The two talk to different
hosts, so they run concurrently and each keeps its own fetch spacing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date
from typing import Any

from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.errors import CacheLockError
from stockcrawler.models.candidate import Candidate, CandidatePredicate
from stockcrawler.models.dividend import DATE_FIELDS, DividendRecord
from stockcrawler.pipeline import PipelineReport, ReconciliationPipeline
from stockcrawler.providers.base import BaseDividendSource

logger = logging.getLogger(__name__)


class WithoutOrMultipleDividendPipeline(ReconciliationPipeline[DividendRecord]):
    """Stocks with zero or several dividend rows for ``year``."""

    name = "backfill::dividend::without_or_multiple"

    def __init__(
        self,
        gateway: PersistenceGateway,
        source: BaseDividendSource,
        year: int,
        delay_seconds: float = 90.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(gateway, delay_seconds, **kwargs)
        self.source = source
        self.year = year

    async def select_candidates(self) -> list[Candidate]:
        return await self.gateway.fetch_candidates(
            CandidatePredicate.WITHOUT_OR_MULTIPLE_DIVIDENDS, self.year
        )

    async def fetch(self, candidate: Candidate) -> dict[int, list[DividendRecord]]:
        return await self.source.visit(candidate.symbol)

    def filter_period(
        self, candidate: Candidate, fetched: dict[int, list[DividendRecord]]
    ) -> list[DividendRecord]:
        return [r for r in fetched.get(candidate.period, []) if r.year == candidate.period]

    async def load_stored(self, candidate: Candidate, fresh: DividendRecord) -> DividendRecord | None:
        return await self.gateway.fetch_dividend(fresh.key)

    def merge(
        self,
        candidate: Candidate,
        stored: DividendRecord | None,
        fresh: DividendRecord,
    ) -> DividendRecord | None:
        if stored is None or fresh.differs_from(stored):
            return fresh
        return None


class UnannouncedExDividendPipeline(ReconciliationPipeline[DividendRecord]):
    """Stored dividend rows of ``year`` whose ex-dividend dates are blank."""

    name = "backfill::dividend::unannounced_ex_dividend"

    def __init__(
        self,
        gateway: PersistenceGateway,
        source: BaseDividendSource,
        year: int,
        delay_seconds: float = 30.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(gateway, delay_seconds, **kwargs)
        self.source = source
        self.year = year

    async def select_candidates(self) -> list[Candidate]:
        return await self.gateway.fetch_candidates(
            CandidatePredicate.UNANNOUNCED_EX_DIVIDEND, self.year
        )

    async def fetch(self, candidate: Candidate) -> dict[int, list[DividendRecord]]:
        return await self.source.visit(candidate.symbol)

    def filter_period(
        self, candidate: Candidate, fetched: dict[int, list[DividendRecord]]
    ) -> list[DividendRecord]:
        stored: DividendRecord = candidate.stored
        matches = []
        for record in fetched.get(candidate.period, []):
            if record.quarter != stored.quarter:
                continue
            if stored.year_of_dividend and record.year_of_dividend != stored.year_of_dividend:
                continue
            matches.append(record)
        return matches[:1]

    async def load_stored(self, candidate: Candidate, fresh: DividendRecord) -> DividendRecord | None:
        return candidate.stored

    def merge(
        self,
        candidate: Candidate,
        stored: DividendRecord | None,
        fresh: DividendRecord,
    ) -> DividendRecord | None:
        if stored is None or not fresh.differs_from(stored):
            return None
        # only the schedule is taken from this source; amounts stay as stored
        return replace(stored, **{name: getattr(fresh, name) for name in DATE_FIELDS})


async def execute(
    gateway: PersistenceGateway,
    goodinfo: BaseDividendSource,
    yahoo: BaseDividendSource,
    *,
    year: int | None = None,
    goodinfo_delay: float = 90.0,
    yahoo_delay: float = 30.0,
) -> list[PipelineReport]:
    """Run both dividend pipelines concurrently and wait for both.

    Each pipeline's outcome is logged on its own. If either failed, the
    first failure is raised once both have finished.
    """
    year = year or date.today().year
    pipelines: list[ReconciliationPipeline] = [
        WithoutOrMultipleDividendPipeline(gateway, goodinfo, year, goodinfo_delay),
        UnannouncedExDividendPipeline(gateway, yahoo, year, yahoo_delay),
    ]
    results = await asyncio.gather(*(p.run() for p in pipelines), return_exceptions=True)

    reports: list[PipelineReport] = []
    failures: list[BaseException] = []
    for pipeline, result in zip(pipelines, results):
        if isinstance(result, BaseException):
            logger.error("Failed to %s because %s", pipeline.name, result)
            failures.append(result)
        else:
            logger.info("%s executed successfully", pipeline.name)
            reports.append(result)

    for failure in failures:
        if isinstance(failure, CacheLockError) and failure.fatal:
            raise failure
    for failure in failures:
        if not isinstance(failure, Exception):
            raise failure
    if failures:
        raise failures[0]
    return reports
