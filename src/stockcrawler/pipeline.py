"""Generalized fetch -> reconcile -> upsert templates.

``ReconciliationPipeline`` walks per-symbol candidates one at a time,
spacing the start of consecutive fetches by ``delay_seconds`` so a source's
rate limit is respected. ``SnapshotReconciliation`` is the whole-market
variant: one fetch, one comparison against stored state, one write per
changed record.

A candidate whose fetch or write fails is logged and skipped; it stays a
candidate for the next scheduled run. Only errors raised before the first
candidate is touched (candidate selection, the whole-market fetch) escape
``run()``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from stockcrawler.db.gateway import PersistenceGateway
from stockcrawler.errors import FetchError, PersistError
from stockcrawler.models.candidate import Candidate

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class PipelineReport:
    """Completion accounting for one pipeline run.

    ``attempted`` counts candidates (or deltas, for snapshot runs) that were
    worked on; ``succeeded`` those that finished without error, ``skipped``
    those with nothing for the target period, ``failed`` those whose fetch or
    write failed. ``written`` is the number of upserts issued.
    """

    name: str
    attempted: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    written: int = 0
    errors: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"{self.name}: attempted={self.attempted} succeeded={self.succeeded} "
            f"skipped={self.skipped} failed={self.failed} written={self.written}"
        )


class ReconciliationPipeline(ABC, Generic[R]):
    """Sequential per-candidate reconciliation.

    Subclasses provide candidate selection, the fetch, the period filter and
    the merge rule; ``run`` supplies ordering, spacing, failure isolation
    and accounting.
    """

    name: str = "pipeline"

    def __init__(
        self,
        gateway: PersistenceGateway,
        delay_seconds: float = 0.0,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._clock = clock

    # ---- steps ----

    @abstractmethod
    async def select_candidates(self) -> list[Candidate]:
        """Entities whose stored state is incomplete for the target period."""
        ...

    @abstractmethod
    async def fetch(self, candidate: Candidate) -> Any:
        """Call the source for one candidate; raises ``FetchError``."""
        ...

    @abstractmethod
    def filter_period(self, candidate: Candidate, fetched: Any) -> list[R]:
        """Keep only fetched records belonging to the candidate's period."""
        ...

    @abstractmethod
    async def load_stored(self, candidate: Candidate, fresh: R) -> R | None:
        """Stored counterpart of ``fresh``, or ``None`` when it is new."""
        ...

    @abstractmethod
    def merge(self, candidate: Candidate, stored: R | None, fresh: R) -> R | None:
        """Record to write, or ``None`` when nothing materially changed."""
        ...

    # ---- driver ----

    async def run(self) -> PipelineReport:
        report = PipelineReport(self.name)
        candidates = await self.select_candidates()
        logger.info("%s: %d candidate(s) to collect", self.name, len(candidates))

        last_fetch: float | None = None
        for candidate in candidates:
            if last_fetch is not None:
                await self._wait_until(last_fetch + self.delay_seconds)
            last_fetch = self._clock()
            report.attempted += 1

            try:
                fetched = await self.fetch(candidate)
            except FetchError as exc:
                report.failed += 1
                report.errors.append(f"{candidate.symbol}: {exc}")
                logger.warning("%s: fetch failed for %s: %s", self.name, candidate.symbol, exc)
                continue

            records = self.filter_period(candidate, fetched)
            if not records:
                report.skipped += 1
                logger.debug("%s: no %s data for %s", self.name, candidate.period, candidate.symbol)
                continue

            written, failed = await self._reconcile(candidate, records, report)
            report.written += written
            if failed:
                report.failed += 1
            else:
                report.succeeded += 1

        logger.info(report.summary())
        return report

    async def _reconcile(
        self,
        candidate: Candidate,
        records: list[R],
        report: PipelineReport,
    ) -> tuple[int, bool]:
        written = 0
        failed = False
        for fresh in records:
            try:
                stored = await self.load_stored(candidate, fresh)
                to_write = self.merge(candidate, stored, fresh)
                if to_write is None:
                    continue
                await self.gateway.upsert(to_write)
            except PersistError as exc:
                failed = True
                report.errors.append(f"{candidate.symbol}: {exc}")
                logger.error("%s: failed to upsert for %s: %s", self.name, candidate.symbol, exc)
                continue
            written += 1
            logger.info("%s: upserted %r", self.name, to_write)
        return written, failed

    async def _wait_until(self, deadline: float) -> None:
        remaining = deadline - self._clock()
        while remaining > 0:
            await self._sleep(remaining)
            remaining = deadline - self._clock()


class SnapshotReconciliation(ABC, Generic[R]):
    """Whole-market reconciliation: fetch once, diff, persist each delta."""

    name: str = "snapshot"

    def __init__(self, gateway: PersistenceGateway) -> None:
        self.gateway = gateway

    @abstractmethod
    async def fetch(self) -> list[Any]:
        """Fetch and convert every published row; raises ``FetchError``."""
        ...

    @abstractmethod
    async def load_stored(self, fetched: list[Any]) -> dict[Hashable, Any]:
        """Stored state keyed by record identity."""
        ...

    def compute_deltas(self, stored: dict[Hashable, Any], fetched: list[Any]) -> list[R]:
        """Fetched records that are new or differ from what is stored."""
        return [r for r in fetched if stored.get(r.key) != r]  # type: ignore[attr-defined]

    async def after_persist(self, persisted: list[R], report: PipelineReport) -> None:
        """Hook run after all deltas were attempted."""

    async def run(self) -> PipelineReport:
        report = PipelineReport(self.name)
        fetched = await self.fetch()
        stored = await self.load_stored(fetched)
        deltas = self.compute_deltas(stored, fetched)
        logger.info(
            "%s: %d fetched, %d to write", self.name, len(fetched), len(deltas)
        )

        persisted: list[R] = []
        for record in deltas:
            report.attempted += 1
            try:
                await self.gateway.upsert(record)
            except PersistError as exc:
                report.failed += 1
                report.errors.append(str(exc))
                logger.error("%s: failed to upsert %r: %s", self.name, record, exc)
                continue
            report.succeeded += 1
            report.written += 1
            persisted.append(record)

        await self.after_persist(persisted, report)
        logger.info(report.summary())
        return report
