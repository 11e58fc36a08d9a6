"""Persistence gateway: natural-key upserts and candidate queries.

Every public method is a coroutine that runs the blocking SQLAlchemy work on
a worker thread. Methods accept an optional ``session``; when given, the
gateway executes inside it and leaves commit/rollback to the caller,
otherwise each call runs in its own short transaction.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import asdict, fields
from datetime import date
from typing import Any, TypeVar

from sqlalchemy import create_engine, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stockcrawler.db.tables import Base, DailyQuoteRow, Dividend, Revenue, RevenueLastDate, Stock
from stockcrawler.errors import PersistError
from stockcrawler.models.candidate import Candidate, CandidatePredicate, WriteOutcome
from stockcrawler.models.dividend import DividendRecord
from stockcrawler.models.quote import DailyQuote
from stockcrawler.models.revenue import RevenueRecord
from stockcrawler.models.stock import StockRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

# record type -> table model
_TABLES: dict[type, Any] = {
    StockRecord: Stock,
    DividendRecord: Dividend,
    RevenueRecord: Revenue,
    DailyQuote: DailyQuoteRow,
}


def _insert_for(dialect: str) -> Callable[..., Any]:
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise PersistError(f"Upsert is not supported for dialect '{dialect}'")
    return insert


def _to_record(cls: type[T], row: Any) -> T:
    return cls(**{f.name: getattr(row, f.name) for f in fields(cls)})  # type: ignore[arg-type]


class PersistenceGateway:
    """Store access used by the reconciliation jobs.

    Usage::

        gateway = PersistenceGateway.from_url("postgresql+psycopg2://...")
        await gateway.upsert(DividendRecord("2330", 2024, 1, ...))
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        self._insert = _insert_for(engine.dialect.name)

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> PersistenceGateway:
        if url.startswith("sqlite"):
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            engine_kwargs.setdefault("pool_pre_ping", True)
        return cls(create_engine(url, **engine_kwargs))

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------ plumbing

    async def _run(self, work: Callable[[Session], T], session: Session | None) -> T:
        return await asyncio.to_thread(self._run_sync, work, session)

    def _run_sync(self, work: Callable[[Session], T], session: Session | None) -> T:
        try:
            if session is not None:
                return work(session)
            with self._sessions.begin() as own:
                return work(own)
        except SQLAlchemyError as exc:
            raise PersistError(f"Database operation failed: {exc}") from exc

    # -------------------------------------------------------------- writes

    async def upsert(self, record: Any, session: Session | None = None) -> WriteOutcome:
        """Insert ``record`` or overwrite every non-key column on conflict."""
        table = _TABLES.get(type(record))
        if table is None:
            raise PersistError(f"No table mapped for {type(record).__name__}")

        def work(s: Session) -> WriteOutcome:
            values = asdict(record)
            keys = [c.name for c in table.__table__.primary_key.columns]
            stmt = self._insert(table).values(**values)
            updates = {name: stmt.excluded[name] for name in values if name not in keys}
            updates["updated_at"] = func.now()
            stmt = stmt.on_conflict_do_update(index_elements=keys, set_=updates)
            result = s.execute(stmt)
            return WriteOutcome(rows_affected=max(result.rowcount, 0))

        outcome = await self._run(work, session)
        logger.debug("Upserted %s %s", type(record).__name__, getattr(record, "key", ""))
        return outcome

    async def rebuild_revenue_last_date(self, session: Session | None = None) -> WriteOutcome:
        """Upsert every security's latest revenue month into ``revenue_last_date``."""

        def work(s: Session) -> WriteOutcome:
            latest = s.execute(
                select(Revenue.security_code, func.max(Revenue.date)).group_by(Revenue.security_code)
            ).all()
            if not latest:
                return WriteOutcome(rows_affected=0)
            stmt = self._insert(RevenueLastDate).values(
                [{"security_code": code, "date": month} for code, month in latest]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["security_code"],
                set_={"date": stmt.excluded["date"], "updated_at": func.now()},
            )
            s.execute(stmt)
            return WriteOutcome(rows_affected=len(latest))

        outcome = await self._run(work, session)
        logger.info("revenue_last_date rebuilt for %d security(ies)", outcome.rows_affected)
        return outcome

    # --------------------------------------------------------------- reads

    async def fetch_candidates(
        self,
        predicate: CandidatePredicate,
        period: int,
        session: Session | None = None,
    ) -> list[Candidate]:
        """Entities whose state is incomplete for ``period`` (a year).

        ``WITHOUT_OR_MULTIPLE_DIVIDENDS``: listed stocks with no dividend row
        for the year, or with more than one (multi-distribution payers may
        still announce further quarters).

        ``UNANNOUNCED_EX_DIVIDEND``: dividend rows of the year whose
        ex-dividend dates are both blank; the stored row rides along.
        """
        if predicate is CandidatePredicate.WITHOUT_OR_MULTIPLE_DIVIDENDS:
            def work(s: Session) -> list[Candidate]:
                counts = (
                    select(Dividend.security_code, func.count().label("n"))
                    .where(Dividend.year == period)
                    .group_by(Dividend.security_code)
                    .subquery()
                )
                stmt = (
                    select(Stock.stock_symbol)
                    .outerjoin(counts, counts.c.security_code == Stock.stock_symbol)
                    .where(
                        Stock.suspend_listing.is_(False),
                        or_(counts.c.n.is_(None), counts.c.n > 1),
                    )
                    .order_by(Stock.stock_symbol)
                )
                return [Candidate(symbol=sym, period=period) for sym in s.scalars(stmt)]

        elif predicate is CandidatePredicate.UNANNOUNCED_EX_DIVIDEND:
            def work(s: Session) -> list[Candidate]:
                stmt = (
                    select(Dividend)
                    .where(
                        Dividend.year == period,
                        Dividend.ex_dividend_date1 == "",
                        Dividend.ex_dividend_date2 == "",
                    )
                    .order_by(Dividend.security_code, Dividend.quarter)
                )
                return [
                    Candidate(
                        symbol=row.security_code,
                        period=period,
                        stored=_to_record(DividendRecord, row),
                    )
                    for row in s.scalars(stmt)
                ]

        else:
            raise PersistError(f"Unsupported candidate predicate: {predicate}")

        return await self._run(work, session)

    async def fetch_stocks(self, session: Session | None = None) -> list[StockRecord]:
        def work(s: Session) -> list[StockRecord]:
            rows = s.scalars(select(Stock).order_by(Stock.stock_symbol))
            return [_to_record(StockRecord, r) for r in rows]

        return await self._run(work, session)

    async def fetch_dividend(
        self,
        key: tuple[str, int, int],
        session: Session | None = None,
    ) -> DividendRecord | None:
        def work(s: Session) -> DividendRecord | None:
            row = s.get(Dividend, key)
            return _to_record(DividendRecord, row) if row is not None else None

        return await self._run(work, session)

    async def fetch_revenues(
        self,
        month: int,
        session: Session | None = None,
    ) -> dict[tuple[str, int], RevenueRecord]:
        def work(s: Session) -> dict[tuple[str, int], RevenueRecord]:
            rows = s.scalars(select(Revenue).where(Revenue.date == month))
            records = (_to_record(RevenueRecord, r) for r in rows)
            return {r.key: r for r in records}

        return await self._run(work, session)

    async def fetch_revenue_last_dates(self, session: Session | None = None) -> dict[str, int]:
        def work(s: Session) -> dict[str, int]:
            rows = s.execute(select(RevenueLastDate.security_code, RevenueLastDate.date))
            return {code: month for code, month in rows}

        return await self._run(work, session)

    async def fetch_quotes(
        self,
        day: date,
        session: Session | None = None,
    ) -> dict[tuple[str, date], DailyQuote]:
        def work(s: Session) -> dict[tuple[str, date], DailyQuote]:
            rows = s.scalars(select(DailyQuoteRow).where(DailyQuoteRow.date == day))
            records = (_to_record(DailyQuote, r) for r in rows)
            return {q.key: q for q in records}

        return await self._run(work, session)

    async def fetch_stocks_with_dividends_on(
        self,
        day: date,
        session: Session | None = None,
    ) -> list[StockRecord]:
        """Stocks going ex-dividend or ex-rights on ``day``."""
        day_str = day.strftime("%Y-%m-%d")

        def work(s: Session) -> list[StockRecord]:
            stmt = (
                select(Stock)
                .join(Dividend, Dividend.security_code == Stock.stock_symbol)
                .where(
                    Dividend.year == day.year,
                    or_(
                        Dividend.ex_dividend_date1 == day_str,
                        Dividend.ex_dividend_date2 == day_str,
                    ),
                )
                .distinct()
                .order_by(Stock.stock_symbol)
            )
            return [_to_record(StockRecord, r) for r in s.scalars(stmt)]

        return await self._run(work, session)
