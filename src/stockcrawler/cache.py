"""In-process caches shared by concurrently running jobs.

``SharedCache`` owns the stock map behind a reader/writer lock and only ever
hands out copies. ``TtlCache`` memoizes derived values for a bounded time.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Hashable, Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from stockcrawler.errors import CacheLockError
from stockcrawler.models.stock import StockRecord

if TYPE_CHECKING:
    from stockcrawler.db.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

_MISSING = object()


class ReadWriteLock:
    """Many readers or one writer, never both.

    Waiting writers block new readers so a steady stream of reads cannot
    starve an update.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self, timeout: float | None = None) -> bool:
        with self._cond:
            ok = self._cond.wait_for(
                lambda: not self._writer and not self._writers_waiting, timeout
            )
            if ok:
                self._readers += 1
            return ok

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: float | None = None) -> bool:
        with self._cond:
            self._writers_waiting += 1
            try:
                ok = self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0, timeout
                )
                if ok:
                    self._writer = True
                return ok
            finally:
                self._writers_waiting -= 1
                if not self._writers_waiting:
                    self._cond.notify_all()

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


class SharedCache:
    """Process-wide map of stock symbol -> ``StockRecord``.

    Reads return copies; writes replace records by identity. Callers must not
    do network or database I/O between reading a snapshot and applying the
    resulting updates while holding anything from this class: compute the
    delta outside, then call ``apply_updates``.
    """

    def __init__(self, lock_timeout: float = 10.0) -> None:
        self.lock_timeout = lock_timeout
        self._lock = ReadWriteLock()
        self._stocks: dict[str, StockRecord] = {}
        self._poisoned = False

    # ---- lock helpers ----

    @contextmanager
    def _reading(self) -> Iterator[None]:
        self._check_poisoned()
        if not self._lock.acquire_read(self.lock_timeout):
            raise CacheLockError(
                f"Timed out after {self.lock_timeout}s waiting for stock cache read lock"
            )
        try:
            self._check_poisoned()
            yield
        finally:
            self._lock.release_read()

    @contextmanager
    def _writing(self) -> Iterator[None]:
        self._check_poisoned()
        if not self._lock.acquire_write(self.lock_timeout):
            raise CacheLockError(
                f"Timed out after {self.lock_timeout}s waiting for stock cache write lock"
            )
        try:
            self._check_poisoned()
            yield
        except CacheLockError:
            raise
        except Exception as exc:
            self._poisoned = True
            logger.critical("Stock cache poisoned by failed write: %s", exc)
            raise CacheLockError(f"Stock cache write failed: {exc}", poisoned=True) from exc
        finally:
            self._lock.release_write()

    def _check_poisoned(self) -> None:
        if self._poisoned:
            raise CacheLockError("Stock cache is poisoned", poisoned=True)

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    # ---- reads ----

    def get_snapshot(self, symbol: str) -> StockRecord | None:
        with self._reading():
            return self._stocks.get(symbol)

    def read_all(self) -> dict[str, StockRecord]:
        with self._reading():
            return dict(self._stocks)

    def __len__(self) -> int:
        with self._reading():
            return len(self._stocks)

    # ---- writes ----

    def apply_updates(self, records: Iterable[StockRecord]) -> int:
        """Replace (or add) each record by symbol; returns the count applied."""
        staged = list(records)
        for record in staged:
            if not isinstance(record, StockRecord):
                raise TypeError(f"Expected StockRecord, got {type(record).__name__}")
        if not staged:
            return 0
        with self._writing():
            for record in staged:
                self._stocks[record.stock_symbol] = record
        return len(staged)

    def replace_all(self, records: Iterable[StockRecord]) -> int:
        fresh = {r.stock_symbol: r for r in records}
        with self._writing():
            self._stocks = fresh
        return len(fresh)

    async def load(self, gateway: PersistenceGateway) -> int:
        """Warm the cache with every stock in the store."""
        stocks = await gateway.fetch_stocks()
        count = self.replace_all(stocks)
        logger.info("Stock cache loaded with %d stock(s)", count)
        return count


class TtlCache:
    """Thread-safe TTL cache for derived values with LRU eviction.

    Expiry is checked lazily on read. ``clear_all`` drops every entry at
    once and never waits on a computation in progress.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._store: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()

    def get_or_none(self, key: Hashable, ttl: float | None = None) -> Any | None:
        value = self._lookup(key, ttl)
        return None if value is _MISSING else value

    def _lookup(self, key: Hashable, ttl: float | None) -> Any:
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return _MISSING
            inserted, value = entry
            if self._clock() - inserted >= ttl:
                del self._store[key]
                return _MISSING
            self._store.move_to_end(key)  # refresh LRU position
            return value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._store[key] = (self._clock(), value)
            self._store.move_to_end(key)
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)

    def clear_all(self) -> None:
        with self._lock:
            self._store = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    async def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Any:
        """Return the cached value or await ``compute`` and cache its result.

        A cached ``None`` counts as a hit.
        """
        cached = self._lookup(key, ttl)
        if cached is not _MISSING:
            return cached
        value = await compute()
        self.put(key, value)
        return value
