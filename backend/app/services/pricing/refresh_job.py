# backend/app/services/pricing/refresh_job.py
"""
Price Refresh Job - appends one new price observation per instrument per cycle.

Lifecycle (owned by the application lifespan in main.py):
    job = PriceRefreshJob.from_settings(session_factory, settings)
    job.start()        # asyncio task: one cycle now, then every interval
    ...
    await job.stop()   # cancels the task

Cycle:
    1. List every instrument (own session)
    2. Quote each instrument from the PriceSource and append the observation,
       in a bounded thread pool, one session per write
    3. Retry writes on StoreError with exponential backoff (tenacity)
    4. Stop waiting at max_cycle_seconds; unfinished instruments are reported
       as timed out
    5. Log a summary and return a RefreshResult

A failure for one instrument never aborts the cycle and never stops the
loop; the next cycle runs on schedule.
"""

from __future__ import annotations

import asyncio
import contextlib
import contextvars
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Callable

from sqlalchemy.orm import Session
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from app.services.constants import (
    PRICE_WRITE_MAX_ATTEMPTS,
    PRICE_WRITE_RETRY_MAX_WAIT,
    PRICE_WRITE_RETRY_MULTIPLIER,
)
from app.services.exceptions import StoreError
from app.services.pricing.sources import PriceSource, RandomPriceSource
from app.services.stores.instrument_store import InstrumentStore
from app.services.stores.price_store import PriceStore
from app.utils.context import correlation_scope
from app.utils.date_utils import utc_now

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class RefreshResult:
    """
    Outcome of one refresh cycle.

    Attributes:
        started_at: Cycle start (naive UTC)
        finished_at: Cycle end (naive UTC), None while running
        priced: Symbol -> price written this cycle
        failed: Symbol -> reason (source or store failure)
        timed_out: Symbols still running at the cycle deadline
    """

    started_at: datetime
    finished_at: datetime | None = None
    priced: dict[str, Decimal] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    timed_out: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.priced) + len(self.failed) + len(self.timed_out)

    @property
    def success(self) -> bool:
        """True when every instrument got a new observation."""
        return not self.failed and not self.timed_out

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


# =============================================================================
# JOB
# =============================================================================

class PriceRefreshJob:
    """
    Recurring background task that refreshes every instrument's price.

    Attributes:
        last_result: RefreshResult of the most recent finished cycle
    """

    def __init__(
            self,
            session_factory: Callable[[], Session],
            source: PriceSource,
            interval_seconds: float,
            max_cycle_seconds: float = 300,
            max_workers: int = 4,
            max_write_attempts: int = PRICE_WRITE_MAX_ATTEMPTS,
            retry_multiplier: float = PRICE_WRITE_RETRY_MULTIPLIER,
            retry_max_wait: float = PRICE_WRITE_RETRY_MAX_WAIT,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._session_factory = session_factory
        self._source = source
        self._interval_seconds = interval_seconds
        self._max_cycle_seconds = max_cycle_seconds
        self._max_workers = max_workers
        self._max_write_attempts = max_write_attempts
        self._retry_multiplier = retry_multiplier
        self._retry_max_wait = retry_max_wait

        self._task: asyncio.Task | None = None
        self.last_result: RefreshResult | None = None

    @classmethod
    def from_settings(cls, session_factory: Callable[[], Session], config: Settings) -> PriceRefreshJob:
        # In-memory SQLite is one shared connection; concurrent commits on it corrupt each other
        max_workers = 1 if config.is_sqlite_memory else config.price_refresh_max_workers
        return cls(
            session_factory=session_factory,
            source=RandomPriceSource(config.price_min_inr, config.price_max_inr),
            interval_seconds=config.price_refresh_interval_seconds,
            max_cycle_seconds=config.price_refresh_max_cycle_seconds,
            max_workers=max_workers,
        )

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # =========================================================================
    # ONE CYCLE (blocking, runs in a worker thread)
    # =========================================================================

    def run_cycle(self) -> RefreshResult:
        """
        Refresh every instrument once.

        Raises:
            StoreError: If the instrument list cannot be read
        """
        with correlation_scope(prefix="refresh"):
            result = RefreshResult(started_at=utc_now())
            instruments = self._load_instruments()

            if instruments:
                self._refresh_all(instruments, result)
            else:
                logger.info("No instruments to refresh")

            result.finished_at = utc_now()
            self.last_result = result

            log = logger.info if result.success else logger.warning
            log(
                f"Price refresh via {self._source.name}: {len(result.priced)} updated, "
                f"{len(result.failed)} failed, {len(result.timed_out)} timed out "
                f"in {result.duration_seconds:.2f}s"
            )
            return result

    def _load_instruments(self) -> list[tuple[int, str]]:
        with self._session_factory() as db:
            return [(instrument.id, instrument.symbol) for instrument in InstrumentStore(db).list_all()]

    def _refresh_all(self, instruments: list[tuple[int, str]], result: RefreshResult) -> None:
        executor = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(instruments)),
            thread_name_prefix="price-refresh",
        )
        try:
            futures: dict[Future, str] = {}
            for instrument_id, symbol in instruments:
                # Each task carries this cycle's correlation id
                context = contextvars.copy_context()
                future = executor.submit(context.run, self._refresh_instrument, instrument_id, symbol)
                futures[future] = symbol

            done, not_done = wait(futures, timeout=self._max_cycle_seconds)

            for future in done:
                symbol = futures[future]
                try:
                    result.priced[symbol] = future.result()
                except Exception as e:
                    result.failed[symbol] = str(e) or type(e).__name__
                    logger.warning(f"Price refresh failed for {symbol}: {e}")

            for future in not_done:
                future.cancel()
                result.timed_out.append(futures[future])
            result.timed_out.sort()

            if result.timed_out:
                logger.warning(
                    f"Price refresh deadline of {self._max_cycle_seconds}s reached, "
                    f"timed out: {', '.join(result.timed_out)}"
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _refresh_instrument(self, instrument_id: int, symbol: str) -> Decimal:
        """Quote one instrument and append the observation (retried on StoreError)."""
        price = self._source.quote(symbol)

        @retry(
            stop=stop_after_attempt(self._max_write_attempts),
            wait=wait_exponential(multiplier=self._retry_multiplier, max=self._retry_max_wait),
            retry=retry_if_exception_type(StoreError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _write() -> int:
            with self._session_factory() as db:
                return PriceStore(db).append_observation(instrument_id, price)

        _write()
        logger.info(f"Price updated: {symbol} -> ₹{price}")
        return price

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    async def run_forever(self) -> None:
        """Run a cycle immediately, then one every interval until cancelled."""
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await asyncio.to_thread(self.run_cycle)
            except Exception as e:
                logger.error(f"Price refresh cycle failed: {e}", exc_info=True)

            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self._interval_seconds - elapsed))

    def start(self) -> asyncio.Task:
        """Schedule run_forever() on the running event loop."""
        if self.is_running:
            logger.warning("Price refresh job is already running, skipping duplicate start")
            return self._task

        self._task = asyncio.create_task(self.run_forever(), name="price-refresh")
        logger.info(f"Price refresh job started (every {self._interval_seconds:.0f}s)")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Price refresh job stopped")
