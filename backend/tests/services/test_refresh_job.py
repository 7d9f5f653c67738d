# backend/tests/services/test_refresh_job.py
"""
Tests for the price refresh job and price sources.

Most tests run against the in-memory SQLite engine with a single worker,
since every session shares one connection (StaticPool). Parallel workers
are exercised against a file-backed engine from create_db_engine().

Test Coverage:
- One observation appended per instrument per cycle
- A failing instrument never aborts the cycle
- Store writes retried on StoreError (tenacity)
- Instruments still running at the deadline are reported as timed out
- Parallel cycles on file-backed SQLite; in-memory SQLite clamps to one worker
- Scheduling: start/stop on an event loop
- RandomPriceSource range and precision
"""

import asyncio
import random
import threading
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.database import create_db_engine, create_session_factory
from app.models import Base, PriceObservation
from app.services.exceptions import StoreError
from app.services.pricing import PriceRefreshJob, PriceSource, RandomPriceSource
from app.services.stores.price_store import PriceStore
from app.utils.context import get_correlation_id
from tests.conftest import create_instrument


# =============================================================================
# FAKE SOURCES
# =============================================================================

class FixedPriceSource(PriceSource):
    """Quotes a fixed price per symbol; symbols in `broken` raise."""

    def __init__(self, prices: dict[str, str], broken: set[str] | None = None):
        self.prices = {symbol: Decimal(price) for symbol, price in prices.items()}
        self.broken = broken or set()
        self.correlation_ids: list[str | None] = []

    @property
    def name(self) -> str:
        return "fixed"

    def quote(self, symbol: str) -> Decimal:
        self.correlation_ids.append(get_correlation_id())
        if symbol in self.broken:
            raise RuntimeError(f"feed unavailable for {symbol}")
        return self.prices[symbol]


class BlockingPriceSource(PriceSource):
    """Blocks until released, then fails without writing anything."""

    def __init__(self):
        self.release = threading.Event()

    @property
    def name(self) -> str:
        return "blocking"

    def quote(self, symbol: str) -> Decimal:
        self.release.wait(timeout=5)
        raise RuntimeError("released")


def _job(session_factory, source: PriceSource, **kwargs) -> PriceRefreshJob:
    kwargs.setdefault("max_workers", 1)
    kwargs.setdefault("retry_multiplier", 0)
    return PriceRefreshJob(session_factory, source, interval_seconds=60, **kwargs)


def _count_observations(db) -> int:
    return db.scalar(select(func.count()).select_from(PriceObservation))


# =============================================================================
# ONE CYCLE
# =============================================================================

class TestRunCycle:

    def test_appends_one_observation_per_instrument(self, db, session_factory):
        reliance = create_instrument(db, "RELIANCE")
        tcs = create_instrument(db, "TCS")
        source = FixedPriceSource({"RELIANCE": "2500.50", "TCS": "3900.00"})

        result = _job(session_factory, source).run_cycle()

        assert result.success
        assert result.priced == {"RELIANCE": Decimal("2500.50"), "TCS": Decimal("3900.00")}
        assert _count_observations(db) == 2

        store = PriceStore(db)
        assert store.latest(reliance.id).price == Decimal("2500.50")
        assert store.latest(tcs.id).price == Decimal("3900.00")

    def test_each_cycle_appends_new_observations(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        job = _job(session_factory, FixedPriceSource({"RELIANCE": "100"}))

        job.run_cycle()
        job.run_cycle()

        assert _count_observations(db) == 2

    def test_failing_instrument_does_not_abort_cycle(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        create_instrument(db, "TCS")
        source = FixedPriceSource({"TCS": "3900"}, broken={"RELIANCE"})

        result = _job(session_factory, source).run_cycle()

        assert not result.success
        assert set(result.priced) == {"TCS"}
        assert "feed unavailable" in result.failed["RELIANCE"]
        assert _count_observations(db) == 1

    def test_no_instruments(self, session_factory):
        result = _job(session_factory, FixedPriceSource({})).run_cycle()

        assert result.success
        assert result.attempted == 0
        assert result.finished_at is not None

    def test_last_result_is_kept(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        job = _job(session_factory, FixedPriceSource({"RELIANCE": "100"}))

        assert job.last_result is None
        result = job.run_cycle()
        assert job.last_result is result

    def test_workers_share_the_cycle_correlation_id(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        create_instrument(db, "TCS")
        source = FixedPriceSource({"RELIANCE": "1", "TCS": "2"})

        _job(session_factory, source).run_cycle()

        assert len(set(source.correlation_ids)) == 1
        assert source.correlation_ids[0].startswith("refresh-")

    def test_invalid_interval_rejected(self, session_factory):
        with pytest.raises(ValueError):
            PriceRefreshJob(session_factory, FixedPriceSource({}), interval_seconds=0)


# =============================================================================
# RETRIES AND DEADLINE
# =============================================================================

class TestRetriesAndDeadline:

    def test_store_error_is_retried(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        flaky = [StoreError("append_observation", "database is locked"), 1]

        with patch.object(PriceStore, "append_observation", side_effect=flaky) as append:
            result = _job(session_factory, FixedPriceSource({"RELIANCE": "100"})).run_cycle()

        assert append.call_count == 2
        assert result.priced == {"RELIANCE": Decimal("100")}

    def test_gives_up_after_max_attempts(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        error = StoreError("append_observation", "database is locked")

        with patch.object(PriceStore, "append_observation", side_effect=error) as append:
            result = _job(
                session_factory,
                FixedPriceSource({"RELIANCE": "100"}),
                max_write_attempts=3,
            ).run_cycle()

        assert append.call_count == 3
        assert "RELIANCE" in result.failed

    def test_non_store_errors_are_not_retried(self, db, session_factory):
        create_instrument(db, "RELIANCE")

        with patch.object(PriceStore, "append_observation", side_effect=RuntimeError("bug")) as append:
            result = _job(session_factory, FixedPriceSource({"RELIANCE": "100"})).run_cycle()

        assert append.call_count == 1
        assert result.failed == {"RELIANCE": "bug"}

    def test_deadline_marks_instruments_timed_out(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        create_instrument(db, "TCS")
        source = BlockingPriceSource()

        try:
            result = _job(session_factory, source, max_cycle_seconds=0.1).run_cycle()
        finally:
            source.release.set()

        assert not result.success
        assert result.timed_out == ["RELIANCE", "TCS"]
        assert result.priced == {}


# =============================================================================
# FILE-BACKED SQLITE (PARALLEL WORKERS)
# =============================================================================

@pytest.fixture
def file_settings(tmp_path) -> Settings:
    return Settings(_env_file=None, environment="test", database_url=f"sqlite:///{tmp_path / 'rewards.db'}")


@pytest.fixture
def file_engine(file_settings):
    engine = create_db_engine(file_settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


class TestFileBackedSqlite:

    def test_file_database_gets_a_connection_pool(self, file_engine):
        assert not isinstance(file_engine.pool, StaticPool)

    def test_memory_database_keeps_static_pool(self):
        engine = create_db_engine(Settings(_env_file=None, environment="test", database_url="sqlite:///:memory:"))
        try:
            assert isinstance(engine.pool, StaticPool)
        finally:
            engine.dispose()

    def test_parallel_cycles_price_every_instrument(self, file_engine):
        factory = create_session_factory(file_engine)
        symbols = [f"S{i}" for i in range(40)]
        with factory() as db:
            for symbol in symbols:
                create_instrument(db, symbol)

        job = PriceRefreshJob(
            factory,
            FixedPriceSource({symbol: "1500.25" for symbol in symbols}),
            interval_seconds=60,
            max_workers=8,
            retry_multiplier=0,
        )
        results = [job.run_cycle() for _ in range(3)]

        assert all(result.success for result in results)
        assert all(len(result.priced) == len(symbols) for result in results)
        with factory() as db:
            assert _count_observations(db) == 3 * len(symbols)

    def test_memory_sqlite_job_uses_one_worker(self, session_factory):
        config = Settings(_env_file=None, environment="test", database_url="sqlite:///:memory:", price_refresh_max_workers=8)
        assert PriceRefreshJob.from_settings(session_factory, config)._max_workers == 1

    def test_file_sqlite_job_keeps_configured_workers(self, session_factory, file_settings):
        config = file_settings.model_copy(update={"price_refresh_max_workers": 8})
        assert PriceRefreshJob.from_settings(session_factory, config)._max_workers == 8


# =============================================================================
209
# SCHEDULING
# =============================================================================

class TestScheduling:

    def test_start_runs_first_cycle_and_stop_cancels(self, db, session_factory):
        create_instrument(db, "RELIANCE")
        job = _job(session_factory, FixedPriceSource({"RELIANCE": "100"}))

        async def scenario():
            job.start()
            assert job.is_running
            for _ in range(200):
                if job.last_result is not None:
                    break
                await asyncio.sleep(0.01)
            await job.stop()

        asyncio.run(scenario())

        assert job.last_result is not None
        assert job.last_result.success
        assert not job.is_running

    def test_duplicate_start_returns_same_task(self, session_factory):
        job = _job(session_factory, FixedPriceSource({}))

        async def scenario():
            first = job.start()
            second = job.start()
            await job.stop()
            return first is second

        assert asyncio.run(scenario())

    def test_stop_without_start_is_noop(self, session_factory):
        job = _job(session_factory, FixedPriceSource({}))
        asyncio.run(job.stop())
        assert not job.is_running


# =============================================================================
# RANDOM PRICE SOURCE
# =============================================================================

class TestRandomPriceSource:

    def test_prices_in_range_with_paise_precision(self):
        source = RandomPriceSource(1000, 5000, rng=random.Random(42))

        for _ in range(50):
            price = source.quote("RELIANCE")
            assert Decimal("1000") <= price <= Decimal("5000")
            assert price == price.quantize(Decimal("0.01"))

    def test_seeded_sources_are_reproducible(self):
        first = RandomPriceSource(10, 20, rng=random.Random(7))
        second = RandomPriceSource(10, 20, rng=random.Random(7))

        assert [first.quote("A") for _ in range(3)] == [second.quote("A") for _ in range(3)]

    @pytest.mark.parametrize("low, high", [(5000, 1000), (100, 100), (-1, 10)])
    def test_invalid_range(self, low, high):
        with pytest.raises(ValueError):
            RandomPriceSource(low, high)
