# backend/app/services/valuation/service.py
"""
Valuation Service - the reward valuation engine.

Read-only computations over the Ledger Store and the Price Store:
- todays_rewards(): Rewards granted since local midnight
- historical_valuation(): INR value of each past day's rewards
- current_stats(): Shares rewarded today + current portfolio value
- portfolio_snapshot(): Holdings per symbol at latest prices

Design Principles:
- Dependency Injection: stores are handed in at construction
- No HTTP Knowledge: store failures propagate as StoreError
- No hidden state: every call recomputes from the stores
- One price read per instrument per call, so a response never mixes two
  different observations for the same instrument

Every method takes an optional `now` (naive UTC or aware) that fixes the
"today" boundary; it defaults to the current time.

Usage:
    service = ValuationService(LedgerStore(db), PriceStore(db), ValuationConfig())
    series = service.historical_valuation(user_id=1)
"""

from __future__ import annotations

import logging
from datetime import datetime

from app.services.constants import ZERO
from app.services.stores.ledger_store import LedgerStore
from app.services.stores.price_store import PriceStore
from app.services.valuation.calculators import DailyValueCalculator, HoldingsCalculator
from app.services.valuation.types import (
    CurrentStats,
    DailyValuation,
    PortfolioSnapshot,
    RewardView,
    SymbolShares,
    ValuationConfig,
)
from app.utils.date_utils import local_day_start, to_utc_naive, utc_now

logger = logging.getLogger(__name__)


class ValuationService:
    """
    Answers valuation queries for one user at a time.

    Attributes:
        _ledger: Reward entries
        _prices: Price observations
        _config: Zone, lookahead and rounding
        _daily_calc: Historical per-day valuation
        _holdings_calc: Holdings at latest prices
    """

    def __init__(
            self,
            ledger: LedgerStore,
            prices: PriceStore,
            config: ValuationConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._prices = prices
        self._config = config or ValuationConfig()
        self._daily_calc = DailyValueCalculator(self._config)
        self._holdings_calc = HoldingsCalculator(self._config)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def todays_rewards(self, user_id: int, now: datetime | None = None) -> list[RewardView]:
        """
        Rewards with rewarded_at in [today_start, now), newest first.

        Ties on rewarded_at are ordered by id, newest first.
        """
        now, today_start = self._boundaries(now)
        entries = self._ledger.find_by_user_in_range(user_id, today_start, now)

        ordered = sorted(entries, key=lambda e: (e.rewarded_at, e.id), reverse=True)
        return [RewardView.from_entry(entry) for entry in ordered]

    def historical_valuation(self, user_id: int, now: datetime | None = None) -> list[DailyValuation]:
        """
        INR value of rewards for every past local day that has any.

        Entries before today_start are bucketed by local date; each entry is
        priced at the observation in effect at rewarded_at + lookahead
        (0 if none). An empty ledger gives an empty list.

        Prices are fetched once per instrument (up to the latest timestamp
        any entry can need) and resolved in memory.
        """
        _, today_start = self._boundaries(now)
        entries = self._ledger.find_by_user_in_range(user_id, None, today_start)
        if not entries:
            return []

        price_horizon = max(entry.rewarded_at for entry in entries) + self._config.price_lookahead
        timelines = self._prices.timelines_until(
            {entry.instrument_id for entry in entries},
            price_horizon,
        )

        series = self._daily_calc.calculate(entries, timelines)
        logger.debug(
            f"Historical valuation for user {user_id}: {len(entries)} rewards over {len(series)} days"
        )
        return series

    def current_stats(self, user_id: int, now: datetime | None = None) -> CurrentStats:
        """
        Two independent figures:
        - shares rewarded today, summed per symbol
        - Σ over all-time entries of shares × latest price (0 if unpriced)
        """
        now, today_start = self._boundaries(now)

        today = self._ledger.shares_by_instrument(user_id, today_start, now)
        shares_today = [SymbolShares(symbol=row.symbol, total_shares=row.total_shares) for row in today]

        entries = self._ledger.find_by_user_all(user_id)
        latest = self._prices.latest_for_instruments({entry.instrument_id for entry in entries}, now)

        return CurrentStats(
            shares_rewarded_today=shares_today,
            current_portfolio_value=self._holdings_calc.total_value(entries, latest),
        )

    def portfolio_snapshot(self, user_id: int, now: datetime | None = None) -> PortfolioSnapshot:
        """
        All-time holdings per symbol at the latest price.

        Each holding's value is rounded to 2 dp; the total is the sum of the
        rounded holding values, rounded again and exposed as a fixed
        2-decimal string.
        """
        now, _ = self._boundaries(now)

        entries = self._ledger.find_by_user_all(user_id)
        if not entries:
            return PortfolioSnapshot(holdings=[], total_value=self._config.money(ZERO))

        latest = self._prices.latest_for_instruments({entry.instrument_id for entry in entries}, now)
        holdings = self._holdings_calc.calculate(entries, latest)
        total = sum((holding.current_value_inr for holding in holdings), start=ZERO)

        return PortfolioSnapshot(holdings=holdings, total_value=self._config.money(total))

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _boundaries(self, now: datetime | None) -> tuple[datetime, datetime]:
        """(now, local midnight of now's day), both naive UTC."""
        current = to_utc_naive(now) if now is not None else utc_now()
        return current, local_day_start(current, self._config.tz)
