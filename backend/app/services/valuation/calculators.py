# backend/app/services/valuation/calculators.py
"""
Valuation calculators.

Each calculator is pure: it receives ledger entries and already-fetched
prices and never touches the database. The ValuationService does the I/O.

- DailyValueCalculator: Past rewards bucketed by local date, each priced as-of
  its reward time (+ lookahead)
- HoldingsCalculator: All-time holdings per instrument at latest prices

Usage:
    calc = DailyValueCalculator(config)
    series = calc.calculate(entries, timelines)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal

from app.models import PriceObservation, RewardEntry
from app.services.constants import ZERO
from app.services.stores.price_store import PriceTimeline
from app.services.valuation.types import (
    DailyValuation,
    HoldingValuation,
    ValuationConfig,
)
from app.utils.date_utils import local_date

logger = logging.getLogger(__name__)


# =============================================================================
# DAILY VALUE CALCULATOR
# =============================================================================

class DailyValueCalculator:
    """
    Values past rewards day by day.

    For every entry:
        price = observation with the greatest recorded_at
                <= rewarded_at + lookahead (highest id on ties), else 0
        value = shares × price

    Day total = Σ value over the day's entries, rounded once to 2 dp.

    Note:
        With the default 24h lookahead a reward can be priced by an
        observation recorded after it, when no earlier one exists within
        the window. A zero lookahead gives strict as-of pricing.
    """

    def __init__(self, config: ValuationConfig) -> None:
        self._config = config

    def calculate(
            self,
            entries: Sequence[RewardEntry],
            timelines: Mapping[int, PriceTimeline],
    ) -> list[DailyValuation]:
        """
        Args:
            entries: Historical entries (any order)
            timelines: Price timelines keyed by instrument_id

        Returns:
            One DailyValuation per local date with at least one entry,
            sorted by date ascending
        """
        totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[date, int] = defaultdict(int)

        for entry in entries:
            day = local_date(entry.rewarded_at, self._config.tz)
            price = self.price_for(entry, timelines)
            totals[day] += entry.shares * price
            counts[day] += 1

        return [
            DailyValuation(
                date=day,
                total_value=self._config.money(totals[day]),
                reward_count=counts[day],
            )
            for day in sorted(totals)
        ]

    def price_for(self, entry: RewardEntry, timelines: Mapping[int, PriceTimeline]) -> Decimal:
        """Price applied to one entry (0 when no observation matches)."""
        timeline = timelines.get(entry.instrument_id)
        if timeline is None:
            return ZERO

        observation = timeline.as_of(entry.rewarded_at + self._config.price_lookahead)
        if observation is None:
            logger.debug(
                f"No price for instrument {entry.instrument_id} at {entry.rewarded_at}, "
                f"valuing reward {entry.id} at 0"
            )
            return ZERO
        return observation.price


# =============================================================================
# HOLDINGS CALCULATOR
# =============================================================================

class HoldingsCalculator:
    """
    Aggregates all-time reward entries into holdings per instrument.

    Every instrument with at least one entry is reported; holdings can never
    be negative because shares are always positive and nothing is disposed.
    """

    def __init__(self, config: ValuationConfig) -> None:
        self._config = config

    def calculate(
            self,
            entries: Sequence[RewardEntry],
            latest_prices: Mapping[int, PriceObservation],
    ) -> list[HoldingValuation]:
        """
        Args:
            entries: All entries of the user
            latest_prices: Latest observation per instrument_id (missing = never priced)

        Returns:
            Holdings sorted by symbol
        """
        shares_by_instrument: dict[int, Decimal] = defaultdict(lambda: ZERO)
        symbols: dict[int, str] = {}

        for entry in entries:
            shares_by_instrument[entry.instrument_id] += entry.shares
            symbols[entry.instrument_id] = entry.instrument.symbol

        holdings = []
        for instrument_id, total_shares in shares_by_instrument.items():
            observation = latest_prices.get(instrument_id)
            price = observation.price if observation is not None else ZERO
            holdings.append(
                HoldingValuation(
                    instrument_id=instrument_id,
                    symbol=symbols[instrument_id],
                    total_shares=total_shares,
                    current_price_inr=price,
                    current_value_inr=self._config.money(total_shares * price),
                    price_recorded_at=observation.recorded_at if observation is not None else None,
                )
            )

        return sorted(holdings, key=lambda h: h.symbol)

    def total_value(
            self,
            entries: Sequence[RewardEntry],
            latest_prices: Mapping[int, PriceObservation],
    ) -> Decimal:
        """Σ shares × latest price over every entry, rounded once to 2 dp."""
        total = ZERO
        for entry in entries:
            observation = latest_prices.get(entry.instrument_id)
            if observation is not None:
                total += entry.shares * observation.price
        return self._config.money(total)
