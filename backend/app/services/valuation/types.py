# backend/app/services/valuation/types.py
"""
Internal data types for the valuation engine.

These dataclasses are NOT Pydantic schemas - those live in
app/schemas/rewards.py for API serialization.

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for ALL monetary and share values (never float)
- Timestamps are naive UTC, dates are local calendar dates

Type Hierarchy:
    ValuationConfig    - Zone, lookahead and rounding used by the engine
    RewardView         - One reward entry paired with its symbol
    DailyValuation     - INR value of one past day's rewards
    SymbolShares       - Shares rewarded today for one symbol
    CurrentStats       - Today's shares + current portfolio value
    HoldingValuation   - One instrument's holding at the latest price
    PortfolioSnapshot  - All holdings + formatted total
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from app.services.constants import MONEY_QUANTUM

if TYPE_CHECKING:
    from app.config import Settings
    from app.models import RewardEntry


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ValuationConfig:
    """
    Parameters of the valuation engine.

    Attributes:
        tz: Zone defining "today" and calendar dates
        price_lookahead: A historical reward may be priced by an observation
                         recorded up to this long after it
        rounding: decimal rounding constant for INR amounts
    """

    tz: tzinfo = timezone.utc
    price_lookahead: timedelta = timedelta(hours=24)
    rounding: str = ROUND_HALF_UP

    @classmethod
    def from_settings(cls, config: Settings) -> ValuationConfig:
        from app.utils.date_utils import resolve_timezone

        return cls(
            tz=resolve_timezone(config.timezone),
            price_lookahead=config.price_lookahead,
            rounding=config.rounding_mode,
        )

    def money(self, value: Decimal) -> Decimal:
        """Quantize an INR amount to 2 decimal places."""
        return value.quantize(MONEY_QUANTUM, rounding=self.rounding)


# =============================================================================
# TODAY'S REWARDS
# =============================================================================

@dataclass(frozen=True)
class RewardView:
    """A reward entry with its instrument symbol resolved."""

    id: int
    user_id: int
    instrument_id: int
    symbol: str
    shares: Decimal
    rewarded_at: datetime

    @classmethod
    def from_entry(cls, entry: RewardEntry) -> RewardView:
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            instrument_id=entry.instrument_id,
            symbol=entry.instrument.symbol,
            shares=entry.shares,
            rewarded_at=entry.rewarded_at,
        )


# =============================================================================
# HISTORICAL SERIES
# =============================================================================

@dataclass(frozen=True)
class DailyValuation:
    """
    INR value of the rewards granted on one local calendar day, each priced
    at the observation in effect when it was granted (plus lookahead).
    """

    date: date
    total_value: Decimal
    reward_count: int = 0


# =============================================================================
# STATS
# =============================================================================

@dataclass(frozen=True)
class SymbolShares:
    symbol: str
    total_shares: Decimal


@dataclass(frozen=True)
class CurrentStats:
    """
    Attributes:
        shares_rewarded_today: One row per instrument rewarded today, by symbol
        current_portfolio_value: All-time holdings at latest prices (2 dp)
    """

    shares_rewarded_today: list[SymbolShares]
    current_portfolio_value: Decimal


# =============================================================================
# PORTFOLIO SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class HoldingValuation:
    """
    Holding in one instrument valued at its latest price.

    current_price_inr is 0 (and price_recorded_at None) when the instrument
    has never been priced.
    """

    instrument_id: int
    symbol: str
    total_shares: Decimal
    current_price_inr: Decimal
    current_value_inr: Decimal
    price_recorded_at: datetime | None = None


@dataclass(frozen=True)
class PortfolioSnapshot:
    holdings: list[HoldingValuation] = field(default_factory=list)
    total_value: Decimal = Decimal("0.00")

    @property
    def total_portfolio_value(self) -> str:
        """Total with fixed 2-decimal precision, e.g. "1800.00"."""
        return f"{self.total_value:.2f}"
