# backend/app/schemas/rewards.py
"""
Pydantic schemas for rewards and their valuation.

These schemas handle:
- Reward creation (request + created entry)
- Today's rewards
- Historical INR value per day
- Stats (shares today + current portfolio value)
- Portfolio holdings at latest prices

All amounts are Decimal and serialize as JSON strings.
"""

import datetime as dt
from decimal import Decimal

from pydantic import Field

from app.schemas.base import CamelModel


# =============================================================================
# REWARD SCHEMAS
# =============================================================================

class RewardCreate(CamelModel):
    """
    Request body for POST /api/reward.

    Presence and positivity are checked by the service (400), not here.
    """

    user_id: int | None = Field(
        default=None,
        description="Rewarded user",
        examples=[1],
    )
    stock_symbol: str | None = Field(
        default=None,
        max_length=32,
        description="Instrument symbol (case-insensitive)",
        examples=["RELIANCE"],
    )
    shares: Decimal | None = Field(
        default=None,
        description="Shares granted, must be greater than 0",
        examples=["2.5"],
    )


class RewardResponse(CamelModel):
    """One reward entry with its symbol."""

    id: int
    user_id: int
    stock_symbol: str
    shares: Decimal
    rewarded_at: dt.datetime = Field(..., description="Reward time (UTC)")


class TodayStocksResponse(CamelModel):
    """Rewards granted since local midnight, newest first."""

    stocks: list[RewardResponse]


# =============================================================================
# HISTORICAL SCHEMAS
# =============================================================================

class HistoricalReward(CamelModel):
    date: dt.date = Field(..., description="Local calendar date")
    total_value: Decimal = Field(
        ...,
        description="INR value of the rewards granted that day, 2 dp"
    )
    reward_count: int = Field(..., description="Number of reward entries granted that day")


class HistoricalInrResponse(CamelModel):
    """Past days only (today excluded), ascending by date."""

    user_id: int
    historical_rewards: list[HistoricalReward]


# =============================================================================
# STATS SCHEMAS
# =============================================================================

class SharesToday(CamelModel):
    stock_symbol: str
    total_shares: Decimal


class StatsResponse(CamelModel):
    shares_rewarded_today: list[SharesToday] = Field(
        ...,
        description="Shares rewarded today per symbol, sorted by symbol"
    )
    current_portfolio_value: Decimal = Field(
        ...,
        description="All-time holdings at latest prices (INR, 2 dp)"
    )


# =============================================================================
# PORTFOLIO SCHEMAS
# =============================================================================

class PortfolioHolding(CamelModel):
    stock_symbol: str
    total_shares: Decimal
    current_price_inr: Decimal = Field(
        ...,
        description="Latest price, 0 if the instrument was never priced"
    )
    current_value_inr: Decimal
    price_recorded_at: dt.datetime | None = Field(
        None,
        description="UTC time of the price used, null if never priced"
    )


class PortfolioResponse(CamelModel):
    portfolio: list[PortfolioHolding]
    total_portfolio_value: str = Field(
        ...,
        description="Sum of holding values with exactly 2 decimals",
        examples=["1800.00"],
    )
