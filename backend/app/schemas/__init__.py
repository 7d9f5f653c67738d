# backend/app/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- base: camelCase base model
- errors: Error response formats
- rewards: Reward creation and valuation responses
- users: User registration

Usage:
    from app.schemas import RewardCreate, RewardResponse
    from app.schemas import PortfolioResponse, StatsResponse
    from app.schemas import ErrorDetail
"""

from app.schemas.base import CamelModel
from app.schemas.errors import ErrorDetail, ValidationErrorDetail
from app.schemas.rewards import (
    RewardCreate,
    RewardResponse,
    TodayStocksResponse,
    HistoricalReward,
    HistoricalInrResponse,
    SharesToday,
    StatsResponse,
    PortfolioHolding,
    PortfolioResponse,
)
from app.schemas.users import UserCreate, UserResponse

__all__ = [
    "CamelModel",
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Rewards
    "RewardCreate",
    "RewardResponse",
    "TodayStocksResponse",
    "HistoricalReward",
    "HistoricalInrResponse",
    "SharesToday",
    "StatsResponse",
    "PortfolioHolding",
    "PortfolioResponse",
    # Users
    "UserCreate",
    "UserResponse",
]
