# backend/app/routers/__init__.py
"""
API routers for the Stock Rewards Ledger.

Each router handles a specific domain:
- rewards: Reward recording and valuation queries
- users: User registration
"""

from app.routers.rewards import router as rewards_router
from app.routers.users import router as users_router

__all__ = [
    "rewards_router",
    "users_router",
]
