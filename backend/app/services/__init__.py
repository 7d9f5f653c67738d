# backend/app/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions as parameters (not via Depends)
- Are easily testable via dependency injection

Usage:
    from app.services import RewardService, ValuationConfig
    from app.services import PriceRefreshJob
    from app.services import (
        ValidationError,
        InstrumentNotFoundError,
        StoreError,
    )

Architecture:
    services/
    ├── __init__.py          # This file - main exports
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Business constants and limits
    ├── reward_service.py    # Facade used by the routers
    ├── stores/              # Data access (instruments, users, ledger, prices)
    ├── pricing/             # Price sources + background refresh job
    └── valuation/           # Valuation engine
        ├── service.py       # Main valuation orchestrator
        ├── types.py         # Valuation data types
        └── calculators.py   # Pure calculations
"""

from app.services.exceptions import (
    ServiceError,
    ValidationError,
    NotFoundError,
    InstrumentNotFoundError,
    UserNotFoundError,
    UserExistsError,
    StoreError,
    InternalError,
)
from app.services.pricing import PriceRefreshJob, PriceSource, RandomPriceSource, RefreshResult
from app.services.reward_service import RewardService
from app.services.valuation import ValuationConfig, ValuationService

__all__ = [
    # Exceptions
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "InstrumentNotFoundError",
    "UserNotFoundError",
    "UserExistsError",
    "StoreError",
    "InternalError",
    # Services
    "RewardService",
    "ValuationService",
    "ValuationConfig",
    # Pricing
    "PriceRefreshJob",
    "PriceSource",
    "RandomPriceSource",
    "RefreshResult",
]
