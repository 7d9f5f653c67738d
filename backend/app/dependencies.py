# backend/app/dependencies.py
"""
Dependency injection module for FastAPI services.

The valuation config is built once from settings and shared; the
RewardService is cheap and bound to the request's session, so a new one
is created per request.

Usage in routers:
    from app.dependencies import get_reward_service

    @router.get("/stats/{user_id}")
    def get_stats(user_id: int, service: RewardService = Depends(get_reward_service)):
        ...
"""

import logging
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.services.reward_service import RewardService
from app.services.valuation import ValuationConfig

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETONS
# =============================================================================
# @lru_cache returns the same instance on every call (lazy singleton)


@lru_cache(maxsize=1)
def get_valuation_config() -> ValuationConfig:
    """Zone, lookahead and rounding, resolved once from settings."""
    config = ValuationConfig.from_settings(settings)
    logger.info(
        f"Valuation config: tz={settings.timezone}, "
        f"lookahead={settings.price_lookahead_hours}h, rounding={settings.currency_rounding}"
    )
    return config


# =============================================================================
# PER-REQUEST SERVICES
# =============================================================================


def get_reward_service(
        db: Session = Depends(get_db),
        config: ValuationConfig = Depends(get_valuation_config),
) -> RewardService:
    return RewardService(db, config)
