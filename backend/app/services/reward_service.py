# backend/app/services/reward_service.py
"""
Reward Service - the single entry point used by the HTTP layer.

Responsibilities:
- Validate inputs before any store access
- Register users and record rewards
- Delegate read queries to the ValuationService
- Keep the error contract: ServiceError subclasses pass through unchanged,
  anything else is logged with full detail and raised as InternalError

Usage:
    service = RewardService(db, ValuationConfig.from_settings(settings))
    reward = service.create_reward(user_id=1, symbol="RELIANCE", shares="2.5")
    snapshot = service.portfolio_snapshot(user_id=1)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from app.models import User
from app.services.exceptions import (
    InstrumentNotFoundError,
    InternalError,
    ServiceError,
    UserNotFoundError,
    ValidationError,
)
from app.services.stores import (
    InstrumentStore,
    LedgerStore,
    PriceStore,
    UserStore,
    normalize_symbol,
    validate_shares,
)
from app.services.valuation import (
    CurrentStats,
    DailyValuation,
    PortfolioSnapshot,
    RewardView,
    ValuationConfig,
    ValuationService,
)

logger = logging.getLogger(__name__)


# =============================================================================
# INPUT VALIDATION
# =============================================================================

def _require_user_id(user_id: object) -> int:
    # bool is an int subclass; True must not pass as user 1
    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
        raise ValidationError(f"userId must be a positive integer, got {user_id!r}", field="user_id")
    return user_id


def _require_text(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


class RewardService:
    """
    Facade over the stores and the valuation engine for one session.

    Attributes:
        _users: User registration and lookup
        _instruments: Instrument reference data
        _ledger: Reward entries
        _valuation: Read-side computations
    """

    def __init__(self, db: Session, config: ValuationConfig | None = None) -> None:
        self._users = UserStore(db)
        self._instruments = InstrumentStore(db)
        self._ledger = LedgerStore(db)
        self._valuation = ValuationService(self._ledger, PriceStore(db), config)

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_user(self, name: str, email: str) -> User:
        """
        Register a user.

        Raises:
            ValidationError: If name or email is blank, or email has no "@"
            UserExistsError: If the email is already registered
        """
        with self._guard("create_user"):
            name = _require_text(name, "name")
            email = _require_text(email, "email").lower()
            if "@" not in email:
                raise ValidationError(f"email is not valid: {email!r}", field="email")

            return self._users.create(name=name, email=email)

    def create_reward(
            self,
            user_id: int,
            symbol: str,
            shares: Decimal | int | float | str | None,
            rewarded_at: datetime | None = None,
    ) -> RewardView:
        """
        Record that a user was granted shares of an instrument.

        All inputs are validated before the first query; a failed call
        writes nothing.

        Raises:
            ValidationError: Bad user_id, blank symbol, or shares <= 0
            InstrumentNotFoundError: Unknown symbol
            UserNotFoundError: Unknown user
        """
        with self._guard("create_reward"):
            user_id = _require_user_id(user_id)
            symbol = normalize_symbol(_require_text(symbol, "stock_symbol"))
            quantity = validate_shares(shares)

            instrument = self._instruments.get_by_symbol(symbol)
            if instrument is None:
                raise InstrumentNotFoundError(symbol)
            if self._users.get(user_id) is None:
                raise UserNotFoundError(user_id)

            entry = self._ledger.append(user_id, instrument.id, quantity, rewarded_at)
            return RewardView.from_entry(entry)

    # =========================================================================
    # READS
    # =========================================================================

    def todays_rewards(self, user_id: int, now: datetime | None = None) -> list[RewardView]:
        with self._guard("todays_rewards"):
            return self._valuation.todays_rewards(_require_user_id(user_id), now)

    def historical_valuation(self, user_id: int, now: datetime | None = None) -> list[DailyValuation]:
        with self._guard("historical_valuation"):
            return self._valuation.historical_valuation(_require_user_id(user_id), now)

    def current_stats(self, user_id: int, now: datetime | None = None) -> CurrentStats:
        with self._guard("current_stats"):
            return self._valuation.current_stats(_require_user_id(user_id), now)

    def portfolio_snapshot(self, user_id: int, now: datetime | None = None) -> PortfolioSnapshot:
        with self._guard("portfolio_snapshot"):
            return self._valuation.portfolio_snapshot(_require_user_id(user_id), now)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except ServiceError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in {operation}: {e}")
            raise InternalError(operation) from e
