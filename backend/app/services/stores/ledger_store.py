# backend/app/services/stores/ledger_store.py
"""
Ledger Store - append-only reward entries.

Range queries are half-open, [from_inclusive, to_exclusive), so an entry
stamped exactly at a boundary belongs to exactly one side:

    today      = [local midnight, now)
    historical = (-inf, local midnight)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from app.models import Instrument, RewardEntry
from app.services.constants import SHARES_MAX_INTEGER_DIGITS, SHARES_QUANTUM
from app.services.exceptions import InstrumentNotFoundError, ValidationError
from app.services.stores.base import store_operation
from app.utils.date_utils import to_utc_naive, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstrumentShares:
    """Share total for one instrument from a grouping query."""
    instrument_id: int
    symbol: str
    total_shares: Decimal


def validate_shares(shares: Decimal | int | float | str | None) -> Decimal:
    """
    Parse a share quantity, which must be a finite number > 0 that the
    ledger column holds exactly (at most 10 integer and 8 fractional digits).

    Raises:
        ValidationError: Otherwise
    """
    if shares is None:
        raise ValidationError("shares is required", field="shares")
    try:
        value = Decimal(str(shares))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"shares must be a number, got {shares!r}", field="shares")
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"shares must be greater than 0, got {shares}", field="shares")
    if value.adjusted() >= SHARES_MAX_INTEGER_DIGITS:
        raise ValidationError(
            f"shares must have at most {SHARES_MAX_INTEGER_DIGITS} integer digits, got {shares}",
            field="shares",
        )
    if value != value.quantize(SHARES_QUANTUM):
        raise ValidationError(
            f"shares must have at most {-SHARES_QUANTUM.as_tuple().exponent} decimal places, got {shares}",
            field="shares",
        )
    return value


class LedgerStore:
    """Append and range/grouping queries over reward_entries."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def append(
            self,
            user_id: int,
            instrument_id: int,
            shares: Decimal | int | float | str | None,
            rewarded_at: datetime | None = None,
    ) -> RewardEntry:
        """
        Record a reward and commit it.

        Args:
            user_id: Rewarded user
            instrument_id: Instrument granted
            shares: Positive share quantity
            rewarded_at: Reward time (default: now). Internal callers only;
                         API clients never supply it.

        Returns:
            The persisted RewardEntry (instrument relationship loaded)

        Raises:
            ValidationError: If shares <= 0 or malformed (nothing is written)
            InstrumentNotFoundError: If the instrument does not exist
            StoreError: If the insert fails
        """
        quantity = validate_shares(shares)

        with store_operation(self._db, "append_reward", write=True):
            instrument = self._db.get(Instrument, instrument_id)
            if instrument is None:
                raise InstrumentNotFoundError(instrument_id)

            entry = RewardEntry(
                user_id=user_id,
                instrument_id=instrument.id,
                shares=quantity,
                rewarded_at=to_utc_naive(rewarded_at) if rewarded_at else utc_now(),
            )
            self._db.add(entry)
            self._db.commit()
            self._db.refresh(entry)

        logger.info(
            f"Recorded reward {entry.id}: user={user_id} instrument={instrument.symbol} shares={quantity}"
        )
        return entry

    def find_by_user_in_range(
            self,
            user_id: int,
            from_inclusive: datetime | None = None,
            to_exclusive: datetime | None = None,
    ) -> list[RewardEntry]:
        """
        Entries of a user with rewarded_at in [from_inclusive, to_exclusive).

        A None bound is open. Sorted by (rewarded_at, id) ascending.
        """
        query = (
            select(RewardEntry)
            .options(joinedload(RewardEntry.instrument))
            .where(RewardEntry.user_id == user_id)
            .order_by(RewardEntry.rewarded_at, RewardEntry.id)
        )
        if from_inclusive is not None:
            query = query.where(RewardEntry.rewarded_at >= to_utc_naive(from_inclusive))
        if to_exclusive is not None:
            query = query.where(RewardEntry.rewarded_at < to_utc_naive(to_exclusive))

        with store_operation(self._db, "find_rewards_in_range"):
            return list(self._db.scalars(query).all())

    def find_by_user_all(self, user_id: int) -> list[RewardEntry]:
        """Every entry of a user. Callers must not rely on the order."""
        return self.find_by_user_in_range(user_id)

    def shares_by_instrument(
            self,
            user_id: int,
            from_inclusive: datetime | None = None,
            to_exclusive: datetime | None = None,
    ) -> list[InstrumentShares]:
        """Share totals per instrument for entries in the range, by symbol."""
        query = (
            select(
                Instrument.id,
                Instrument.symbol,
                func.sum(RewardEntry.shares).label("total_shares"),
            )
            .join(Instrument, Instrument.id == RewardEntry.instrument_id)
            .where(RewardEntry.user_id == user_id)
            .group_by(Instrument.id, Instrument.symbol)
            .order_by(Instrument.symbol)
        )
        if from_inclusive is not None:
            query = query.where(RewardEntry.rewarded_at >= to_utc_naive(from_inclusive))
        if to_exclusive is not None:
            query = query.where(RewardEntry.rewarded_at < to_utc_naive(to_exclusive))

        with store_operation(self._db, "shares_by_instrument"):
            rows = self._db.execute(query).all()

        return [
            InstrumentShares(
                instrument_id=row.id,
                symbol=row.symbol,
                total_shares=Decimal(str(row.total_shares)),
            )
            for row in rows
        ]
