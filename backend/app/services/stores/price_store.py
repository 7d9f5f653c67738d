# backend/app/services/stores/price_store.py
"""
Price Store - append-only INR price observations per instrument.

Point-in-time ("as-of") semantics used everywhere in this module:

    the observation for an instrument with the greatest recorded_at that is
    <= the requested instant; among observations sharing that recorded_at,
    the one inserted last (highest id).

The single-row lookups (latest_as_of, latest) answer this in SQL. The batch
reads used by the valuation engine return the same observation for the same
question, either via a window function (latest_for_instruments) or via an
in-memory PriceTimeline (timelines_until).
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import PriceObservation
from app.services.constants import PRICE_MAX_INTEGER_DIGITS
from app.services.exceptions import ValidationError
from app.services.stores.base import store_operation
from app.utils.date_utils import to_utc_naive, utc_now

logger = logging.getLogger(__name__)


class PriceTimeline:
    """
    Observations of one instrument, ordered by (recorded_at, id).

    Resolves as-of lookups with a binary search, so a whole ledger can be
    priced from one batch query per request.
    """

    def __init__(self, observations: Iterable[PriceObservation] = ()) -> None:
        self._observations = sorted(observations, key=lambda o: (o.recorded_at, o.id))
        self._timestamps = [o.recorded_at for o in self._observations]

    def __len__(self) -> int:
        return len(self._observations)

    def as_of(self, at: datetime) -> PriceObservation | None:
        """Latest observation with recorded_at <= at (last inserted on ties)."""
        # bisect_right lands after every observation stamped exactly `at`,
        # so the element before it is the highest id among ties
        index = bisect_right(self._timestamps, to_utc_naive(at))
        if index == 0:
            return None
        return self._observations[index - 1]


def _validate_price(price: Decimal | int | float | str | None) -> Decimal:
    if price is None:
        raise ValidationError("price is required", field="price")
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"price must be a number, got {price!r}", field="price")
    if not value.is_finite():
        raise ValidationError("price must be finite", field="price")
    if value < 0:
        raise ValidationError(f"price must not be negative, got {value}", field="price")
    if value and value.adjusted() >= PRICE_MAX_INTEGER_DIGITS:
        raise ValidationError(f"price must have at most {PRICE_MAX_INTEGER_DIGITS} integer digits", field="price")
    return value


class PriceStore:
    """Append and as-of lookups over price_observations."""

    def __init__(self, db: Session) -> None:
        self._db = db

    # =========================================================================
    # WRITES
    # =========================================================================

    def append_observation(
            self,
            instrument_id: int,
            price: Decimal | int | float | str | None,
            recorded_at: datetime | None = None,
    ) -> int:
        """
        Record one price observation and commit it.

        Args:
            instrument_id: Instrument the price belongs to
            price: Non-negative INR price
            recorded_at: Observation time (default: now)

        Returns:
            The new observation id

        Raises:
            ValidationError: If price is missing, malformed or negative
            StoreError: If the insert fails
        """
        value = _validate_price(price)
        observation = PriceObservation(
            instrument_id=instrument_id,
            price=value,
            recorded_at=to_utc_naive(recorded_at) if recorded_at else utc_now(),
        )

        with store_operation(self._db, "append_observation", write=True):
            self._db.add(observation)
            self._db.commit()

        logger.debug(f"Stored price {value} for instrument {instrument_id} (observation {observation.id})")
        return observation.id

    # =========================================================================
    # SINGLE LOOKUPS
    # =========================================================================

    def latest_as_of(self, instrument_id: int, as_of: datetime) -> PriceObservation | None:
        """Observation in effect for the instrument at `as_of`, or None."""
        query = (
            select(PriceObservation)
            .where(
                PriceObservation.instrument_id == instrument_id,
                PriceObservation.recorded_at <= to_utc_naive(as_of),
            )
            .order_by(PriceObservation.recorded_at.desc(), PriceObservation.id.desc())
            .limit(1)
        )
        with store_operation(self._db, "latest_as_of"):
            return self._db.scalar(query)

    def latest(self, instrument_id: int) -> PriceObservation | None:
        """Most recent observation as of now."""
        return self.latest_as_of(instrument_id, utc_now())

    # =========================================================================
    # BATCH LOOKUPS
    # =========================================================================

    def latest_for_instruments(
            self,
            instrument_ids: Iterable[int],
            as_of: datetime,
    ) -> dict[int, PriceObservation]:
        """
        Observation in effect at `as_of` for each instrument, in one statement.

        Instruments without any observation up to `as_of` are absent from
        the result.
        """
        ids = sorted(set(instrument_ids))
        if not ids:
            return {}

        ranked = (
            select(
                PriceObservation.id.label("observation_id"),
                func.row_number()
                .over(
                    partition_by=PriceObservation.instrument_id,
                    order_by=(PriceObservation.recorded_at.desc(), PriceObservation.id.desc()),
                )
                .label("rank"),
            )
            .where(
                PriceObservation.instrument_id.in_(ids),
                PriceObservation.recorded_at <= to_utc_naive(as_of),
            )
            .subquery()
        )
        query = (
            select(PriceObservation)
            .join(ranked, PriceObservation.id == ranked.c.observation_id)
            .where(ranked.c.rank == 1)
        )

        with store_operation(self._db, "latest_for_instruments"):
            rows = self._db.scalars(query).all()

        return {row.instrument_id: row for row in rows}

    def timelines_until(
            self,
            instrument_ids: Iterable[int],
            until: datetime,
    ) -> dict[int, PriceTimeline]:
        """
        Every observation up to `until` for the given instruments.

        Returns one PriceTimeline per requested instrument (empty when the
        instrument has no observations in range).
        """
        ids = sorted(set(instrument_ids))
        if not ids:
            return {}

        query = (
            select(PriceObservation)
            .where(
                PriceObservation.instrument_id.in_(ids),
                PriceObservation.recorded_at <= to_utc_naive(until),
            )
            .order_by(
                PriceObservation.instrument_id,
                PriceObservation.recorded_at,
                PriceObservation.id,
            )
        )
        with store_operation(self._db, "timelines_until"):
            rows = self._db.scalars(query).all()

        grouped: dict[int, list[PriceObservation]] = {instrument_id: [] for instrument_id in ids}
        for row in rows:
            grouped[row.instrument_id].append(row)

        logger.debug(f"Fetched {len(rows)} price observations for {len(ids)} instruments up to {until}")
        return {instrument_id: PriceTimeline(observations) for instrument_id, observations in grouped.items()}
