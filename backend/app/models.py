# backend/app/models.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Numeric, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.utils.date_utils import utc_now


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    rewards: Mapped[list["RewardEntry"]] = relationship(back_populates="user")


class Instrument(Base):
    """
    Tradable symbol that rewards are granted in and prices are recorded for.

    Reference data: seeded once (see scripts/seed_instruments.py) and only
    read afterwards.
    """
    __tablename__ = "instruments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    symbol: Mapped[str] = mapped_column(String, unique=True, index=True)  # e.g. "RELIANCE"

    prices: Mapped[list["PriceObservation"]] = relationship(back_populates="instrument")
    rewards: Mapped[list["RewardEntry"]] = relationship(back_populates="instrument")


class RewardEntry(Base):
    """
    One grant of `shares` units of an instrument to a user.

    Append-only. rewarded_at is set by the server when the row is created
    and stored as naive UTC.
    """
    __tablename__ = "reward_entries"
    __table_args__ = (
        # "Rewards for user X in [from, to)" drives every valuation query
        Index('ix_reward_user_rewarded_at', 'user_id', 'rewarded_at'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    instrument_id: Mapped[int] = mapped_column(ForeignKey("instruments.id"), index=True)

    # Fractional shares are allowed, up to 8 decimal places
    shares: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    rewarded_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    user: Mapped["User"] = relationship(back_populates="rewards")
    instrument: Mapped["Instrument"] = relationship(back_populates="rewards")


class PriceObservation(Base):
    """
    One timestamped INR price sample for an instrument.

    Append-only and not unique per timestamp: when two observations share
    recorded_at, the one with the higher id is the more recent.
    """
    __tablename__ = "price_observations"
    __table_args__ = (
        # As-of lookups: "latest price for instrument X at or before T"
        Index('ix_price_instrument_recorded_at', 'instrument_id', 'recorded_at'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    instrument_id: Mapped[int] = mapped_column(ForeignKey("instruments.id"), index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 4))
    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    instrument: Mapped["Instrument"] = relationship(back_populates="prices")
