# backend/app/services/stores/instrument_store.py
"""Read-only access to the instrument reference data."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import Instrument
from app.services.stores.base import store_operation


def normalize_symbol(symbol: str) -> str:
    """Symbols are stored upper-case without surrounding whitespace."""
    return symbol.strip().upper()


class InstrumentStore:
    """Lookups over the pre-seeded instruments table."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, instrument_id: int) -> Instrument | None:
        with store_operation(self._db, "get_instrument"):
            return self._db.get(Instrument, instrument_id)

    def get_by_symbol(self, symbol: str) -> Instrument | None:
        with store_operation(self._db, "get_instrument_by_symbol"):
            return self._db.scalar(
                select(Instrument).where(Instrument.symbol == normalize_symbol(symbol))
            )

    def list_all(self) -> list[Instrument]:
        """All instruments, ordered by id."""
        with store_operation(self._db, "list_instruments"):
            return list(self._db.scalars(select(Instrument).order_by(Instrument.id)).all())
