# backend/app/services/stores/__init__.py
"""
Data-access layer over the relational store.

Each store wraps one SQLAlchemy Session handed to it at construction and
translates driver failures into StoreError.

    stores/
    ├── base.py              # store_operation(): SQLAlchemyError -> StoreError
    ├── instrument_store.py  # Instrument reference data (read-only)
    ├── user_store.py        # User registration and lookup
    ├── ledger_store.py      # Reward entries (append-only)
    └── price_store.py       # Price observations (append-only) + PriceTimeline
"""

from app.services.stores.instrument_store import InstrumentStore, normalize_symbol
from app.services.stores.ledger_store import InstrumentShares, LedgerStore, validate_shares
from app.services.stores.price_store import PriceStore, PriceTimeline
from app.services.stores.user_store import UserStore

__all__ = [
    "InstrumentStore",
    "normalize_symbol",
    "InstrumentShares",
    "LedgerStore",
    "validate_shares",
    "PriceStore",
    "PriceTimeline",
    "UserStore",
]
