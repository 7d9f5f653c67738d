#!/usr/bin/env python3
# backend/scripts/seed_instruments.py
"""
Seed the instrument reference data.

Idempotent: existing symbols are left alone. With --with-prices, one price
refresh cycle runs afterwards so every instrument has a current price.

    python backend/scripts/seed_instruments.py
    python backend/scripts/seed_instruments.py --with-prices TCS INFY
"""
import argparse
import logging
import sys
from collections.abc import Iterable
from pathlib import Path

# Setup path to import app modules
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.database import create_db_engine, create_session_factory
from app.models import Base, Instrument
from app.services.constants import DEFAULT_INSTRUMENT_SYMBOLS
from app.services.pricing import PriceRefreshJob
from app.services.stores import normalize_symbol
from app.utils import setup_logging

logger = logging.getLogger(__name__)


def seed_instruments(db: Session, symbols: Iterable[str] = DEFAULT_INSTRUMENT_SYMBOLS) -> list[str]:
    """
    Insert the symbols that do not exist yet.

    Returns:
        Symbols actually created, in input order
    """
    created = []
    try:
        for symbol in dict.fromkeys(normalize_symbol(s) for s in symbols if s.strip()):
            if db.scalar(select(Instrument).where(Instrument.symbol == symbol)) is not None:
                logger.info(f"Instrument exists: {symbol}")
                continue
            db.add(Instrument(symbol=symbol))
            created.append(symbol)
            logger.info(f"Created instrument: {symbol}")
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Seeding failed: {e}")
        raise

    return created


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("symbols", nargs="*", help="Symbols to seed (default: built-in list)")
    parser.add_argument("--with-prices", action="store_true", help="Run one price refresh cycle afterwards")
    args = parser.parse_args(argv)

    setup_logging()
    engine = create_db_engine(settings)
    try:
        Base.metadata.create_all(bind=engine)
        session_factory = create_session_factory(engine)

        with session_factory() as db:
            created = seed_instruments(db, args.symbols or DEFAULT_INSTRUMENT_SYMBOLS)
        logger.info(f"{len(created)} instruments created")

        if args.with_prices:
            result = PriceRefreshJob.from_settings(session_factory, settings).run_cycle()
            if not result.success:
                sys.exit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
