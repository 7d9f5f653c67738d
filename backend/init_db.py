#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

Creates every table defined in app.models on DATABASE_URL. Safe to re-run:
existing tables are left untouched.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py
"""
import logging
import sys
from pathlib import Path

# Add the backend directory to Python path so 'app' package is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import Engine

from app.config import settings
from app.database import create_db_engine
from app.models import Base
from app.utils import setup_logging

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> list[str]:
    """Create missing tables and return the names of all model tables."""
    Base.metadata.create_all(bind=engine)
    return sorted(Base.metadata.tables)


if __name__ == "__main__":
    setup_logging()
    engine = create_db_engine(settings)
    try:
        tables = init_db(engine)
        logger.info(f"Tables ready: {', '.join(tables)}")
    finally:
        engine.dispose()
