# backend/app/services/stores/base.py
"""
Shared error translation for the store layer.

Every store method runs its database work inside store_operation(), which
turns SQLAlchemy failures into StoreError so nothing above the stores ever
sees a driver exception. Writes are rolled back before re-raising.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.services.exceptions import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def store_operation(db: Session, operation: str, write: bool = False) -> Iterator[None]:
    """
    Translate SQLAlchemy errors raised in the block into StoreError.

    Args:
        db: Session used inside the block
        operation: Name reported in logs and in the StoreError
        write: Roll the session back on failure
    """
    try:
        yield
    except SQLAlchemyError as e:
        if write:
            db.rollback()
        logger.error(f"Store operation '{operation}' failed: {e}")
        raise StoreError(operation, str(e)) from e
