# backend/app/services/stores/user_store.py
"""User registration and lookup."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import User
from app.services.exceptions import UserExistsError
from app.services.stores.base import store_operation

logger = logging.getLogger(__name__)


class UserStore:

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, user_id: int) -> User | None:
        with store_operation(self._db, "get_user"):
            return self._db.get(User, user_id)

    def create(self, name: str, email: str) -> User:
        """
        Insert a new user.

        Raises:
            UserExistsError: If the email is already registered
            StoreError: On any other database failure
        """
        user = User(name=name, email=email)
        with store_operation(self._db, "create_user", write=True):
            self._db.add(user)
            try:
                self._db.commit()
            except IntegrityError:
                # email is the only unique column
                self._db.rollback()
                raise UserExistsError(email)
            self._db.refresh(user)

        logger.info(f"Created user {user.id}")
        return user
