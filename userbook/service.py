"""Persistence service translating store rows into :class:`User` records."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, NoReturn, Optional

from .database import ConstraintViolation, Database, StoreError
from .models import User, UserInput

logger = logging.getLogger("userbook.service")


class DuplicateEmailError(Exception):
    """Raised when a create or update would reuse another record's email."""

    def __init__(self, email: str) -> None:
        super().__init__(f"A user with email {email!r} already exists")
        self.email = email


def _parse_timestamp(value: str) -> datetime:
    # SQLite stores UTC without an offset.
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=int(row["id"]),
        name=str(row["name"]),
        email=str(row["email"]),
        created_at=_parse_timestamp(str(row["created_at"])),
    )


class UserService:
    """CRUD operations over user records.

    The service never assigns ids or timestamps itself; every record it
    returns has been read back from the store.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    def list_users(self) -> List[User]:
        return [row_to_user(row) for row in self._database.list_users()]

    def get_user(self, user_id: int) -> Optional[User]:
        row = self._database.get_user(user_id)
        if row is None:
            return None
        return row_to_user(row)

    def create_user(self, data: UserInput) -> User:
        try:
            user_id = self._database.insert_user(data.name, data.email)
        except ConstraintViolation as exc:
            self._raise_duplicate(exc, data.email)

        created = self.get_user(user_id)
        if created is None:
            # Deleted by a concurrent request before we could read it back.
            raise StoreError(f"User {user_id} disappeared immediately after creation")
        logger.info("Created user %s", user_id)
        return created

    def update_user(self, user_id: int, data: UserInput) -> Optional[User]:
        """Apply ``data`` to ``user_id`` and return the stored result.

        Existence is decided by reading the record back rather than by the
        update's row count. A concurrent delete between the write and the
        read therefore surfaces as ``None``.
        """

        try:
            self._database.update_user(user_id, data.name, data.email)
        except ConstraintViolation as exc:
            self._raise_duplicate(exc, data.email)

        updated = self.get_user(user_id)
        if updated is not None:
            logger.info("Updated user %s", user_id)
        return updated

    def delete_user(self, user_id: int) -> bool:
        deleted = self._database.delete_user(user_id) > 0
        if deleted:
            logger.info("Deleted user %s", user_id)
        return deleted

    @staticmethod
    def _raise_duplicate(exc: ConstraintViolation, email: str) -> NoReturn:
        if exc.field != "email":
            raise exc
        logger.warning("Rejected duplicate email %s", email)
        raise DuplicateEmailError(email) from exc


__all__ = ["DuplicateEmailError", "UserService", "row_to_user"]
