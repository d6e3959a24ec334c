"""SQLite-backed record store for user records."""
from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

logger = logging.getLogger("userbook.database")

_CONSTRAINT_COLUMN = re.compile(r"constraint failed: \w+\.(\w+)")

# SQLite INTEGER is a signed 64-bit value; larger ids can never match a row.
_ROWID_MIN = -(2**63)
_ROWID_MAX = 2**63 - 1


class StoreError(Exception):
    """Raised when the underlying SQLite database reports a failure."""


class ConstraintViolation(StoreError):
    """A write was rejected by a UNIQUE constraint on ``field``."""

    def __init__(self, field: Optional[str], message: str) -> None:
        super().__init__(message)
        self.field = field


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "userbook.sqlite3").resolve(strict=False)


def _classify_integrity_error(exc: sqlite3.IntegrityError) -> StoreError:
    message = str(exc)
    error_name = getattr(exc, "sqlite_errorname", "")
    if error_name in {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}:
        match = _CONSTRAINT_COLUMN.search(message)
        return ConstraintViolation(match.group(1) if match else None, message)
    return StoreError(message)


def _is_storable_id(user_id: int) -> bool:
    return _ROWID_MIN <= user_id <= _ROWID_MAX


class Database:
    """Thin wrapper around SQLite for persisting user records.

    Callers construct one handle per process, call :meth:`initialize` once and
    share it. Every operation opens its own connection, so the handle is safe
    to use from the threads FastAPI dispatches requests on.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection, committing on success and always closing it.

        SQLite failures are re-raised as :class:`StoreError`, with UNIQUE
        violations narrowed to :class:`ConstraintViolation`.
        """

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to open database at {self._path}: {exc}") from exc

        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError as exc:
            raise _classify_integrity_error(exc) from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the users table if it does not already exist."""

        with self._connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
                );

                CREATE INDEX IF NOT EXISTS idx_users_created_at ON users(created_at);
                """
            )
        logger.debug("Schema ready in %s", self._path)

    # ------------------------------------------------------------------
    # User records
    # ------------------------------------------------------------------
    def insert_user(self, name: str, email: str) -> int:
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO users (name, email) VALUES (?, ?)",
                (name, email),
            )
            return int(cursor.lastrowid)

    def update_user(self, user_id: int, name: str, email: str) -> int:
        """Overwrite name and email; returns the number of rows touched.

        A missing id is not an error here, callers confirm existence with a
        follow-up :meth:`get_user`.
        """

        if not _is_storable_id(user_id):
            return 0
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE users SET name = ?, email = ? WHERE id = ?",
                (name, email, user_id),
            )
            return cursor.rowcount

    def delete_user(self, user_id: int) -> int:
        if not _is_storable_id(user_id):
            return 0
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            return cursor.rowcount

    def get_user(self, user_id: int) -> Optional[sqlite3.Row]:
        if not _is_storable_id(user_id):
            return None
        with self._connection() as conn:
            return conn.execute(
                "SELECT id, name, email, created_at FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()

    def list_users(self) -> List[sqlite3.Row]:
        with self._connection() as conn:
            return conn.execute(
                "SELECT id, name, email, created_at FROM users ORDER BY created_at DESC, id DESC"
            ).fetchall()


__all__ = [
    "ConstraintViolation",
    "Database",
    "StoreError",
    "resolve_database_path",
]
