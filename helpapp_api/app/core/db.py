"""
SQLite database integration and simple migration system.

The ``Database`` class owns the single long-lived connection used by
the whole process.  ``create_app`` constructs one instance, opens it on
startup and closes it on shutdown; services receive it by injection
(see ``api.deps``) instead of opening connections of their own.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from .errors import InternalError

logger = logging.getLogger(__name__)

MEMORY_URL = ":memory:"

MIGRATIONS: List[tuple] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            password TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'CLIENT'
                CHECK (role IN ('CLIENT', 'PROVIDER', 'ADMIN')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS service_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            description TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT,
            price REAL NOT NULL,
            provider_id INTEGER NOT NULL,
            service_type_id INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(provider_id) REFERENCES users(id),
            FOREIGN KEY(service_type_id) REFERENCES service_types(id)
        );

        CREATE TABLE IF NOT EXISTS bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id INTEGER NOT NULL,
            provider_id INTEGER NOT NULL,
            service_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING'
                CHECK (status IN ('PENDING', 'ACCEPTED', 'REJECTED', 'COMPLETED')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(client_id) REFERENCES users(id),
            FOREIGN KEY(provider_id) REFERENCES users(id),
            FOREIGN KEY(service_id) REFERENCES services(id)
        );

        CREATE TABLE IF NOT EXISTS reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL UNIQUE,
            author_id INTEGER NOT NULL,
            rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
            comment TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(booking_id) REFERENCES bookings(id),
            FOREIGN KEY(author_id) REFERENCES users(id)
        );
        """,
    ),
    # Migration 2: indices for the "bookings of a user" lookups
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_bookings_client_id ON bookings(client_id);
        CREATE INDEX IF NOT EXISTS idx_bookings_provider_id ON bookings(provider_id);
        CREATE INDEX IF NOT EXISTS idx_services_service_type_id ON services(service_type_id);
        """,
    ),
]


def get_database_path(database_url: str) -> str:
    """Compute the path to the SQLite database file.

    ``:memory:`` and absolute paths are returned unchanged.  Relative
    paths are resolved against the project root (the directory holding
    the ``helpapp_api`` package).
    """
    if database_url == MEMORY_URL or os.path.isabs(database_url):
        return database_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / database_url).resolve())


def is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    """True when ``exc`` was raised by a ``UNIQUE`` constraint.

    Foreign-key, ``CHECK`` and ``NOT NULL`` failures are also
    ``IntegrityError`` and must not be reported as duplicates.
    """
    return str(exc).startswith("UNIQUE constraint failed")


def is_foreign_key_violation(exc: sqlite3.IntegrityError) -> bool:
    return str(exc).startswith("FOREIGN KEY constraint failed")


class Database:
    """Process-wide handle around one SQLite connection."""

    def __init__(self, database_url: str) -> None:
        self.path = get_database_path(database_url)
        self._conn: Optional[sqlite3.Connection] = None
        self._closed = False

    def connect(self) -> sqlite3.Connection:
        """Open the connection if it is not open yet and return it.

        Rows are returned as ``sqlite3.Row`` so columns can be accessed
        by name.  ``check_same_thread`` is disabled because the ASGI
        server may run dependencies in its worker threads; all queries
        are still issued from one thread at a time.
        """
        if self._conn is None:
            if self._closed:
                raise InternalError("Database connection has already been closed")
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            # SQLite ignores REFERENCES clauses unless this is enabled per connection.
            conn.execute("PRAGMA foreign_keys = ON")
            self._conn = conn
            logger.info("Opened database %s", self.path)
        return self._conn

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise InternalError("Database is not connected")
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        """Close the connection.  Safe to call more than once."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._closed = True
        logger.info("Closed database %s", self.path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor; commit on success and roll back on any error."""
        conn = self.connection
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        return self.connection.execute(sql, tuple(params)).fetchone()

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return self.connection.execute(sql, tuple(params)).fetchall()

    def init_db(self) -> None:
        """Apply pending migrations.

        Creates the ``migrations`` table if it does not exist, checks
        the current schema version, and applies every entry of
        ``MIGRATIONS`` with a higher version.  New migrations must be
        appended with an incremented version number.
        """
        with self.transaction() as cursor:
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
            )
            cursor.execute("SELECT MAX(version) as version FROM migrations")
            row = cursor.fetchone()
            current_version = row["version"] if row and row["version"] is not None else 0

            for version, sql in MIGRATIONS:
                if version > current_version:
                    cursor.executescript(sql)
                    cursor.execute(
                        "INSERT INTO migrations (version) VALUES (?)", (version,)
                    )
                    logger.info("Applied migration %s", version)
                    current_version = version
