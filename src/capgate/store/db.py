"""
SQLite role store for capgate.

Some deployments look a principal's grants up per request instead of using
the in-memory catalog. RoleStore is that live source: it answers the same
lookup() question as PermissionCatalog, but every call is a blocking query.

Failure policy:
    - Unknown or empty role -> UnknownRoleError (the gate answers invalid_role)
    - Any sqlite3 error     -> StorageReadError (the gate answers internal_error)
    - No retries: a failed lookup fails the check

Tables:
    - roles: one row per role name
    - role_permissions: granted permission strings, ordered by position
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Generator

from capgate.catalog import PermissionCatalog
from capgate.errors import (
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
    UnknownRoleError,
)

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS roles (
    role_id INTEGER PRIMARY KEY AUTOINCREMENT,
    nombre TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS role_permissions (
    role_id INTEGER NOT NULL,
    permission TEXT NOT NULL,
    position INTEGER NOT NULL,
    PRIMARY KEY (role_id, permission),
    FOREIGN KEY (role_id) REFERENCES roles(role_id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_role_permissions_role_id ON role_permissions(role_id);
"""


def now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(UTC).isoformat()


class RoleStore:
    """
    SQLite-backed permission source.

    Usage:
        with RoleStore("roles.db") as store:
            store.seed(PermissionCatalog.default())
            gate = AuthorizationGate(store)

    Or load once at start-up and serve from memory:
        catalog = RoleStore("roles.db").snapshot()
    """

    blocking = True

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file.
                     Will be created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._connect()
        self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            # Lookups may run in a web framework's threadpool.
            self._conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise StorageConnectionError(
                db_path=str(self.db_path),
                operation="connect",
                message=f"Failed to connect to database: {e}",
            ) from e

    def _init_schema(self) -> None:
        """Initialize database schema if needed."""
        try:
            cursor = self._conn.executescript(CREATE_TABLES_SQL)
            cursor.close()

            cursor = self._conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            if cursor.fetchone() is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, now_iso()),
                )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Context manager for database transactions."""
        try:
            yield
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "RoleStore":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # =========================================================================
    # Lookup
    # =========================================================================

    def lookup(self, role: str) -> tuple[str, ...]:
        """
        Fetch a role's granted permissions.

        Raises:
            UnknownRoleError: If role is empty or not stored
            StorageReadError: If the query fails
        """
        if not role or not isinstance(role, str):
            raise UnknownRoleError(role=role)
        if self._conn is None:
            raise StorageReadError(operation="lookup", underlying_error="store is closed")

        try:
            row = self._conn.execute(
                "SELECT role_id FROM roles WHERE nombre = ?",
                (role,),
            ).fetchone()
            if row is None:
                raise UnknownRoleError(role=role)

            cursor = self._conn.execute(
                "SELECT permission FROM role_permissions WHERE role_id = ? ORDER BY position",
                (row["role_id"],),
            )
            permissions = tuple(r["permission"] for r in cursor)
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="lookup",
                underlying_error=str(e),
            ) from e

        logger.debug("Loaded %d permissions for role %r", len(permissions), role)
        return permissions

    def list_roles(self) -> list[str]:
        """All stored role names, in insertion order."""
        try:
            cursor = self._conn.execute("SELECT nombre FROM roles ORDER BY role_id")
            return [row["nombre"] for row in cursor]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="list_roles",
                underlying_error=str(e),
            ) from e

    def snapshot(self) -> PermissionCatalog:
        """Read every role once and return an immutable catalog."""
        return PermissionCatalog({role: self.lookup(role) for role in self.list_roles()})

    # =========================================================================
    # Seeding
    # =========================================================================

    def seed(self, catalog: PermissionCatalog) -> None:
        """
        Replace the stored roles with the content of a catalog.

        Runs in a single transaction; on failure the previous content is kept.
        """
        try:
            with self.transaction():
                self._conn.execute("DELETE FROM role_permissions")
                self._conn.execute("DELETE FROM roles")
                for role, permissions in catalog.items():
                    cursor = self._conn.execute(
                        "INSERT INTO roles (nombre) VALUES (?)",
                        (role,),
                    )
                    self._conn.executemany(
                        "INSERT INTO role_permissions (role_id, permission, position) "
                        "VALUES (?, ?, ?)",
                        [
                            (cursor.lastrowid, permission, position)
                            for position, permission in enumerate(permissions)
                        ],
                    )
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="seed",
                underlying_error=str(e),
            ) from e

        logger.debug("Seeded %d roles into %s", len(catalog), self.db_path)
