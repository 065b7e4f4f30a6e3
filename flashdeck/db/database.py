"""
DuckDB-backed key-value storage for flashdeck snapshots.
"""

import duckdb
import logging
from pathlib import Path
from typing import List, Optional, Union

from ..exceptions import StorageReadError, StorageWriteError
from .connection import ConnectionHandler
from .schema_manager import SchemaManager

logger = logging.getLogger(__name__)


class SnapshotDatabase:
    """
    Acts as a Facade for the storage subsystem: a durable string-to-string
    key-value store.

    It coordinates the ConnectionHandler and SchemaManager. Intended for use as
    a context manager; the schema is created when a new writable database is
    opened.
    """

    _GET_SQL = "SELECT value FROM kv_store WHERE key = $1;"
    _PUT_SQL = """
        INSERT INTO kv_store (key, value, updated_at)
        VALUES ($1, $2, current_timestamp)
        ON CONFLICT (key) DO UPDATE SET
            value = EXCLUDED.value,
            updated_at = EXCLUDED.updated_at;
    """
    _DELETE_SQL = "DELETE FROM kv_store WHERE key = $1 RETURNING key;"
    _KEYS_SQL = "SELECT key FROM kv_store ORDER BY key;"

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Args:
            db_path: Path to the database file. Use ':memory:' for an
                in-memory database.
            read_only: If True, open the database in read-only mode.
        """
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)
        self._schema_ready = False
        logger.info(
            f"SnapshotDatabase initialized for DB at: {self._handler.db_path_resolved}"  # noqa: E501
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """Return an open connection, creating the schema on first use."""
        conn = self._handler.get_connection()
        if not self._schema_ready:
            if not self._handler.read_only or self._handler.is_memory:
                self.initialize_schema()
            self._schema_ready = True
        return conn

    def close_connection(self) -> None:
        self._handler.close_connection()
        # A reopened in-memory database starts empty again.
        self._schema_ready = False

    def __enter__(self) -> "SnapshotDatabase":
        self.get_connection()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Ensures the connection is closed on exiting the context."""
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    # --- Key-value operations ---

    def get(self, key: str) -> Optional[str]:
        """
        Fetch the value stored under ``key``.

        Returns:
            The stored string, or None if the key is absent.

        Raises:
            StorageReadError: If the database cannot be queried.
        """
        try:
            conn = self.get_connection()
            row = conn.execute(self._GET_SQL, (key,)).fetchone()
        except duckdb.Error as e:
            raise StorageReadError(
                f"Failed to read key '{key}': {e}", original_exception=e
            ) from e
        if row is None:
            logger.debug(f"No value stored under key '{key}'")
            return None
        return row[0]

    def put(self, key: str, value: str) -> None:
        """
        Store ``value`` under ``key``, replacing any previous value.

        Raises:
            StorageWriteError: In read-only mode or if the write fails.
        """
        if self.read_only:
            raise StorageWriteError("Cannot write in read-only mode.")

        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.execute(self._PUT_SQL, (key, value))
                cursor.commit()
            logger.debug(f"Stored {len(value)} characters under key '{key}'")
        except duckdb.Error as e:
            logger.error(f"Failed to write key '{key}': {e}")
            raise StorageWriteError(
                f"Failed to write key '{key}': {e}", original_exception=e
            ) from e

    def delete(self, key: str) -> bool:
        """
        Remove ``key``.

        Returns:
            True if a value was removed, False if the key was absent.

        Raises:
            StorageWriteError: In read-only mode or if the delete fails.
        """
        if self.read_only:
            raise StorageWriteError("Cannot delete in read-only mode.")

        conn = self.get_connection()
        try:
            deleted = conn.execute(self._DELETE_SQL, (key,)).fetchall()
        except duckdb.Error as e:
            raise StorageWriteError(
                f"Failed to delete key '{key}': {e}", original_exception=e
            ) from e
        if deleted:
            logger.info(f"Deleted stored value for key '{key}'")
        return bool(deleted)

    def keys(self) -> List[str]:
        try:
            conn = self.get_connection()
            return [row[0] for row in conn.execute(self._KEYS_SQL).fetchall()]
        except duckdb.Error as e:
            raise StorageReadError(
                f"Failed to list keys: {e}", original_exception=e
            ) from e
