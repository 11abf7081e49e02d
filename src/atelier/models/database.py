"""
Database initialization and management for atelier application.

This module provides functions to initialize DuckDB databases and manage
database connections.
"""

from pathlib import Path
from typing import Any

import duckdb

from ..logging_config import get_logger
from .schema import REQUIRED_COLUMNS, get_schema_statements, validate_schema_compatibility

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages DuckDB database connections and initialization.
    """

    def __init__(self, db_path: str):
        """
        Initialize DatabaseManager.

        Args:
            db_path: Path to the DuckDB database file, or ``:memory:``
        """
        self.db_path = db_path
        self._connection: duckdb.DuckDBPyConnection | None = None

    def connect(self) -> duckdb.DuckDBPyConnection:
        """
        Get or create a database connection.

        Returns:
            DuckDB connection object
        """
        if self._connection is None:
            self._connection = duckdb.connect(self.db_path)
            logger.info("database_connected", db_path=self.db_path)

        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("database_closed", db_path=self.db_path)

    def initialize_schema(self) -> None:
        """
        Create all tables and indexes if they don't exist.

        Raises:
            RuntimeError: If schema validation fails
            duckdb.Error: If database operations fail
        """
        if not validate_schema_compatibility():
            raise RuntimeError("Schema is not compatible with the Photo and Tag models")

        conn = self.connect()

        try:
            for statement in get_schema_statements():
                logger.debug("executing_schema_statement", statement=statement.strip().splitlines()[0])
                conn.execute(statement)

            logger.info("database_schema_initialized", db_path=self.db_path)

        except duckdb.Error as e:
            logger.error("database_schema_initialization_failed", error=str(e))
            raise

    def verify_schema(self) -> bool:
        """
        Verify that every table exists with the columns the models need.

        Returns:
            True if schema is valid, False otherwise
        """
        conn = self.connect()

        try:
            for table, required in REQUIRED_COLUMNS.items():
                rows = conn.execute(
                    "SELECT column_name FROM information_schema.columns WHERE table_name = ?", (table,)
                ).fetchall()
                column_names = {row[0] for row in rows}

                if not column_names:
                    logger.warning("table_missing", table=table)
                    return False

                missing_columns = required - column_names
                if missing_columns:
                    logger.warning("columns_missing", table=table, columns=sorted(missing_columns))
                    return False

            logger.debug("database_schema_verified", db_path=self.db_path)
            return True

        except duckdb.Error as e:
            logger.error("schema_verification_failed", error=str(e))
            return False

    def __enter__(self) -> "DatabaseManager":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()


def get_database_manager(db_path: str) -> DatabaseManager:
    """
    Get a DatabaseManager with an initialized schema, creating the file if needed.

    Args:
        db_path: Path to the database file, or ``:memory:``

    Returns:
        DatabaseManager instance

    Raises:
        RuntimeError: If the schema cannot be created
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db_manager = DatabaseManager(db_path)

    if not db_manager.verify_schema():
        logger.info("database_schema_missing", db_path=db_path)
        try:
            db_manager.initialize_schema()
        except duckdb.Error as e:
            raise RuntimeError(f"Database creation failed: {e}") from e

        if not db_manager.verify_schema():
            raise RuntimeError("Schema verification failed after creation")

    return db_manager
