"""
Database operations for the flight sync application.
Provides connection management and the source/target data access layer.
"""
import logging
from contextlib import contextmanager
from datetime import date
from typing import List, Dict, Any, Optional, Sequence, Tuple

import duckdb
import pandas as pd

import sqlDB
from config import config
from models import FLIGHT_TABLE_COLUMNS, FlightRecord

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""
    pass


class DatabaseConnection:
    """Manages DuckDB database connections with proper error handling."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.get_database_path()

    @contextmanager
    def get_connection(self, read_only: bool = False):
        """Context manager for database connections."""
        conn = None
        try:
            conn = duckdb.connect(database=self.db_path, read_only=read_only)
            logger.debug(f"Connected to database: {self.db_path}")
            yield conn
        except duckdb.Error as e:
            logger.error(f"Database error: {e}")
            raise DatabaseError(f"Database operation failed on {self.db_path}: {e}") from e
        finally:
            if conn:
                try:
                    conn.close()
                    logger.debug("Database connection closed")
                except Exception as e:
                    logger.warning(f"Error closing connection: {e}")

    def execute_query(self, query: str, params: Optional[Tuple] = None) -> None:
        """Execute a query without returning results."""
        with self.get_connection() as conn:
            try:
                if params:
                    conn.execute(query, params)
                else:
                    conn.execute(query)
                logger.debug("Query executed successfully")
            except duckdb.Error as e:
                logger.error(f"Query execution failed: {query}")
                raise DatabaseError(f"Query execution failed: {e}") from e

    def fetch_dataframe(self, query: str, params: Optional[Sequence] = None) -> pd.DataFrame:
        """Execute a query and return results as a DataFrame."""
        with self.get_connection(read_only=True) as conn:
            try:
                if params:
                    result = conn.execute(query, list(params)).df()
                else:
                    result = conn.execute(query).df()
                logger.debug(f"Query returned {len(result)} rows")
                return result
            except duckdb.Error as e:
                logger.error(f"Query failed: {query}")
                raise DatabaseError(f"Query failed: {e}") from e


def _records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    # NaN/NaT become None so row values read like the database values they came from
    return frame.astype(object).where(pd.notnull(frame), None).to_dict("records")


def _records_frame(records: List[FlightRecord]) -> pd.DataFrame:
    return pd.DataFrame([record.to_row() for record in records], columns=FLIGHT_TABLE_COLUMNS)


class SourceRepository:
    """Read-only access to the operations system holding the flight legs and crew roster."""

    def __init__(self, db_connection: Optional[DatabaseConnection] = None,
                 source_query: Optional[str] = None):
        self.db = db_connection or DatabaseConnection(config.get_source_database_path())
        self._source_query = source_query

    @property
    def source_query(self) -> str:
        if self._source_query is None:
            self._source_query = sqlDB.load_source_query()
        return self._source_query

    def fetch_source_window(self, from_date: date, to_date: date) -> List[Dict[str, Any]]:
        """Flight legs whose sector date falls inside the window."""
        logger.info(f"Executing source import query from {from_date} to {to_date}")
        try:
            frame = self.db.fetch_dataframe(self.source_query, (from_date, to_date))
        except DatabaseError as e:
            logger.error(f"Failed to execute source import query from {from_date} to {to_date}: {e}")
            raise
        logger.info(f"Source import query returned {len(frame)} rows")
        return _records(frame)

    def fetch_crew_counts(self, from_date: date, to_date: date) -> List[Dict[str, Any]]:
        """Crew members rostered per (date, flight, departure station)."""
        logger.info(f"Executing crew count query from {from_date} to {to_date}")
        try:
            frame = self.db.fetch_dataframe(sqlDB.crew_count_query(), (from_date, to_date))
        except DatabaseError as e:
            logger.error(f"Error retrieving crew counts from {from_date} to {to_date}: {e}")
            raise
        logger.info(f"Crew count query returned {len(frame)} entries")
        return _records(frame)


class FlightRepository:
    """Repository for the target flight table."""

    def __init__(self, db_connection: Optional[DatabaseConnection] = None):
        self.db = db_connection or DatabaseConnection()
        self.table = config.MAIN_TABLE
        self.staging_table = config.STAGING_TABLE

    def ensure_schema(self) -> None:
        """Create the flight table if the database does not have it yet."""
        self.db.execute_query(sqlDB.create_flight_table(self.table))

    def fetch_target_window(self, from_date: date, to_date: date) -> List[Dict[str, Any]]:
        """Stored flight rows whose sector date falls inside the window."""
        logger.info(f"Retrieving target data range from {from_date} to {to_date}")
        try:
            frame = self.db.fetch_dataframe(sqlDB.target_window_query(self.table), (from_date, to_date))
        except DatabaseError as e:
            logger.error(f"Failed to retrieve target data range from {from_date} to {to_date}: {e}")
            raise
        logger.info(f"Target data range retrieval returned {len(frame)} rows")
        return _records(frame)

    def bulk_insert(self, records: List[FlightRecord]) -> None:
        """Load every record into the flight table with a single statement."""
        if not records:
            return

        frame = _records_frame(records)
        with self.db.get_connection() as conn:
            try:
                logger.info(f"Bulk inserting {len(records)} rows into {self.table}")
                conn.register("insert_batch", frame)
                conn.execute(sqlDB.insert_from_frame(self.table, "insert_batch"))
                conn.unregister("insert_batch")
                logger.info("Bulk insert completed")
            except duckdb.Error as e:
                logger.error(f"Bulk insert failed: {e}")
                raise DatabaseError(f"Bulk insert failed: {e}") from e

    def bulk_update_via_merge(self, records: List[FlightRecord]) -> int:
        """Stage the records in a temp table and apply them with one set-based update.

        Both steps run in one transaction; a failure in either leaves the
        flight table untouched. Returns the number of rows updated.
        """
        if not records:
            return 0

        frame = _records_frame(records)
        with self.db.get_connection() as conn:
            conn.begin()
            try:
                conn.execute(sqlDB.create_flight_table(self.staging_table, temporary=True))

                conn.register("update_batch", frame)
                conn.execute(sqlDB.insert_from_frame(self.staging_table, "update_batch"))
                conn.unregister("update_batch")

                logger.info(f"Executing bulk update merge for {len(records)} rows")
                result = conn.execute(sqlDB.merge_update(self.table, self.staging_table)).fetchone()
                affected = result[0] if result else 0
                logger.info(f"Bulk update affected {affected} rows")

                conn.execute(f"DROP TABLE {self.staging_table}")
                conn.commit()
                return affected
            except duckdb.Error as e:
                conn.rollback()
                logger.error(f"Bulk update transaction failed: {e}")
                raise DatabaseError(f"Bulk update failed: {e}") from e


# Global instances
source_repo = SourceRepository()
flight_repo = FlightRepository()
