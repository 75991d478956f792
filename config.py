"""
Configuration for the flight sync job.
Values come from environment variables, optionally loaded from a .env file.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent
load_dotenv(PROJECT_ROOT / ".env")


def _int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    return int(value) if value else default


class Config:
    """Runtime settings shared by the repositories, processor and host loop."""

    def __init__(self):
        # Databases
        self.SOURCE_DATABASE_PATH = os.getenv(
            "SOURCE_DATABASE_PATH", str(PROJECT_ROOT / "data" / "source.duckdb"))
        self.TARGET_DATABASE_PATH = os.getenv(
            "TARGET_DATABASE_PATH", str(PROJECT_ROOT / "data" / "target.duckdb"))

        # Tables
        self.MAIN_TABLE = os.getenv("FLIGHT_TABLE", "FlightTable")
        self.STAGING_TABLE = os.getenv("STAGING_TABLE", "FlightTableUpdates")
        self.SOURCE_TABLE = os.getenv("SOURCE_TABLE", "flight_legs")
        self.ROSTER_TABLE = os.getenv("ROSTER_TABLE", "roster")
        self.SOURCE_QUERY_PATH: Optional[str] = os.getenv("SOURCE_QUERY_PATH") or None

        # Sync window and schedule
        self.WINDOW_LOOKBACK_DAYS = _int_env("WINDOW_LOOKBACK_DAYS", 1)
        self.WINDOW_LOOKAHEAD_DAYS = _int_env("WINDOW_LOOKAHEAD_DAYS", 2)
        self.INTERVAL_MINUTES = _int_env("INTERVAL_MINUTES", 30)

        # Record values
        self.TIMESTAMP_FORMAT = os.getenv("TIMESTAMP_FORMAT", "%Y-%m-%d %H:%M:%S")
        self.AIRLINE_IATA_CODE = os.getenv("AIRLINE_IATA_CODE", "XY")
        self.AIRLINE_ICAO_CODE = os.getenv("AIRLINE_ICAO_CODE", "KNE")
        self.IDENTIFIER = "Scheduled"
        self.FLIGHT_SUFFIX = "F"
        self.FLIGHT_TYPE = "Passenger"
        self.INSERTED_ACTION_CODE = "Add"
        self.UPDATED_ACTION_CODE = "Update"

        # Notification
        self.SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
        self.SMTP_PORT = _int_env("SMTP_PORT", 25)
        self.SMTP_FROM = os.getenv("SMTP_FROM", "no-reply@localhost")
        self.SMTP_TO = os.getenv("SMTP_TO", "dev-team@localhost")
        self.SMTP_SUBJECT = os.getenv("SMTP_SUBJECT", "Flight Sync - Error notification")

        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_FILE: Optional[str] = os.getenv("LOG_FILE") or None

    def get_database_path(self) -> str:
        """Path of the target database, the one this job writes to."""
        return self.TARGET_DATABASE_PATH

    def get_source_database_path(self) -> str:
        return self.SOURCE_DATABASE_PATH


config = Config()
