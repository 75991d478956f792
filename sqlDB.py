#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SQL text used by the repositories.

The source window query can be replaced by a file (SOURCE_QUERY_PATH) so
the extraction logic can follow the source schema without a code change.
It must accept two positional parameters, window start and window end,
and return the columns listed in SOURCE_COLUMNS.
"""
import logging
from pathlib import Path
from typing import Optional

from config import config
from models import FLIGHT_TABLE_COLUMNS, MERGE_COLUMNS

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = [
    'Flight', 'ActFrom', 'ActTo', 'Make', 'Rego', 'DEP', 'Start', 'DepDelay',
    'Arr', 'Stop', 'ArrDelay', 'ActualYClass', 'ActualInfant', 'EstimatedTime',
    'ServiceType', 'Name', 'Comment', 'SectorDate',
]

CREW_COUNT_COLUMNS = ['SecDate', 'LEG_FLT', 'LEG_DEP', 'Cnt']

# Column types of the flight table; everything not listed is text
_COLUMN_TYPES = {
    'OperationComments': 'VARCHAR',
    'SectorDate': 'DATE',
    'LastActionTime': 'TIMESTAMP',
}


def source_window_query(table: Optional[str] = None) -> str:
    """Default extraction of flight legs between two dates from the source system."""
    table = table or config.SOURCE_TABLE
    return f"""
        SELECT
            flt AS Flight,
            TRIM(dep) AS ActFrom,
            TRIM(arr) AS ActTo,
            TRIM(actype) AS Make,
            reg AS Rego,
            std AS DEP,
            blof AS Start,
            DATE_DIFF('minute', std, blof) AS DepDelay,
            sta AS Arr,
            blon AS Stop,
            DATE_DIFF('minute', sta, blon) AS ArrDelay,
            COALESCE(pax_y, 0) AS ActualYClass,
            0 AS ActualInfant,
            CASE
                WHEN DATE_DIFF('minute', std, sta) < 0
                THEN DATE_DIFF('minute', std, sta) + 1440
                ELSE DATE_DIFF('minute', std, sta)
            END AS EstimatedTime,
            service_type AS ServiceType,
            schedule_name AS Name,
            TRIM(COALESCE(comments, '')) AS Comment,
            CAST(leg_day AS DATE) AS SectorDate
        FROM {table}
        WHERE CAST(leg_day AS DATE) >= ? AND CAST(leg_day AS DATE) <= ?
        ORDER BY std, flt
    """


def load_source_query(path: Optional[str] = None) -> str:
    """Read the source window query from a file, falling back to the built-in one."""
    path = path or config.SOURCE_QUERY_PATH
    if not path:
        return source_window_query()
    try:
        query = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to load source query from {path}: {e}")
        raise
    logger.debug(f"Loaded source query from {path}")
    return query


def crew_count_query(table: Optional[str] = None) -> str:
    table = table or config.ROSTER_TABLE
    return f"""
        SELECT
            CAST(leg_day AS DATE) AS SecDate,
            leg_flt AS LEG_FLT,
            leg_dep AS LEG_DEP,
            COUNT(*) AS Cnt
        FROM {table}
        WHERE CAST(leg_day AS DATE) >= ? AND CAST(leg_day AS DATE) <= ?
        GROUP BY CAST(leg_day AS DATE), leg_flt, leg_dep
    """


def target_window_query(table: Optional[str] = None) -> str:
    """Target rows of the window, key columns plus every compared column."""
    table = table or config.MAIN_TABLE
    columns = ['FlightNumber', 'FlightFrom', 'SectorDate'] + [
        column for column in MERGE_COLUMNS if column not in ('LastActionTime', 'LastActionCode')
    ]
    return f"""
        SELECT {', '.join(columns)}
        FROM {table}
        WHERE SectorDate >= ? AND SectorDate <= ?
    """


def create_flight_table(table: str, temporary: bool = False) -> str:
    column_defs = ",\n            ".join(
        f"{column} {_COLUMN_TYPES.get(column, 'VARCHAR(50)')}" for column in FLIGHT_TABLE_COLUMNS
    )
    kind = "TEMP TABLE" if temporary else "TABLE IF NOT EXISTS"
    return f"""
        CREATE {kind} {table} (
            {column_defs}
        )
    """


def insert_from_frame(table: str, frame_name: str) -> str:
    """Copy every row of a registered DataFrame into a table with the flight shape."""
    select_list = ", ".join(_cast(column) for column in FLIGHT_TABLE_COLUMNS)
    return f"""
        INSERT INTO {table} ({', '.join(FLIGHT_TABLE_COLUMNS)})
        SELECT {select_list} FROM {frame_name}
    """


def merge_update(table: Optional[str] = None, staging: Optional[str] = None) -> str:
    """Set-based update of the flight table from the staging table."""
    table = table or config.MAIN_TABLE
    staging = staging or config.STAGING_TABLE
    assignments = ",\n            ".join(f"{column} = S.{column}" for column in MERGE_COLUMNS)
    return f"""
        UPDATE {table} AS T
        SET
            {assignments}
        FROM {staging} AS S
        WHERE T.FlightNumber = S.FlightNumber
          AND T.SectorDate = S.SectorDate
          AND T.FlightFrom = S.FlightFrom
    """


def _cast(column: str) -> str:
    column_type = _COLUMN_TYPES.get(column)
    if column_type in ('DATE', 'TIMESTAMP'):
        return f"CAST({column} AS {column_type}) AS {column}"
    return column
