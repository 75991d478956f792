"""
Flight processing: turning source rows into flight records and deciding
which of them must be inserted into or updated in the target table.
"""
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config import config
from models import COLUMN_MAP, TRACKED_FIELDS, FlightKey, FlightRecord
from utility import (
    remap_flight_number,
    strip_registration,
    text_or_default,
    to_sector_date,
    to_text,
    to_timestamp,
)

logger = logging.getLogger(__name__)

HUB_STATIONS = frozenset({"RUH", "DMM"})

# Directed city pairs flown within the country. New routes are added here by hand.
DOMESTIC_ROUTES = frozenset({
    ("RUH", "DMM"), ("DMM", "RUH"), ("RUH", "JED"), ("JED", "RUH"),
    ("RUH", "GIZ"), ("GIZ", "RUH"), ("RUH", "AHB"), ("AHB", "RUH"),
    ("RUH", "MED"), ("MED", "RUH"), ("DMM", "JED"), ("JED", "DMM"),
    ("YNB", "DMM"), ("DMM", "YNB"), ("RUH", "TIF"), ("TIF", "RUH"),
    ("TIF", "DMM"), ("DMM", "TIF"), ("MED", "DMM"), ("DMM", "MED"),
    ("AHB", "JED"), ("JED", "AHB"), ("JED", "ELQ"), ("ELQ", "JED"),
    ("JED", "TUU"), ("TUU", "JED"), ("AHB", "DMM"), ("DMM", "AHB"),
    ("RUH", "ELQ"), ("ELQ", "RUH"), ("RUH", "TUU"), ("TUU", "RUH"),
    ("JED", "HAS"), ("HAS", "JED"), ("RUH", "HAS"), ("HAS", "RUH"),
})

# Target-side columns trimmed before comparison
_TRIMMED_COLUMNS = ("FlightFrom", "FlightTo")

CrewKey = Tuple[Optional[date], str, str]


class FlightProcessorError(Exception):
    """Raised when a source row cannot be turned into a flight record."""
    pass


def flight_direction(origin: str) -> str:
    return "Departure" if origin in HUB_STATIONS else "Arrival"


def is_domestic(origin: str, destination: str) -> bool:
    return (origin, destination) in DOMESTIC_ROUTES


class RecordIndex:
    """Target rows of the sync window keyed by (flight number, origin, sector date)."""

    def __init__(self, rows: Iterable[Dict[str, Any]]):
        self._rows: Dict[FlightKey, Dict[str, Any]] = {}
        for row in rows:
            key = (
                to_text(row.get('FlightNumber')),
                to_text(row.get('FlightFrom')),
                to_sector_date(row.get('SectorDate')),
            )
            # First occurrence wins
            if key not in self._rows:
                self._rows[key] = row

    def get(self, key: FlightKey) -> Optional[Dict[str, Any]]:
        return self._rows.get(key)

    def __contains__(self, key: FlightKey) -> bool:
        return key in self._rows

    def __len__(self) -> int:
        return len(self._rows)


class CrewCountLookup:
    """Crew counts keyed by (date, flight code, departure station)."""

    def __init__(self, rows: Iterable[Dict[str, Any]]):
        self._counts: Dict[CrewKey, int] = {}
        for row in rows:
            key = (
                to_sector_date(row.get('SecDate')),
                to_text(row.get('LEG_FLT')),
                to_text(row.get('LEG_DEP')),
            )
            count = row.get('Cnt')
            self._counts[key] = int(count) if count is not None else 0

    def get(self, sector_date: Optional[date], flight: str, origin: str) -> int:
        return self._counts.get((sector_date, flight, origin), 0)

    def count_for(self, sector_date: Optional[date], flight: str, origin: str) -> str:
        return str(self.get(sector_date, flight, origin))

    def __len__(self) -> int:
        return len(self._counts)


class FlightProcessor:
    """Builds flight records from source rows."""

    def __init__(self, airline_iata_code: Optional[str] = None,
                 airline_icao_code: Optional[str] = None):
        self.airline_iata_code = airline_iata_code or config.AIRLINE_IATA_CODE
        self.airline_icao_code = airline_icao_code or config.AIRLINE_ICAO_CODE

    def transform_row(self, row: Dict[str, Any],
                      crew_counts: CrewCountLookup) -> Optional[FlightRecord]:
        """Turn one source row into a FlightRecord.

        Returns None when the row's sector date cannot be resolved. Any other
        problem with the row raises FlightProcessorError.
        """
        try:
            return self._build_record(row, crew_counts)
        except FlightProcessorError:
            raise
        except Exception as e:
            logger.error(f"Failed to transform source row for flight {row.get('Flight')}: {e}")
            raise FlightProcessorError(str(e)) from e

    def _build_record(self, row: Dict[str, Any],
                      crew_counts: CrewCountLookup) -> Optional[FlightRecord]:
        sector_date = to_sector_date(row.get('SectorDate'))
        if sector_date is None:
            logger.warning(
                f"Skipping flight {row.get('Flight')} from {row.get('ActFrom')}: "
                f"unparseable sector date {row.get('SectorDate')!r}")
            return None

        departure = to_timestamp(row.get('DEP'))
        arrival = to_timestamp(row.get('Arr'))
        flight_start_date = to_text(departure) if departure is not None else ""
        flight_end_date = to_text(arrival) if arrival is not None else ""
        day_of_week = departure.strftime("%A") if departure is not None else ""

        act_from = to_text(row.get('ActFrom'))
        act_to = to_text(row.get('ActTo'))
        flight_code = to_text(row.get('Flight'))
        flight_number = remap_flight_number(flight_code)
        origin = act_from.strip()
        destination = act_to.strip()

        # Crew roster is keyed by the raw flight code and the departure day
        crew_date = departure.date() if departure is not None else None
        crew_count = crew_counts.count_for(crew_date, flight_code, act_from)

        return FlightRecord(
            identifier=config.IDENTIFIER,
            flight_direction=flight_direction(act_from),
            international_domestic_indicator="Domestic" if is_domestic(act_from, act_to) else "International",
            airline_iata_code=self.airline_iata_code,
            airline_icao_code=self.airline_icao_code,
            flight_number=flight_number,
            flight_suffix=config.FLIGHT_SUFFIX,
            flight_from=origin,
            flight_to=destination,
            flight_start_date=flight_start_date,
            flight_end_date=flight_end_date,
            day_of_week=day_of_week,
            flight_type=config.FLIGHT_TYPE,
            station_iata_code=destination,
            scheduled_time_dep=flight_start_date,
            scheduled_time_arr=flight_end_date,
            act_time_dep=to_text(row.get('Start')),
            act_time_arr=to_text(row.get('Stop')),
            aircraft_reg_no=strip_registration(to_text(row.get('Rego'))),
            fleet_identifier=to_text(row.get('Make')),
            adult_count=text_or_default(row.get('ActualYClass'), "0"),
            child_count=text_or_default(row.get('ActualInfant'), "0"),
            crew_count=crew_count,
            leg_airline_iata_code=self.airline_iata_code,
            leg_airline_flight_number=self.airline_iata_code + flight_number,
            leg_scheduled_time_dep=flight_start_date,
            leg_scheduled_time_arr=flight_end_date,
            dep_delay=text_or_default(row.get('DepDelay'), ""),
            arr_delay=text_or_default(row.get('ArrDelay'), ""),
            estimated_time=to_text(row.get('EstimatedTime')),
            service_type=to_text(row.get('ServiceType')),
            schedule_code=to_text(row.get('Name')),
            operation_comments=to_text(row.get('Comment')).replace("'", ""),
            sector_date=sector_date,
        )


def changed_fields(record: FlightRecord, target_row: Dict[str, Any]) -> List[str]:
    """Names of the tracked fields whose value differs from the stored row."""
    changed = []
    for name in TRACKED_FIELDS:
        column = COLUMN_MAP[name]
        stored = to_text(target_row.get(column))
        if column in _TRIMMED_COLUMNS:
            stored = stored.strip()
        if getattr(record, name) != stored:
            changed.append(name)
    return changed


class Reconciler:
    """Sorts flight records into insert and update batches against the target index.

    Source rows that share a natural key collapse to one batch entry: the
    later row replaces the earlier one and keeps its batch position.
    """

    INSERT = "insert"
    UPDATE = "update"

    def __init__(self, index: RecordIndex):
        self.index = index
        self._inserts: Dict[FlightKey, FlightRecord] = {}
        self._updates: Dict[FlightKey, FlightRecord] = {}
        self.unchanged = 0

    @property
    def inserts(self) -> List[FlightRecord]:
        return list(self._inserts.values())

    @property
    def updates(self) -> List[FlightRecord]:
        return list(self._updates.values())

    def classify(self, record: FlightRecord, now: Optional[datetime] = None) -> Optional[str]:
        """Put the record in the matching batch and return the batch name.

        Returns None when the stored row already matches every tracked field.
        A stored row that cannot be compared raises FlightProcessorError.
        """
        try:
            return self._classify(record, now or datetime.now())
        except Exception as e:
            logger.error(f"Failed to compare flight {record.flight_number} from "
                         f"{record.flight_from} on {record.sector_date}: {e}")
            raise FlightProcessorError(str(e)) from e

    def _classify(self, record: FlightRecord, now: datetime) -> Optional[str]:
        key = record.key
        target_row = self.index.get(key)
        if target_row is None:
            if key in self._inserts:
                logger.warning(f"Duplicate source row for {key}, keeping the later one")
            self._inserts[key] = replace(
                record, last_action_time=now, last_action_code=config.INSERTED_ACTION_CODE)
            return self.INSERT

        if key in self._updates:
            logger.warning(f"Duplicate source row for {key}, keeping the later one")
        changed = changed_fields(record, target_row)
        if not changed:
            self._updates.pop(key, None)
            self.unchanged += 1
            return None

        logger.debug(f"Flight {record.flight_number} from {record.flight_from} on "
                     f"{record.sector_date} changed: {', '.join(changed)}")
        self._updates[key] = replace(
            record, last_action_time=now, last_action_code=config.UPDATED_ACTION_CODE)
        return self.UPDATE
