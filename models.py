"""
Data models and type definitions for the flight sync application.
"""
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

# (flight number, origin station, sector date)
FlightKey = Tuple[str, str, date]

# Attribute name -> column name in the target flight table, in table order
COLUMN_MAP: Dict[str, str] = {
    'identifier': 'Identifier',
    'flight_direction': 'FlightDirection',
    'international_domestic_indicator': 'InternationalDomesticIndicator',
    'airline_iata_code': 'AirlineIATACode',
    'airline_icao_code': 'AirlineICAOCode',
    'flight_number': 'FlightNumber',
    'flight_suffix': 'FlightSuffix',
    'flight_from': 'FlightFrom',
    'flight_to': 'FlightTo',
    'flight_start_date': 'FlightStartDate',
    'flight_end_date': 'FlightEndDate',
    'day_of_week': 'DayOfWeek',
    'flight_type': 'FlightType',
    'station_iata_code': 'StationIATACode',
    'scheduled_time_dep': 'ScheduledTimeDep',
    'scheduled_time_arr': 'ScheduledTimeArr',
    'act_time_dep': 'ActTimeDep',
    'act_time_arr': 'ActTimeArr',
    'aircraft_reg_no': 'AircraftRegNo',
    'fleet_identifier': 'FleetIdentifier',
    'adult_count': 'AdultCount',
    'child_count': 'ChildCount',
    'crew_count': 'CrewCount',
    'leg_airline_iata_code': 'LegAirlineIATACode',
    'leg_airline_flight_number': 'LegAirlineFlightNumber',
    'leg_scheduled_time_dep': 'LegScheduledTimeDep',
    'leg_scheduled_time_arr': 'LegScheduledTimeArr',
    'dep_delay': 'DepDelay',
    'arr_delay': 'ArrDelay',
    'estimated_time': 'EstimatedTime',
    'service_type': 'ServiceType',
    'schedule_code': 'ScheduleCode',
    'operation_comments': 'OperationComments',
    'sector_date': 'SectorDate',
    'last_action_time': 'LastActionTime',
    'last_action_code': 'LastActionCode',
}

FLIGHT_TABLE_COLUMNS: List[str] = list(COLUMN_MAP.values())

# Fields compared against the target row. Everything else is written on insert only.
TRACKED_FIELDS: List[str] = [
    'flight_from', 'flight_to', 'flight_start_date', 'flight_end_date',
    'day_of_week', 'scheduled_time_dep', 'scheduled_time_arr',
    'act_time_dep', 'act_time_arr', 'aircraft_reg_no', 'fleet_identifier',
    'adult_count', 'child_count', 'crew_count',
    'leg_scheduled_time_dep', 'leg_scheduled_time_arr', 'estimated_time',
    'dep_delay', 'arr_delay', 'service_type', 'schedule_code',
    'operation_comments',
]

# Columns overwritten by the merge update: tracked fields plus the audit pair.
# FlightFrom is part of the join and is left out.
MERGE_COLUMNS: List[str] = [
    COLUMN_MAP[name] for name in TRACKED_FIELDS if name != 'flight_from'
] + ['LastActionTime', 'LastActionCode']


@dataclass(frozen=True)
class FlightRecord:
    """Canonical flight leg as persisted in the target flight table."""
    flight_number: str
    flight_from: str
    sector_date: date
    identifier: str = ''
    flight_direction: str = ''
    international_domestic_indicator: str = ''
    airline_iata_code: str = ''
    airline_icao_code: str = ''
    flight_suffix: str = ''
    flight_to: str = ''
    flight_start_date: str = ''
    flight_end_date: str = ''
    day_of_week: str = ''
    flight_type: str = ''
    station_iata_code: str = ''
    scheduled_time_dep: str = ''
    scheduled_time_arr: str = ''
    act_time_dep: str = ''
    act_time_arr: str = ''
    aircraft_reg_no: str = ''
    fleet_identifier: str = ''
    adult_count: str = '0'
    child_count: str = '0'
    crew_count: str = '0'
    leg_airline_iata_code: str = ''
    leg_airline_flight_number: str = ''
    leg_scheduled_time_dep: str = ''
    leg_scheduled_time_arr: str = ''
    dep_delay: str = ''
    arr_delay: str = ''
    estimated_time: str = ''
    service_type: str = ''
    schedule_code: str = ''
    operation_comments: str = ''
    last_action_time: Optional[datetime] = None
    last_action_code: Optional[str] = None

    @property
    def key(self) -> FlightKey:
        return (self.flight_number, self.flight_from, self.sector_date)

    def to_row(self) -> Dict[str, Any]:
        """Return the record keyed by target table column names, in table order."""
        values = asdict(self)
        return {column: values[attr] for attr, column in COLUMN_MAP.items()}


@dataclass
class SyncResult:
    """Outcome of one sync run."""
    window_start: date
    window_end: date
    source_rows: int = 0
    target_rows: int = 0
    crew_entries: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failure: Optional[str] = None
    inserted_keys: List[FlightKey] = field(default_factory=list)
    updated_keys: List[FlightKey] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failure is None

    def summary(self) -> Dict[str, Any]:
        return {
            'window': f"{self.window_start.isoformat()}..{self.window_end.isoformat()}",
            'source_rows': self.source_rows,
            'target_rows': self.target_rows,
            'crew_entries': self.crew_entries,
            'inserted': self.inserted,
            'updated': self.updated,
            'unchanged': self.unchanged,
            'skipped': self.skipped,
            'failure': self.failure,
        }
