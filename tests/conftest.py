"""Shared fixtures for the flight sync tests."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict

import pytest

from flight_processor import CrewCountLookup, FlightProcessor


def make_source_row(**overrides: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "Flight": "101",
        "ActFrom": "RUH",
        "ActTo": "DMM",
        "Make": "A320",
        "Rego": "HZ-NS1",
        "DEP": datetime(2026, 10, 19, 8, 30),
        "Start": datetime(2026, 10, 19, 8, 40),
        "DepDelay": 10,
        "Arr": datetime(2026, 10, 19, 9, 45),
        "Stop": datetime(2026, 10, 19, 9, 50),
        "ArrDelay": 5,
        "ActualYClass": 150,
        "ActualInfant": 0,
        "EstimatedTime": 75,
        "ServiceType": "J",
        "Name": "WINTER 2026",
        "Comment": "Crew's change",
        "SectorDate": date(2026, 10, 19),
    }
    row.update(overrides)
    return row


@pytest.fixture
def processor() -> FlightProcessor:
    return FlightProcessor(airline_iata_code="XY", airline_icao_code="KNE")


@pytest.fixture
def crew_counts() -> CrewCountLookup:
    return CrewCountLookup([
        {"SecDate": date(2026, 10, 19), "LEG_FLT": "101", "LEG_DEP": "RUH", "Cnt": 6},
    ])


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 19, 12, 0, 0)
