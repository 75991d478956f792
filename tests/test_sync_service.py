"""Tests for the sync orchestrator using in-memory collaborators."""

from __future__ import annotations

import threading
from datetime import date
from typing import Any, Dict, List

import pytest

from conftest import make_source_row
from database import DatabaseError
from flight_processor import CrewCountLookup, FlightProcessor
from sync_service import FlightSyncService, SyncCancelled, sync_window

TODAY = date(2026, 10, 19)


class FakeSourceRepo:
    def __init__(self, rows: List[Dict[str, Any]], crew: List[Dict[str, Any]] | None = None):
        self.rows = rows
        self.crew = crew or []
        self.calls: List[str] = []

    def fetch_source_window(self, from_date, to_date):
        self.calls.append(f"source {from_date} {to_date}")
        return self.rows

    def fetch_crew_counts(self, from_date, to_date):
        self.calls.append("crew")
        return self.crew


class FakeFlightRepo:
    def __init__(self, rows: List[Dict[str, Any]] | None = None, fail_insert: bool = False):
        self.rows = rows or []
        self.fail_insert = fail_insert
        self.writes: List[tuple] = []

    def fetch_target_window(self, from_date, to_date):
        return self.rows

    def bulk_insert(self, records):
        if self.fail_insert:
            raise DatabaseError("Bulk insert failed: disk full")
        self.writes.append(("insert", [record.key for record in records]))

    def bulk_update_via_merge(self, records):
        self.writes.append(("update", [record.key for record in records]))
        return len(records)


class FakeNotifier:
    def __init__(self):
        self.messages: List[str] = []

    def notify(self, message: str) -> bool:
        self.messages.append(message)
        return True


def _stored(row: Dict[str, Any], **changes: Any) -> Dict[str, Any]:
    record = FlightProcessor("XY", "KNE").transform_row(row, CrewCountLookup([]))
    stored = record.to_row()
    stored.update(changes)
    return stored


def _service(source, target, notifier=None):
    return FlightSyncService(source, target, notifier or FakeNotifier(),
                             processor=FlightProcessor("XY", "KNE"))


def test_sync_window_spans_one_day_back_two_ahead():
    assert sync_window(TODAY) == (date(2026, 10, 18), date(2026, 10, 21))
    assert sync_window(TODAY, lookback_days=3, lookahead_days=0) == (date(2026, 10, 16), TODAY)


def test_run_once_inserts_new_and_updates_changed_rows():
    new_row = make_source_row(Flight="101")
    changed_row = make_source_row(Flight="202")
    same_row = make_source_row(Flight="303")
    target = FakeFlightRepo([
        _stored(changed_row, AircraftRegNo="HZOLD"),
        _stored(same_row),
    ])
    source = FakeSourceRepo([new_row, changed_row, same_row])

    result = _service(source, target).run_once(today=TODAY)

    k1 = ("101", "RUH", date(2026, 10, 19))
    k2 = ("202", "RUH", date(2026, 10, 19))
    assert target.writes == [("insert", [k1]), ("update", [k2])]
    assert result.inserted_keys == [k1]
    assert result.updated_keys == [k2]
    assert (result.inserted, result.updated, result.unchanged) == (1, 1, 1)
    assert result.success
    assert source.calls[0] == "source 2026-10-18 2026-10-21"


def test_run_once_skips_rows_without_sector_date():
    source = FakeSourceRepo([make_source_row(SectorDate=None), make_source_row(Flight="404")])
    target = FakeFlightRepo()

    result = _service(source, target).run_once(today=TODAY)

    assert result.skipped == 1
    assert target.writes == [("insert", [("404", "RUH", date(2026, 10, 19))])]


def test_row_failure_notifies_stops_loop_and_flushes_batches():
    class Broken:
        def __str__(self):
            raise ValueError("unreadable registration")

    source = FakeSourceRepo([
        make_source_row(Flight="101"),
        make_source_row(Flight="102", Rego=Broken()),
        make_source_row(Flight="103"),
    ])
    target = FakeFlightRepo()
    notifier = FakeNotifier()

    result = _service(source, target, notifier).run_once(today=TODAY)

    assert notifier.messages == ["unreadable registration"]
    assert result.failure == "unreadable registration"
    assert not result.success
    # Rows after the failure are never processed
    assert target.writes == [("insert", [("101", "RUH", date(2026, 10, 19))])]


def test_fetch_failure_propagates():
    class FailingSource(FakeSourceRepo):
        def fetch_source_window(self, from_date, to_date):
            raise DatabaseError("Query failed: connection refused")

    target = FakeFlightRepo()
    with pytest.raises(DatabaseError):
        _service(FailingSource([]), target).run_once(today=TODAY)
    assert target.writes == []


def test_insert_failure_propagates_before_update():
    changed_row = make_source_row(Flight="202")
    target = FakeFlightRepo([_stored(changed_row, CrewCount="9")], fail_insert=True)
    source = FakeSourceRepo([make_source_row(Flight="101"), changed_row])

    with pytest.raises(DatabaseError):
        _service(source, target).run_once(today=TODAY)
    assert target.writes == []


def test_cancelled_run_does_not_start():
    source = FakeSourceRepo([make_source_row()])
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SyncCancelled):
        _service(source, FakeFlightRepo()).run_once(cancel, today=TODAY)
    assert source.calls == []


def test_cancel_between_phases_skips_writes():
    cancel = threading.Event()

    class CancellingSource(FakeSourceRepo):
        def fetch_crew_counts(self, from_date, to_date):
            cancel.set()
            return super().fetch_crew_counts(from_date, to_date)

    target = FakeFlightRepo()
    with pytest.raises(SyncCancelled):
        _service(CancellingSource([make_source_row()]), target).run_once(cancel, today=TODAY)
    assert target.writes == []


def test_crew_counts_feed_the_comparison():
    row = make_source_row(Flight="101")
    target = FakeFlightRepo([_stored(row)])
    crew = [{"SecDate": date(2026, 10, 19), "LEG_FLT": "101", "LEG_DEP": "RUH", "Cnt": 5}]

    result = _service(FakeSourceRepo([row], crew), target).run_once(today=TODAY)

    assert result.updated_keys == [("101", "RUH", date(2026, 10, 19))]
    assert result.crew_entries == 1


def test_duplicate_source_keys_are_written_once():
    first = make_source_row(Flight="101", Rego="HZ-NS1")
    second = make_source_row(Flight="101", Rego="HZ-NS9")
    target = FakeFlightRepo()

    result = _service(FakeSourceRepo([first, second]), target).run_once(today=TODAY)

    assert target.writes == [("insert", [("101", "RUH", date(2026, 10, 19))])]
    assert result.inserted == 1


def test_comparison_failure_notifies_and_flushes_earlier_rows():
    class Unreadable:
        def __str__(self):
            raise ValueError("corrupt stored registration")

    broken_row = make_source_row(Flight="202")
    target = FakeFlightRepo([_stored(broken_row, AircraftRegNo=Unreadable())])
    source = FakeSourceRepo([make_source_row(Flight="101"), broken_row, make_source_row(Flight="303")])
    notifier = FakeNotifier()

    result = _service(source, target, notifier).run_once(today=TODAY)

    assert notifier.messages == ["corrupt stored registration"]
    assert result.failure == "corrupt stored registration"
    assert target.writes == [("insert", [("101", "RUH", date(2026, 10, 19))])]
