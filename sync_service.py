"""
One synchronization run: load the window from both systems, reconcile,
and write the resulting batches to the target flight table.
"""
import logging
import threading
from datetime import date, timedelta
from typing import Optional, Tuple

from config import config
from flight_processor import (
    CrewCountLookup,
    FlightProcessor,
    FlightProcessorError,
    Reconciler,
    RecordIndex,
)
from models import SyncResult

logger = logging.getLogger(__name__)


class SyncCancelled(Exception):
    """Raised between phases when the run has been asked to stop."""
    pass


def sync_window(today: Optional[date] = None,
                lookback_days: Optional[int] = None,
                lookahead_days: Optional[int] = None) -> Tuple[date, date]:
    """Return the inclusive (start, end) sector-date window for a run."""
    today = today or date.today()
    lookback = config.WINDOW_LOOKBACK_DAYS if lookback_days is None else lookback_days
    lookahead = config.WINDOW_LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days
    return today - timedelta(days=lookback), today + timedelta(days=lookahead)


class FlightSyncService:
    """Wires the repositories, processor and notifier into a single run."""

    def __init__(self, source_repo, flight_repo, notifier,
                 processor: Optional[FlightProcessor] = None):
        self.source_repo = source_repo
        self.flight_repo = flight_repo
        self.notifier = notifier
        self.processor = processor or FlightProcessor()

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], phase: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Sync cancelled before {phase}")
            raise SyncCancelled(f"Cancelled before {phase}")

    def run_once(self, cancel_event: Optional[threading.Event] = None,
                 today: Optional[date] = None) -> SyncResult:
        """Run one full sync pass.

        Fetch and write failures propagate. A row that cannot be transformed
        is reported through the notifier and ends the row loop; whatever was
        classified up to that point is still written.
        """
        from_date, to_date = sync_window(today)
        result = SyncResult(window_start=from_date, window_end=to_date)
        logger.info(f"Starting sync for range {from_date} to {to_date}")

        # 1. Source flight legs
        self._check_cancelled(cancel_event, "source fetch")
        source_rows = self.source_repo.fetch_source_window(from_date, to_date)
        result.source_rows = len(source_rows)
        logger.info(f"Loaded {result.source_rows} rows from source")

        # 2. Target rows of the same window
        self._check_cancelled(cancel_event, "target fetch")
        target_rows = self.flight_repo.fetch_target_window(from_date, to_date)
        result.target_rows = len(target_rows)
        index = RecordIndex(target_rows)
        logger.info(f"Loaded {len(index)} target records into memory")

        # 3. Crew counts
        self._check_cancelled(cancel_event, "crew count fetch")
        crew_counts = CrewCountLookup(self.source_repo.fetch_crew_counts(from_date, to_date))
        result.crew_entries = len(crew_counts)
        logger.info(f"Loaded {result.crew_entries} crew count entries")

        # 4. Transform and classify
        reconciler = Reconciler(index)
        for position, row in enumerate(source_rows, 1):
            try:
                record = self.processor.transform_row(row, crew_counts)
                if record is None:
                    result.skipped += 1
                    continue
                reconciler.classify(record)
            except FlightProcessorError as e:
                result.failure = str(e)
                logger.error(f"Stopping at source row {position}/{result.source_rows}: {e}")
                self.notifier.notify(str(e))
                break

        result.unchanged = reconciler.unchanged
        logger.info(f"Classified {len(reconciler.inserts)} inserts, {len(reconciler.updates)} updates, "
                    f"{reconciler.unchanged} unchanged, {result.skipped} skipped")

        # 5. Bulk writes, inserts first
        if reconciler.inserts:
            self._check_cancelled(cancel_event, "bulk insert")
            self.flight_repo.bulk_insert(reconciler.inserts)
            result.inserted = len(reconciler.inserts)
            result.inserted_keys = [record.key for record in reconciler.inserts]

        if reconciler.updates:
            self._check_cancelled(cancel_event, "bulk update")
            self.flight_repo.bulk_update_via_merge(reconciler.updates)
            result.updated = len(reconciler.updates)
            result.updated_keys = [record.key for record in reconciler.updates]

        logger.info(f"Sync complete: {result.summary()}")
        return result
