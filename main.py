#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Flight schedule sync application.
Keeps the target flight table in step with the operations system,
once or on a fixed interval.
"""
import argparse
import logging
import signal
import sys
import threading
from typing import List, NoReturn, Optional

from config import config
from database import DatabaseError, flight_repo, source_repo
from logging_config import setup_logging
from notifier import email_notifier
from sync_service import FlightSyncService, SyncCancelled

logger = logging.getLogger(__name__)


def build_service() -> FlightSyncService:
    """Wire the global repositories and make sure the flight table exists."""
    flight_repo.ensure_schema()
    return FlightSyncService(source_repo, flight_repo, email_notifier)


def run_forever(service: FlightSyncService, interval_minutes: int,
                stop_event: threading.Event) -> None:
    """
    Run the sync repeatedly until stop_event is set.
    Each run finishes before the wait for the next one starts, so runs never overlap.
    A failed run is logged and notified; the next run goes ahead as scheduled.
    """
    logger.info(f"Sync worker running with interval {interval_minutes} minutes")

    while not stop_event.is_set():
        logger.info("Starting sync process")
        try:
            service.run_once(stop_event)
        except SyncCancelled:
            logger.info("Sync process cancelled")
            break
        except Exception as e:
            logger.exception("Error in sync process")
            service.notifier.notify(f"Error in process: {e}")

        logger.info("Sync process completed")
        stop_event.wait(interval_minutes * 60)

    logger.info("Sync worker stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Flight schedule sync")
    parser.add_argument("--once", action="store_true", help="Run a single sync pass and exit")
    parser.add_argument("--interval-minutes", type=int, default=config.INTERVAL_MINUTES,
                        help="Delay between sync runs")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level")
    return parser


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _stop(signum, frame):
        logger.info(f"Received signal {signum}, stopping after the current phase")
        stop_event.set()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """
    Main entry point for the flight sync application.
    """
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level, log_file=config.LOG_FILE)

    logger.info("Starting Flight Sync Application")
    try:
        service = build_service()
    except DatabaseError as e:
        logger.error(f"Database error: {e}")
        email_notifier.notify(f"Error in process: {e}")
        sys.exit(1)
    stop_event = threading.Event()

    try:
        if args.once:
            result = service.run_once(stop_event)
            logger.info("Application completed successfully")
            sys.exit(0 if result.success else 1)

        _install_signal_handlers(stop_event)
        run_forever(service, args.interval_minutes, stop_event)
        sys.exit(0)

    except (KeyboardInterrupt, SyncCancelled):
        logger.info("Application interrupted by user")
        sys.exit(130)
    except DatabaseError as e:
        logger.error(f"Database error: {e}")
        service.notifier.notify(f"Error in process: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        service.notifier.notify(f"Error in process: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
