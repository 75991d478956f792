#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Value helpers for turning raw database values into the text and date
forms stored in the flight table.
"""
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

from config import config

REGISTRATION_SEPARATORS = ('-', '=', ' ', '_')


def is_missing(value: Any) -> bool:
    """True for None, NaN, NaT and pandas NA."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # pd.isna returns an array for list-like values
        return False


def to_text(value: Any, timestamp_format: Optional[str] = None) -> str:
    """Render a raw value as the string the flight table stores."""
    if is_missing(value):
        return ""
    if isinstance(value, datetime):
        return value.strftime(timestamp_format or config.TIMESTAMP_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if hasattr(value, 'item') and not isinstance(value, str):
        # numpy scalars
        return to_text(value.item(), timestamp_format)
    return str(value)


def to_timestamp(value: Any) -> Optional[datetime]:
    """Parse a raw value into a datetime, or None when it cannot be parsed."""
    if is_missing(value):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    parsed = pd.to_datetime(value, errors="coerce")
    if is_missing(parsed):
        return None
    return parsed.to_pydatetime()


def to_sector_date(value: Any) -> Optional[date]:
    """Reduce a raw date or timestamp value to its calendar date."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = to_timestamp(value)
    return parsed.date() if parsed is not None else None


def strip_registration(registration: str) -> str:
    """Remove separator characters from an aircraft registration."""
    for separator in REGISTRATION_SEPARATORS:
        registration = registration.replace(separator, "")
    return registration


def remap_flight_number(flight_code: str) -> str:
    """Map a sub-leg flight code such as '123.4' onto the numeric form '11234'.

    Codes containing a '.' lose the character right before their last
    character and gain a leading '1'. Other codes pass through unchanged.
    """
    if "." not in flight_code:
        return flight_code
    return "1" + flight_code[:-2] + flight_code[-1:]


def text_or_default(value: Any, default: str) -> str:
    text = to_text(value)
    return text if len(text) != 0 else default
