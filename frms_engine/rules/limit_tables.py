# rules/limit_tables.py
"""
Rule book loading and the regulatory lookup tables that are not per-window
ceilings (post-duty rest bands, minimum base turnaround bands and the
clock periods that classify a duty).

Numeric window ceilings live in limit_tables.json so a host application can
ship a different rule book without touching code.
"""

import json
import os
from datetime import datetime, time
from functools import lru_cache
from typing import Optional

from pydantic import ValidationError

from frms_engine.config import config
from frms_engine.models.schemas import DutyCeiling, FleetRules, LimitEntry, LimitTable, SignOnBand
from frms_engine.utils.logger import get_engine_logger
from frms_engine.utils.exceptions import LimitTableException

logger = get_engine_logger("limit_tables")

DEFAULT_LIMIT_TABLE_FILE = os.path.join(os.path.dirname(__file__), "limit_tables.json")

# Short-haul proportional rest (FD18.1 / FD28.1)
PROPORTIONAL_REST = {
    "threshold_duty_hours": 12.0,
    "base_after_threshold_hours": 12.0,
    "excess_multiplier": 1.5,
    "augmented_long_duty_hours": 16.0,
    "augmented_long_duty_rest_hours": 24.0,
}

# Long-haul 2-pilot post-duty rest (FD10.1), evaluated top to bottom
TWO_PILOT_INCREMENTAL_REST = {
    "extreme_duty_hours": 12.0,
    "extreme_flight_hours": 9.0,
    "extreme_rest_hours": 24.0,
    "extended_duty_hours": 11.0,
    "extended_flight_hours": 8.0,
    "minutes_per_extra_hour": 15,
}

# Long-haul augmented post-duty rest: (duty hours above, rest hours)
AUGMENTED_REST_BANDS = (
    (18.0, 27.0),
    (16.0, 24.0),
    (0.0, 12.0),
)

# Minimum base turnaround by days away: (first day, last day, hours, local nights)
BASE_TURNAROUND_DAY_BANDS = (
    (1, 1, 12.0, 0),
    (2, 4, None, 1),
    (5, 8, None, 2),
    (9, 12, None, 3),
    (13, None, None, 4),
)

# Minimum base turnaround by credited flight hours: (hours above, local nights)
BASE_TURNAROUND_CREDIT_BANDS = (
    (60.0, 4),
    (40.0, 3),
    (20.0, 2),
)

BASE_TURNAROUND_LONG_DUTY_HOURS = 18.0

LOCAL_NIGHT_START_HOUR = 22
LOCAL_NIGHT_END_HOUR = 6

# Sign-on bands for the single-duty ceilings: (from, until, band); anything else is night
SIGN_ON_BANDS = (
    (time(5, 0), time(15, 0), SignOnBand.EARLY),
    (time(15, 0), time(20, 0), SignOnBand.AFTERNOON),
)

# Sign-on before this hour counts as an early start
EARLY_START_BEFORE_HOUR = 7

# Late night: more than half an hour between 23:00 and 05:30
LATE_NIGHT_PERIOD = (time(23, 0), time(5, 30))
LATE_NIGHT_MIN_HOURS = 0.5

# Back of clock: at least two hours between 01:00 and 05:00
BACK_OF_CLOCK_PERIOD = (time(1, 0), time(5, 0))
BACK_OF_CLOCK_MIN_HOURS = 2.0


def sign_on_band(sign_on: datetime) -> SignOnBand:
    """Band of a local sign-on time"""
    clock = sign_on.time()
    for start, end, band in SIGN_ON_BANDS:
        if start <= clock < end:
            return band
    return SignOnBand.NIGHT


def load_limit_table(path: Optional[str] = None) -> LimitTable:
    """
    Load a rule book from JSON.

    Args:
        path (str): File to read; defaults to the packaged rule book

    Returns:
        LimitTable: validated, immutable table

    Raises:
        LimitTableException: when the file is missing or malformed
    """
    path = path or DEFAULT_LIMIT_TABLE_FILE
    try:
        with open(path, "r") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read limit table", path=path, error=str(e))
        raise LimitTableException(
            f"Failed to read limit table: {str(e)}",
            error_code="LIMIT_TABLE_UNREADABLE",
            context={"path": path}
        )

    try:
        entries = tuple(LimitEntry(**row) for row in raw.get("windows", []))
        rules = [FleetRules(**row) for row in raw.get("fleets", [])]
        ceilings = tuple(DutyCeiling(**row) for row in raw.get("duty_ceilings", []))
        table = LimitTable(entries=entries, fleets={r.fleet: r for r in rules}, ceilings=ceilings)
    except (ValidationError, TypeError, AttributeError) as e:
        logger.error("Invalid limit table", path=path, error=str(e))
        raise LimitTableException(
            f"Invalid limit table: {str(e)}",
            error_code="LIMIT_TABLE_INVALID",
            context={"path": path}
        )

    logger.info(
        "Limit table loaded",
        path=path,
        windows=len(table.entries),
        fleets=len(table.fleets),
        ceilings=len(table.ceilings)
    )
    return table


@lru_cache(maxsize=1)
def default_limit_table() -> LimitTable:
    """The configured rule book, loaded once"""
    return load_limit_table(config.engine.limit_table_file)
