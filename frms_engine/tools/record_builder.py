# tools/record_builder.py
"""
Turns logbook sector rows into FlightDutyRecord values and merges sectors
flown in one sign-on into duty periods.
"""
import math
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from frms_engine.models.schemas import FleetTag, FlightDutyRecord, FRMSConfiguration, LimitTable
from frms_engine.rules.limit_tables import default_limit_table
from frms_engine.utils.exceptions import RecordParseException
from frms_engine.utils.logger import get_engine_logger

logger = get_engine_logger("record_builder")

DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d")
DEFAULT_SIGN_ON_MINUTES = 60
DEFAULT_SIGN_OFF_MINUTES = {
    FleetTag.SHORT_HAUL: 15,
    FleetTag.LONG_HAUL: 30,
}
MAX_SECTOR_GAP_HOURS = 3.0
# An OUT this far before STD on the clock is a delay past midnight, not an early push
DELAYED_PAST_MIDNIGHT_HOURS = 12
# A sector signing on before this hour still belongs to the previous day's duty
DUTY_DAY_CUTOFF_HOUR = 6

TRUE_VALUES = {"true", "yes", "y", "1"}


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def parse_date(value: Any) -> Optional[date]:
    """dd/mm/YYYY or ISO date; None when missing or unparseable"""
    if _blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_clock(value: Any) -> Optional[time]:
    """
    HHMM or HH:MM clock time.

    Raises:
        RecordParseException: for a value that is present but not a time
    """
    if _blank(value):
        return None
    text = str(value).strip().replace(":", "")
    if text.endswith(".0"):
        text = text[:-2]
    if not text.isdigit() or len(text) > 4:
        raise RecordParseException(f"Invalid time value: {value}", error_code="INVALID_TIME")
    text = text.zfill(4)
    hours, minutes = int(text[:2]), int(text[2:])
    if hours > 23 or minutes > 59:
        raise RecordParseException(f"Invalid time value: {value}", error_code="INVALID_TIME")
    return time(hours, minutes)


def _hours(value: Any) -> float:
    if _blank(value):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise RecordParseException(f"Invalid hours value: {value}", error_code="INVALID_HOURS")


def _flag(value: Any) -> bool:
    if _blank(value):
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def _fleet(value: Any, default: Optional[FleetTag]) -> Optional[FleetTag]:
    if _blank(value):
        return default
    try:
        return FleetTag(str(value).strip())
    except ValueError:
        raise RecordParseException(f"Unknown fleet: {value}", error_code="UNKNOWN_FLEET")


def _text(value: Any) -> Optional[str]:
    return None if _blank(value) else str(value).strip()


def _after(day: date, clock: time, reference: Optional[datetime] = None) -> datetime:
    """Combine day and clock, rolling to the next day when earlier than reference"""
    moment = datetime.combine(day, clock)
    if reference is not None and moment < reference:
        moment += timedelta(days=1)
    return moment


def _sign_on_minutes(fleet: Optional[FleetTag], configuration: FRMSConfiguration,
                     limit_table: LimitTable) -> int:
    if configuration.sign_on_minutes_before_std is not None:
        return configuration.sign_on_minutes_before_std
    rules = limit_table.rules_for(fleet) if fleet else None
    return rules.sign_on_minutes_before_std if rules else DEFAULT_SIGN_ON_MINUTES


def _sign_off_minutes(fleet: Optional[FleetTag], configuration: FRMSConfiguration,
                      limit_table: LimitTable) -> int:
    if configuration.sign_off_minutes_after_in is not None:
        return configuration.sign_off_minutes_after_in
    rules = limit_table.rules_for(fleet) if fleet else None
    if rules:
        return rules.sign_off_minutes_after_in
    return DEFAULT_SIGN_OFF_MINUTES.get(fleet, DEFAULT_SIGN_OFF_MINUTES[FleetTag.SHORT_HAUL])


def build_record(row: Dict[str, Any], configuration: FRMSConfiguration,
                 limit_table: Optional[LimitTable] = None) -> Optional[FlightDutyRecord]:
    """
    Build one duty record from a logbook sector row.

    Args:
        row (dict): Sector columns (date, out_time, in_time, std, sta, block_time, ...)
        configuration (FRMSConfiguration): Pilot settings and report/release overrides
        limit_table (LimitTable): Rule book for per-fleet report/release minutes

    Returns:
        FlightDutyRecord, or None for a non-positioning sector with no flight time

    Raises:
        RecordParseException: when the row cannot form a valid record
    """
    table = limit_table or default_limit_table()
    fleet = _fleet(row.get("fleet"), configuration.fleet)
    is_positioning = _flag(row.get("is_positioning"))

    block = _hours(row.get("block_time"))
    sim = _hours(row.get("sim_time"))
    flight_time = block if block > 0 else sim
    if flight_time <= 0 and not is_positioning:
        return None

    day = parse_date(row.get("date"))
    out_time = parse_clock(row.get("out_time"))
    in_time = parse_clock(row.get("in_time"))
    std = parse_clock(row.get("std"))
    sta = parse_clock(row.get("sta"))

    sign_on = timedelta(minutes=_sign_on_minutes(fleet, configuration, table))
    sign_off = timedelta(minutes=_sign_off_minutes(fleet, configuration, table))

    times = {}
    if day is not None and out_time is not None and in_time is not None:
        departure = _after(day, std or out_time)
        off_blocks = _after(day, out_time)
        if off_blocks < departure - timedelta(hours=DELAYED_PAST_MIDNIGHT_HOURS):
            off_blocks += timedelta(days=1)
        arrival = _after(day, in_time, off_blocks)
        times["duty_start"] = departure - sign_on
        times["duty_end"] = arrival + sign_off
    elif day is not None and std is not None:
        departure = _after(day, std)
        times["scheduled_start"] = departure - sign_on
        if sta is not None:
            times["scheduled_end"] = _after(day, sta, departure) + sign_off
        else:
            times["scheduled_end"] = times["scheduled_start"] + timedelta(hours=flight_time) + sign_off

    crew = row.get("crew_complement")
    try:
        return FlightDutyRecord(
            record_id=_text(row.get("id")),
            date=day,
            flight_time=flight_time,
            fleet=fleet,
            is_positioning=is_positioning,
            origin=_text(row.get("from_airport")),
            destination=_text(row.get("to_airport")),
            crew_complement=2 if _blank(crew) else int(crew),
            **times
        )
    except (ValidationError, ValueError) as e:
        raise RecordParseException(
            f"Invalid duty record: {str(e)}",
            error_code="INVALID_RECORD",
            context={"id": _text(row.get("id"))}
        )


def build_records(rows: Iterable[Dict[str, Any]], configuration: FRMSConfiguration,
                  limit_table: Optional[LimitTable] = None) -> Tuple[List[FlightDutyRecord], int]:
    """
    Build records from many sector rows.

    Returns:
        tuple: (records, number of rows dropped)
    """
    table = limit_table or default_limit_table()
    records = []
    dropped = 0
    for row in rows:
        try:
            record = build_record(row, configuration, table)
        except RecordParseException as e:
            logger.warning("Logbook row rejected", id=_text(row.get("id")), error=e.message, error_code=e.error_code)
            dropped += 1
            continue
        if record is None:
            dropped += 1
            continue
        records.append(record)

    logger.log_records_skipped(dropped, "no flight time or invalid sector")
    return records, dropped


def records_from_frame(df: pd.DataFrame, configuration: FRMSConfiguration,
                       limit_table: Optional[LimitTable] = None) -> Tuple[List[FlightDutyRecord], int]:
    """Build records from a logbook DataFrame"""
    frame = df.astype(object).where(pd.notna(df), None)
    return build_records(frame.to_dict(orient="records"), configuration, limit_table)


def read_logbook_csv(path: str, configuration: FRMSConfiguration,
                     limit_table: Optional[LimitTable] = None) -> Tuple[List[FlightDutyRecord], int]:
    """Read a logbook CSV; times are kept as text so leading zeros survive"""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return records_from_frame(df, configuration, limit_table)


def _same_duty(previous: FlightDutyRecord, following: FlightDutyRecord, max_gap_hours: float) -> bool:
    end, start = previous.resolved_end, following.resolved_start
    if end is None or start is None:
        return False
    gap = (start - end).total_seconds() / 3600
    if gap > max_gap_hours:
        return False
    cutoff = datetime.combine(end.date() + timedelta(days=1), time(DUTY_DAY_CUTOFF_HOUR), tzinfo=start.tzinfo)
    return start.date() == end.date() or start < cutoff


def _merge(group: List[FlightDutyRecord]) -> FlightDutyRecord:
    if len(group) == 1:
        return group[0]

    first, last = group[0], group[-1]
    flight_time = round(math.fsum(r.flight_time or 0.0 for r in group if not r.is_positioning), 6)
    times = {}
    if all(r.has_logged_times for r in group):
        times["duty_start"] = first.duty_start
        times["duty_end"] = max(r.duty_end for r in group)
    else:
        times["scheduled_start"] = first.resolved_start
        times["scheduled_end"] = max(r.resolved_end for r in group)

    return FlightDutyRecord(
        record_id=first.record_id,
        date=first.date,
        flight_time=flight_time,
        fleet=first.fleet,
        is_positioning=all(r.is_positioning for r in group),
        origin=first.origin,
        destination=last.destination,
        crew_complement=max(r.crew_complement for r in group),
        sectors=sum(r.sectors for r in group),
        **times
    )


def consolidate_duties(records: Iterable[FlightDutyRecord],
                       max_gap_hours: float = MAX_SECTOR_GAP_HOURS) -> List[FlightDutyRecord]:
    """
    Merge sectors flown within one sign-on into single duty periods.

    Records without times pass through unchanged. The result is ordered by
    start time, followed by the untimed records in their original order.
    """
    records = list(records)
    timed = sorted((r for r in records if r.resolved_start is not None), key=lambda r: r.resolved_start)
    untimed = [r for r in records if r.resolved_start is None]

    duties = []
    group = []
    for record in timed:
        if group and not _same_duty(group[-1], record, max_gap_hours):
            duties.append(_merge(group))
            group = []
        group.append(record)
    if group:
        duties.append(_merge(group))

    return duties + untimed
