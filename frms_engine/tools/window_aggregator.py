# tools/window_aggregator.py
import math
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Sequence, Set, Tuple, Union

from frms_engine.models.schemas import (
    CumulativeTotals, FlightDutyRecord, FRMSConfiguration, LimitTable, OperationTimeClass,
    TimeMetric, WindowKind, WindowTotals, DEFAULT_DUTY_OVERHEAD_HOURS
)
from frms_engine.rules.limit_tables import (
    BACK_OF_CLOCK_MIN_HOURS, BACK_OF_CLOCK_PERIOD, EARLY_START_BEFORE_HOUR,
    LATE_NIGHT_MIN_HOURS, LATE_NIGHT_PERIOD
)
from frms_engine.utils.logger import get_engine_logger

logger = get_engine_logger("window_aggregator")

DUTY_DAY_WINDOW_DAYS = 11
# Days-off period when the fleet has no flight_month row
DEFAULT_DAYS_OFF_WINDOW_DAYS = 28

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _dated(records: Iterable[FlightDutyRecord]) -> Tuple[List[FlightDutyRecord], int]:
    """Split out records without a usable date; returns (sorted dated records, skipped count)"""
    dated = []
    skipped = 0
    for record in records:
        if record.date is None:
            skipped += 1
        else:
            dated.append(record)
    dated.sort(key=lambda r: r.date)
    return dated, skipped


def _sum_hours(values: List[float]) -> float:
    return round(math.fsum(values), 6)


def aggregate(records: Sequence[FlightDutyRecord], as_of: DateLike, window_days: int,
              overhead_hours: float = DEFAULT_DUTY_OVERHEAD_HOURS) -> WindowTotals:
    """
    Sum flight and duty hours over a trailing, calendar-day window.

    A record is inside the window when
    as_of - window_days + 1 <= record.date <= as_of.

    Args:
        records (list): FlightDutyRecord values, any order
        as_of (date): Last day of the window
        window_days (int): Window length in calendar days
        overhead_hours (float): Report/debrief overhead for duties without times

    Returns:
        WindowTotals: flight_hours excludes positioning duties; duty_hours includes them
    """
    if window_days <= 0:
        raise ValueError("window_days must be positive")

    end = _as_date(as_of)
    start = end - timedelta(days=window_days - 1)
    dated, skipped = _dated(records)

    flight_values = []
    duty_values = []
    included = 0
    for record in dated:
        if record.date < start:
            continue
        if record.date > end:
            break
        included += 1
        if record.flight_time is not None and not record.is_positioning:
            flight_values.append(record.flight_time)
        duty = record.duty_hours(overhead_hours)
        if duty is not None:
            duty_values.append(duty)

    return WindowTotals(
        window_days=window_days,
        flight_hours=_sum_hours(flight_values),
        duty_hours=_sum_hours(duty_values),
        records_included=included,
        skipped_records=skipped
    )


def _duty_days(records: Iterable[FlightDutyRecord], as_of: date) -> List[date]:
    return sorted({r.date for r in records if r.date is not None and r.date <= as_of})


def _streak(records: Sequence[FlightDutyRecord], as_of: date) -> List[date]:
    """Current run of consecutive duty days, most recent first"""
    days = _duty_days(records, as_of)
    if not days or (as_of - days[-1]).days > 1:
        return []

    streak = [days[-1]]
    for previous in reversed(days[:-1]):
        if (streak[-1] - previous).days != 1:
            break
        streak.append(previous)
    return streak


def _leading_days(streak: List[date], flagged: Set[date]) -> int:
    count = 0
    for day in streak:
        if day not in flagged:
            break
        count += 1
    return count


def consecutive_duty_days(records: Sequence[FlightDutyRecord], as_of: DateLike) -> int:
    """
    Count consecutive calendar days with duty, walking back from the most
    recent duty day. A streak that ended more than a day before as_of is over.
    """
    return len(_streak(records, _as_date(as_of)))


def _hours_inside(start: datetime, end: datetime, period: Tuple[time, time]) -> float:
    """Hours of start-end that fall inside a daily clock period (which may span midnight)"""
    opens, closes = period
    total = 0.0
    day = start.date() - timedelta(days=1)
    while True:
        period_start = datetime.combine(day, opens, tzinfo=start.tzinfo)
        if period_start >= end:
            break
        period_end = datetime.combine(day, closes, tzinfo=start.tzinfo)
        if period_end <= period_start:
            period_end += timedelta(days=1)
        overlap = (min(end, period_end) - max(start, period_start)).total_seconds()
        if overlap > 0:
            total += overlap / 3600
        day += timedelta(days=1)
    return round(total, 6)


def classify_time(record: FlightDutyRecord) -> OperationTimeClass:
    """Day, late-night or back-of-clock, from the record's sign-on and sign-off"""
    start, end = record.resolved_start, record.resolved_end
    if start is None:
        return OperationTimeClass.DAY
    if _hours_inside(start, end, BACK_OF_CLOCK_PERIOD) >= BACK_OF_CLOCK_MIN_HOURS:
        return OperationTimeClass.BACK_OF_CLOCK
    if _hours_inside(start, end, LATE_NIGHT_PERIOD) > LATE_NIGHT_MIN_HOURS:
        return OperationTimeClass.LATE_NIGHT
    return OperationTimeClass.DAY


def is_early_start(record: FlightDutyRecord) -> bool:
    start = record.resolved_start
    return start is not None and start.hour < EARLY_START_BEFORE_HOUR


def consecutive_early_starts(records: Sequence[FlightDutyRecord], as_of: DateLike) -> int:
    """Days in the current duty streak, newest first, that each had an early sign-on"""
    end = _as_date(as_of)
    flagged = {r.date for r in records if r.date is not None and is_early_start(r)}
    return _leading_days(_streak(records, end), flagged)


def consecutive_late_nights(records: Sequence[FlightDutyRecord], as_of: DateLike) -> int:
    """Like consecutive_early_starts, for late-night and back-of-clock duties"""
    end = _as_date(as_of)
    flagged = {
        r.date for r in records
        if r.date is not None and classify_time(r) != OperationTimeClass.DAY
    }
    return _leading_days(_streak(records, end), flagged)


def duty_days_in_window(records: Sequence[FlightDutyRecord], as_of: DateLike,
                        window_days: int = DUTY_DAY_WINDOW_DAYS) -> int:
    """Distinct duty days in the trailing window"""
    end = _as_date(as_of)
    start = end - timedelta(days=window_days - 1)
    return len([d for d in _duty_days(records, end) if d >= start])


def days_off_in_window(records: Sequence[FlightDutyRecord], as_of: DateLike, window_days: int) -> int:
    """Calendar days in the trailing window with no duty"""
    return window_days - duty_days_in_window(records, as_of, window_days)


def build_totals(records: Sequence[FlightDutyRecord], limit_table: LimitTable,
                 configuration: FRMSConfiguration, as_of: DateLike) -> CumulativeTotals:
    """
    Compute every tracked window for the configured fleet.

    Each window is aggregated on its own; flight and duty windows follow
    different inclusion rules so none is derived from another.
    """
    end = _as_date(as_of)
    hours_used = {}
    window_days = {}
    skipped = 0

    for entry in limit_table.entries_for(configuration.fleet):
        totals = aggregate(records, end, entry.window_days, configuration.duty_overhead_hours)
        if entry.metric == TimeMetric.FLIGHT:
            hours_used[entry.window_kind] = totals.flight_hours
        else:
            hours_used[entry.window_kind] = totals.duty_hours
        window_days[entry.window_kind] = entry.window_days
        skipped = totals.skipped_records

    if not window_days:
        skipped = _dated(records)[1]

    logger.log_records_skipped(skipped, "missing or unparseable date")

    # Days off are counted over the fleet's flight-time period (28 or 30 days)
    period_days = window_days.get(WindowKind.FLIGHT_MONTH, DEFAULT_DAYS_OFF_WINDOW_DAYS)

    return CumulativeTotals(
        as_of=end,
        fleet=configuration.fleet,
        hours_used=hours_used,
        window_days=window_days,
        skipped_records=skipped,
        consecutive_duty_days=consecutive_duty_days(records, end),
        duty_days_in_11_days=duty_days_in_window(records, end),
        consecutive_early_starts=consecutive_early_starts(records, end),
        consecutive_late_nights=consecutive_late_nights(records, end),
        days_off=days_off_in_window(records, end, period_days),
        days_off_window_days=period_days
    )
