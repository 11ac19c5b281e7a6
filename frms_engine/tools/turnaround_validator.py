# tools/turnaround_validator.py
import math
from datetime import datetime, time, timedelta
from typing import List, Optional, Sequence

from frms_engine.models.schemas import (
    BaseTurnaroundRequirement, ComplianceStatus, FleetTag, FlightDutyRecord,
    FRMSConfiguration, LimitTable, TurnaroundAssessment, DEFAULT_DUTY_OVERHEAD_HOURS
)
from frms_engine.rules.limit_tables import (
    BASE_TURNAROUND_CREDIT_BANDS, BASE_TURNAROUND_DAY_BANDS, BASE_TURNAROUND_LONG_DUTY_HOURS,
    LOCAL_NIGHT_END_HOUR, LOCAL_NIGHT_START_HOUR, default_limit_table
)
from frms_engine.utils.logger import get_engine_logger

logger = get_engine_logger("turnaround_validator")


def minimum_base_turnaround(days_away: int, credited_flight_hours: float,
                            had_duty_over_18_hours: bool = False) -> BaseTurnaroundRequirement:
    """
    Minimum rest at home base after a trip.

    Days away set the base requirement; credited flight hours can raise the
    number of local nights, and a duty longer than 18 hours adds one more.
    """
    min_hours = None
    nights = 0
    reasons = []

    for first, last, hours, band_nights in BASE_TURNAROUND_DAY_BANDS:
        if days_away >= first and (last is None or days_away <= last):
            min_hours = hours
            nights = band_nights
            if hours is not None:
                reasons.append(f"{days_away} day trip: {hours:.0f} hours")
            else:
                reasons.append(f"{days_away} day trip: {band_nights} local night(s)")
            break

    for above, band_nights in BASE_TURNAROUND_CREDIT_BANDS:
        if credited_flight_hours > above:
            if band_nights > nights:
                nights = band_nights
                reasons.append(f"{credited_flight_hours:.1f} credited hours: {band_nights} local nights")
            min_hours = None
            break

    if had_duty_over_18_hours:
        nights += 1
        min_hours = None
        reasons.append(f"Duty over {BASE_TURNAROUND_LONG_DUTY_HOURS:.0f} hours: one additional local night")

    return BaseTurnaroundRequirement(
        days_away=days_away,
        credited_flight_hours=credited_flight_hours,
        min_hours=min_hours,
        local_nights_required=nights,
        reason="; ".join(reasons)
    )


def count_local_nights(start: datetime, end: datetime) -> int:
    """Complete 22:00-06:00 periods between start and end"""
    if end <= start:
        return 0

    night_start = datetime.combine(start.date(), time(LOCAL_NIGHT_START_HOUR), tzinfo=start.tzinfo)
    if night_start < start:
        night_start += timedelta(days=1)
    # A night that began the previous evening is only partly inside the rest
    night_length = timedelta(hours=24 - LOCAL_NIGHT_START_HOUR + LOCAL_NIGHT_END_HOUR)

    count = 0
    while night_start + night_length <= end:
        count += 1
        night_start += timedelta(days=1)
    return count


def _touches_base(duty: FlightDutyRecord, home_base: str) -> bool:
    return duty.origin == home_base or duty.destination == home_base


def _trip_before(timed: List[FlightDutyRecord], arrival_index: int, home_base: str,
                 overhead_hours: float) -> BaseTurnaroundRequirement:
    """Requirement for the trip that ended with timed[arrival_index]"""
    start_index = arrival_index
    for i in range(arrival_index, -1, -1):
        if timed[i].origin == home_base:
            start_index = i
            break

    trip = timed[start_index:arrival_index + 1]
    first_day = trip[0].resolved_start.date()
    last_day = trip[-1].resolved_end.date()
    days_away = (last_day - first_day).days + 1
    credited = round(math.fsum(d.flight_time or 0.0 for d in trip if not d.is_positioning), 6)
    long_duty = any((d.duty_hours(overhead_hours) or 0.0) > BASE_TURNAROUND_LONG_DUTY_HOURS for d in trip)
    return minimum_base_turnaround(days_away, credited, long_duty)


def assess_turnaround(recent_duties: Sequence[FlightDutyRecord], home_base: str, fleet: FleetTag,
                      limit_table: Optional[LimitTable] = None,
                      configuration: Optional[FRMSConfiguration] = None) -> TurnaroundAssessment:
    """
    Check the most recent rest period at home base.

    Args:
        recent_duties (list): FlightDutyRecord values, any order
        home_base (str): Airport code of the pilot's base
        fleet (FleetTag): Fleet whose rules apply
        limit_table (LimitTable): Rule book; the configured default when None
        configuration (FRMSConfiguration): Optional overrides

    Returns:
        TurnaroundAssessment
    """
    table = limit_table or default_limit_table()
    rules = table.rules_for(fleet)
    home_base = home_base.strip().upper()

    # Only the long-haul group carries a turnaround rule; overrides never enable it elsewhere
    if rules is None or not rules.long_haul:
        return TurnaroundAssessment(
            status=ComplianceStatus.compliant(),
            reason="No home-base turnaround rule for this fleet"
        )

    configured_min = configuration.min_turnaround_hours if configuration else None
    if rules.min_turnaround_hours is None and configured_min is None:
        return TurnaroundAssessment(
            status=ComplianceStatus.compliant(),
            reason="No home-base turnaround minimum configured"
        )

    minimum = configured_min if configured_min is not None else rules.min_turnaround_hours
    margin = rules.turnaround_warning_margin_hours
    if configuration is not None and configuration.turnaround_warning_margin_hours is not None:
        margin = configuration.turnaround_warning_margin_hours
    overhead = configuration.duty_overhead_hours if configuration else DEFAULT_DUTY_OVERHEAD_HOURS

    timed = sorted(
        (d for d in recent_duties if d.resolved_start is not None),
        key=lambda d: d.resolved_start
    )
    if len([d for d in timed if _touches_base(d, home_base)]) < 2:
        return TurnaroundAssessment(
            status=ComplianceStatus.compliant(),
            applicable=True,
            reason="Insufficient home-base history"
        )

    pair_index = None
    for i in range(len(timed) - 1, 0, -1):
        if timed[i - 1].destination == home_base and timed[i].origin == home_base:
            pair_index = i
            break

    if pair_index is None:
        return TurnaroundAssessment(
            status=ComplianceStatus.compliant(),
            applicable=True,
            reason="No completed rest period at home base"
        )

    arrival, departure = timed[pair_index - 1], timed[pair_index]
    rest_hours = round((departure.resolved_start - arrival.resolved_end).total_seconds() / 3600, 6)
    nights = count_local_nights(arrival.resolved_end, departure.resolved_start)
    requirement = _trip_before(timed, pair_index - 1, home_base, overhead)

    required_hours = minimum
    if requirement.min_hours is not None:
        required_hours = max(required_hours, requirement.min_hours)

    if rest_hours < required_hours:
        status = ComplianceStatus.violation(
            f"Home-base rest {rest_hours:.1f}h is below the {required_hours:.1f}h minimum"
        )
    elif nights < requirement.local_nights_required:
        status = ComplianceStatus.violation(
            f"Home-base rest includes {nights} local night(s), {requirement.local_nights_required} required"
        )
    elif rest_hours < required_hours + margin:
        status = ComplianceStatus.warning(
            f"Home-base rest {rest_hours:.1f}h is within {margin:.1f}h of the {required_hours:.1f}h minimum"
        )
    else:
        status = ComplianceStatus.compliant()

    logger.debug(
        "Turnaround assessed",
        home_base=home_base,
        rest_hours=rest_hours,
        required_hours=required_hours,
        local_nights=nights,
        level=status.level.value
    )

    return TurnaroundAssessment(
        status=status,
        applicable=True,
        evaluated=True,
        rest_hours=rest_hours,
        required_hours=required_hours,
        local_nights=nights,
        requirement=requirement,
        reason=requirement.reason
    )


def validate(recent_duties: Sequence[FlightDutyRecord], home_base: str, fleet: FleetTag,
             limit_table: Optional[LimitTable] = None,
             configuration: Optional[FRMSConfiguration] = None) -> ComplianceStatus:
    """Turnaround status only"""
    return assess_turnaround(recent_duties, home_base, fleet, limit_table, configuration).status
