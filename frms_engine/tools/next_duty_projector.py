# tools/next_duty_projector.py
import math
from datetime import datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple

from frms_engine.models.schemas import (
    ComplianceStatus, CumulativeTotals, FleetRules, FlightDutyRecord, FRMSConfiguration,
    LimitTable, NextDutyProjection, OperationTimeClass, RestFormula, SignOnBand, TimeMetric,
    DEFAULT_DUTY_OVERHEAD_HOURS
)
from frms_engine.rules.limit_tables import (
    AUGMENTED_REST_BANDS, PROPORTIONAL_REST, TWO_PILOT_INCREMENTAL_REST, sign_on_band
)
from frms_engine.tools.compliance_evaluator import evaluate, worst_status
from frms_engine.tools.window_aggregator import classify_time
from frms_engine.utils.logger import get_engine_logger

logger = get_engine_logger("next_duty_projector")

LONG_PREVIOUS_DUTY_HOURS = 12.0
LOW_HEADROOM_HOURS = 20.0


def _proportional_rest(duty_hours: float, flight_hours: float, crew_complement: int, base: float) -> float:
    threshold = PROPORTIONAL_REST["threshold_duty_hours"]
    if duty_hours <= threshold:
        rest = max(base, duty_hours)
    else:
        excess = duty_hours - threshold
        rest = PROPORTIONAL_REST["base_after_threshold_hours"] + PROPORTIONAL_REST["excess_multiplier"] * excess
    if crew_complement > 2 and duty_hours > PROPORTIONAL_REST["augmented_long_duty_hours"]:
        rest = max(rest, PROPORTIONAL_REST["augmented_long_duty_rest_hours"])
    return rest


def _incremental_rest(duty_hours: float, flight_hours: float, crew_complement: int, base: float) -> float:
    if crew_complement > 2:
        for above, rest in AUGMENTED_REST_BANDS:
            if duty_hours > above:
                return rest
        return AUGMENTED_REST_BANDS[-1][1]

    rules = TWO_PILOT_INCREMENTAL_REST
    if duty_hours > rules["extreme_duty_hours"] or flight_hours > rules["extreme_flight_hours"]:
        return rules["extreme_rest_hours"]
    if duty_hours > rules["extended_duty_hours"] or flight_hours > rules["extended_flight_hours"]:
        excess_minutes = max(0.0, duty_hours - rules["extended_duty_hours"]) * 60
        return base + math.ceil(round(excess_minutes, 6) / rules["minutes_per_extra_hour"])
    return base


REST_CALCULATORS = {
    RestFormula.PROPORTIONAL: _proportional_rest,
    RestFormula.INCREMENTAL: _incremental_rest,
}


def minimum_rest_after(duty: FlightDutyRecord, rules: FleetRules,
                       configuration: Optional[FRMSConfiguration] = None) -> float:
    """
    Minimum rest after a duty for the fleet's rest formula.

    The configured floor applies even when the formula allows less.
    """
    overhead = configuration.duty_overhead_hours if configuration else DEFAULT_DUTY_OVERHEAD_HOURS
    duty_hours = duty.duty_hours(overhead) or 0.0
    flight_hours = duty.flight_time or 0.0
    floor = rules.min_rest_hours
    if configuration is not None and configuration.min_rest_hours is not None:
        floor = configuration.min_rest_hours

    calculator = REST_CALCULATORS[rules.rest_formula]
    rest = calculator(duty_hours, flight_hours, duty.crew_complement, rules.min_rest_hours)
    return max(rest, floor)


def previous_duty(recent_duties: Sequence[FlightDutyRecord],
                  candidate_start: Optional[datetime] = None) -> Optional[FlightDutyRecord]:
    """Duty with the latest end at or before candidate_start (any duty if no candidate)"""
    timed = [d for d in recent_duties if d.resolved_end is not None]
    if candidate_start is not None:
        timed = [d for d in timed if d.resolved_end <= candidate_start]
    if not timed:
        return None
    return max(timed, key=lambda d: d.resolved_end)


def _zero_projection(status: ComplianceStatus, min_rest: float, restrictions: List[str],
                     **kwargs) -> NextDutyProjection:
    return NextDutyProjection(
        max_duty_hours=0.0,
        max_flight_hours=0.0,
        min_rest_hours=min_rest,
        status=status,
        restrictions=restrictions,
        **kwargs
    )


def _single_duty_ceiling(limits: LimitTable, rules: FleetRules, candidate_start: Optional[datetime],
                         crew_complement: int, sectors: int,
                         restrictions: List[str]) -> Tuple[float, float, Optional[SignOnBand]]:
    """
    Duty and flight ceilings for one duty before any window headroom.

    Without a candidate sign-on the fleet baseline applies; with one, the
    first rule-book ceiling matching crew, sign-on band and sectors.
    """
    if candidate_start is None or not limits.ceilings_for(rules.fleet):
        return rules.single_duty_max_hours, rules.single_flight_max_hours, None

    band = sign_on_band(candidate_start)
    ceiling = limits.ceiling_for(rules.fleet, crew_complement, band, sectors)
    if ceiling is None:
        restrictions.append(
            f"No duty period permitted for {sectors} sector(s) with {crew_complement} pilots"
        )
        return 0.0, 0.0, band

    max_flight = rules.single_flight_max_hours
    if ceiling.max_flight_hours is not None:
        max_flight = ceiling.max_flight_hours
    elif sectors == 1 and rules.single_sector_flight_max_hours is not None:
        max_flight = rules.single_sector_flight_max_hours
    return ceiling.max_duty_hours, max_flight, band


def _not_before_hour(moment: datetime, hour: int) -> datetime:
    floor = datetime.combine(moment.date(), time(hour), tzinfo=moment.tzinfo)
    return max(moment, floor)


def project(totals: CumulativeTotals, limits: LimitTable, recent_duties: Sequence[FlightDutyRecord],
            candidate_start: Optional[datetime], configuration: FRMSConfiguration,
            crew_complement: int = 2, sectors: int = 1) -> NextDutyProjection:
    """
    Project the longest legal next duty and the rest required before it.

    Organization:
    - Evaluates every window of the fleet; any violation forces zero duty
    - Otherwise takes the smallest headroom across duty windows, capped by
      the single-duty ceiling (flight windows cap flight time the same way)
    - Derives minimum rest from the duty preceding candidate_start, holding
      the next sign-on to 10:00 after a back-of-clock duty
    - Flags a candidate start that falls before the earliest legal start

    Args:
        totals (CumulativeTotals): Hours used per window
        limits (LimitTable): Rule book
        recent_duties (list): Recent FlightDutyRecord values
        candidate_start (datetime): Proposed sign-on of the next duty, or None
        configuration (FRMSConfiguration): Pilot settings
        crew_complement (int): Pilots on the proposed duty
        sectors (int): Sectors planned for the proposed duty

    Returns:
        NextDutyProjection
    """
    rules = limits.rules_for(configuration.fleet)
    if rules is None:
        message = f"No fleet rules configured for {configuration.fleet.value}"
        logger.error("Fleet rules missing", fleet=configuration.fleet.value)
        return _zero_projection(ComplianceStatus.violation(message), 0.0, [message])

    restrictions = []
    entries = limits.entries_for(configuration.fleet)
    statuses = {}
    duty_headroom = {}
    flight_headroom = {}
    for entry in entries:
        used = totals.used(entry.window_kind)
        statuses[entry.window_kind] = evaluate(used, entry, warning_ratio=configuration.warning_ratio)
        headroom = entry.max_hours - used
        if entry.metric == TimeMetric.DUTY:
            duty_headroom[entry.window_kind] = headroom
        else:
            flight_headroom[entry.window_kind] = headroom
        if headroom < LOW_HEADROOM_HOURS:
            restrictions.append(f"Limited by {entry.window_days}-day {entry.metric.value} time limit")

    missing_limits = not entries

    # Day counters (short-haul rule set)
    counters = (
        (totals.consecutive_duty_days, rules.max_consecutive_duty_days, "consecutive duty days"),
        (totals.duty_days_in_11_days, rules.max_duty_days_in_11_days, "duty days in 11-day period"),
        (totals.consecutive_early_starts, rules.max_consecutive_early_starts, "consecutive early starts"),
        (totals.consecutive_late_nights, rules.max_consecutive_late_nights, "consecutive late nights"),
    )
    for count, limit, label in counters:
        if limit is not None and count >= limit:
            restrictions.append(f"Maximum {limit} {label} reached")

    prev = previous_duty(recent_duties, candidate_start)
    floor = configuration.min_rest_hours if configuration.min_rest_hours is not None else rules.min_rest_hours
    rested_at = None
    if prev is not None:
        min_rest = minimum_rest_after(prev, rules, configuration)
        previous_end = prev.resolved_end
        rested_at = previous_end + timedelta(hours=min_rest)
        earliest_start = rested_at
        prev_duty_hours = prev.duty_hours(configuration.duty_overhead_hours) or 0.0
        if prev_duty_hours > LONG_PREVIOUS_DUTY_HOURS:
            restrictions.append(f"Previous duty exceeded {LONG_PREVIOUS_DUTY_HOURS:.0f} hours")
        hour = rules.back_of_clock_earliest_sign_on_hour
        if hour is not None and classify_time(prev) == OperationTimeClass.BACK_OF_CLOCK:
            earliest_start = _not_before_hour(rested_at, hour)
            restrictions.append(f"Back-of-clock previous duty: next sign-on no earlier than {hour:02d}:00")
    else:
        min_rest = floor
        previous_end = None
        earliest_start = None

    window_status = worst_status(statuses.values())
    if missing_limits:
        window_status = ComplianceStatus.violation(f"No limit table entries for fleet {configuration.fleet.value}")
    if window_status.is_violation:
        governing = next((k for k, s in statuses.items() if s.is_violation), None)
        logger.warning("Next duty blocked by window violation", window=governing.value if governing else None)
        return _zero_projection(
            window_status, min_rest, restrictions,
            earliest_start=earliest_start,
            previous_duty_end=previous_end,
            governing_window=governing
        )

    max_duty, flight_ceiling, band = _single_duty_ceiling(
        limits, rules, candidate_start, crew_complement, sectors, restrictions
    )
    governing = None
    if duty_headroom:
        tightest = min(duty_headroom, key=duty_headroom.get)
        if duty_headroom[tightest] < max_duty:
            max_duty = duty_headroom[tightest]
            governing = tightest
    max_duty = max(0.0, max_duty)

    max_flight = min([flight_ceiling, max_duty] + list(flight_headroom.values()))
    max_flight = max(0.0, max_flight)

    status = window_status
    if candidate_start is not None and earliest_start is not None and candidate_start < earliest_start:
        if candidate_start < rested_at:
            rest_taken = (candidate_start - previous_end).total_seconds() / 3600
            message = f"Insufficient rest: {rest_taken:.1f}h before candidate start, {min_rest:.1f}h required"
        else:
            message = f"Sign-on before {earliest_start.strftime('%H:%M')} after a back-of-clock duty"
        restrictions.append(f"Earliest legal start {earliest_start.isoformat()}")
        return _zero_projection(
            ComplianceStatus.violation(message), min_rest, restrictions,
            earliest_start=earliest_start,
            previous_duty_end=previous_end,
            governing_window=governing,
            sign_on_band=band
        )

    return NextDutyProjection(
        max_duty_hours=round(max_duty, 6),
        max_flight_hours=round(max_flight, 6),
        min_rest_hours=min_rest,
        earliest_start=earliest_start,
        previous_duty_end=previous_end,
        governing_window=governing,
        sign_on_band=band,
        status=status,
        restrictions=restrictions
    )
