# tools/compliance_evaluator.py
from typing import Dict, Iterable, List, Optional, Tuple

from frms_engine.models.schemas import (
    ComplianceStatus, CumulativeTotals, FRMSConfiguration, LimitEntry, LimitTable, WindowKind
)
from frms_engine.utils.logger import get_engine_logger

logger = get_engine_logger("compliance_evaluator")

# Window reported when a fleet has no limit rows at all
FAIL_CLOSED_WINDOW = WindowKind.FLIGHT_MONTH


def evaluate(hours_used: float, limit: Optional[LimitEntry],
             window_kind: Optional[WindowKind] = None,
             warning_ratio: Optional[float] = None) -> ComplianceStatus:
    """
    Classify hours used against one limit row.

    Both thresholds are closed: reaching the ceiling is a violation and
    reaching the warning band is a warning.

    Args:
        hours_used (float): Hours accumulated in the window
        limit (LimitEntry): Row to compare against; None fails closed
        window_kind (WindowKind): Used for messages when limit is None
        warning_ratio (float): Overrides the row's ratio

    Returns:
        ComplianceStatus
    """
    if limit is None:
        label = window_kind.value if window_kind else "unknown window"
        return ComplianceStatus.violation(f"No limit configured for {label}; treating as non-compliant")

    kind = limit.window_kind.value
    ratio = warning_ratio if warning_ratio is not None else limit.warning_ratio

    if hours_used >= limit.max_hours:
        status = ComplianceStatus.violation(
            f"{kind}: {hours_used:.1f}h used, limit {limit.max_hours:.1f}h in {limit.window_days} days"
        )
    elif hours_used >= limit.max_hours * ratio:
        status = ComplianceStatus.warning(
            f"{kind}: {hours_used:.1f}h used, approaching {limit.max_hours:.1f}h limit in {limit.window_days} days"
        )
    else:
        status = ComplianceStatus.compliant()

    logger.log_limit_status(kind, hours_used, limit.max_hours, status.level.value)
    return status


def evaluate_count(count: int, limit: Optional[int], label: str) -> ComplianceStatus:
    """Classify a day counter; a missing limit means the fleet has no such rule"""
    if limit is None:
        return ComplianceStatus.compliant()
    if count >= limit:
        return ComplianceStatus.violation(f"{label}: {count} reached limit of {limit}")
    if count >= limit - 1:
        return ComplianceStatus.warning(f"{label}: {count}, approaching limit of {limit}")
    return ComplianceStatus.compliant()


def evaluate_windows(totals: CumulativeTotals, limit_table: LimitTable,
                     configuration: FRMSConfiguration) -> Tuple[Dict[WindowKind, ComplianceStatus], List[str]]:
    """
    Evaluate every window configured for the fleet.

    Returns:
        tuple: (statuses keyed by window, configuration errors)
    """
    entries = limit_table.entries_for(configuration.fleet)
    if not entries:
        message = f"No limit table entries for fleet {configuration.fleet.value}"
        logger.error("Fleet has no limits", fleet=configuration.fleet.value)
        return {FAIL_CLOSED_WINDOW: ComplianceStatus.violation(message)}, [message]

    statuses = {}
    errors = []
    for entry in entries:
        if entry.window_kind not in totals.hours_used:
            message = f"No totals computed for {entry.window_kind.value}"
            errors.append(message)
            statuses[entry.window_kind] = ComplianceStatus.violation(message)
            continue
        statuses[entry.window_kind] = evaluate(
            totals.used(entry.window_kind), entry,
            warning_ratio=configuration.warning_ratio
        )
    return statuses, errors


def worst_status(statuses: Iterable[ComplianceStatus]) -> ComplianceStatus:
    """Most severe status; Compliant when there is nothing to compare"""
    worst = ComplianceStatus.compliant()
    for status in statuses:
        if status.rank > worst.rank:
            worst = status
    return worst
