"""
Computation tools for the FRMS compliance engine
"""
from .window_aggregator import (
    aggregate, build_totals, consecutive_duty_days, duty_days_in_window,
    consecutive_early_starts, consecutive_late_nights, days_off_in_window, classify_time
)
from .compliance_evaluator import evaluate, evaluate_count, evaluate_windows, worst_status
from .next_duty_projector import project, minimum_rest_after, previous_duty
from .turnaround_validator import validate, assess_turnaround, minimum_base_turnaround, count_local_nights
from .record_builder import (
    build_record, build_records, records_from_frame, read_logbook_csv, consolidate_duties
)

__all__ = [
    'aggregate', 'build_totals', 'consecutive_duty_days', 'duty_days_in_window',
    'consecutive_early_starts', 'consecutive_late_nights', 'days_off_in_window', 'classify_time',
    'evaluate', 'evaluate_count', 'evaluate_windows', 'worst_status',
    'project', 'minimum_rest_after', 'previous_duty',
    'validate', 'assess_turnaround', 'minimum_base_turnaround', 'count_local_nights',
    'build_record', 'build_records', 'records_from_frame', 'read_logbook_csv', 'consolidate_duties'
]
