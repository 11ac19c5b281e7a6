# orchestrator/orchestrator.py
import time
from datetime import date, datetime
from typing import Optional, Sequence, Union

from frms_engine.models.schemas import FlightDutyRecord, FRMSComplianceReport, FRMSConfiguration, LimitTable
from frms_engine.rules.limit_tables import default_limit_table
from frms_engine.tools.compliance_evaluator import evaluate_count, evaluate_windows, worst_status
from frms_engine.tools.next_duty_projector import project
from frms_engine.tools.record_builder import consolidate_duties
from frms_engine.tools.turnaround_validator import assess_turnaround
from frms_engine.tools.window_aggregator import build_totals
from frms_engine.utils.logger import get_engine_logger

logger = get_engine_logger("orchestrator")


class ComplianceOrchestrator:
    def __init__(self, limit_table: Optional[LimitTable] = None):
        self.limit_table = limit_table or default_limit_table()

    def build_report(self, records: Sequence[FlightDutyRecord], configuration: FRMSConfiguration,
                     as_of: Optional[Union[date, datetime]] = None,
                     candidate_start: Optional[datetime] = None,
                     consolidate: bool = True,
                     candidate_crew_complement: int = 2,
                     candidate_sectors: int = 1) -> FRMSComplianceReport:
        """
        Assemble a full compliance report for one pilot.

        Args:
            records (list): FlightDutyRecord values, any order
            configuration (FRMSConfiguration): Pilot settings
            as_of (date): Reference date; today when None
            candidate_start (datetime): Proposed sign-on of the next duty
            consolidate (bool): Merge sector records into duty periods first; pass False
                only when every record is already a whole duty period
            candidate_crew_complement (int): Pilots on the proposed duty
            candidate_sectors (int): Sectors planned for the proposed duty

        Returns:
            FRMSComplianceReport
        """
        start_time = time.time()
        as_of = as_of or datetime.now()
        logger.log_engine_start("build_report", {
            "fleet": configuration.fleet.value,
            "home_base": configuration.home_base,
            "records": len(records),
        })

        try:
            duties = consolidate_duties(records) if consolidate else list(records)
            errors = []

            totals = build_totals(duties, self.limit_table, configuration, as_of)
            window_statuses, window_errors = evaluate_windows(totals, self.limit_table, configuration)
            errors.extend(window_errors)

            rules = self.limit_table.rules_for(configuration.fleet)
            if rules is None:
                errors.append(f"No fleet rules configured for {configuration.fleet.value}")
            counters = (
                ("consecutive_duty_days", totals.consecutive_duty_days, "max_consecutive_duty_days"),
                ("duty_days_in_11_days", totals.duty_days_in_11_days, "max_duty_days_in_11_days"),
                ("consecutive_early_starts", totals.consecutive_early_starts, "max_consecutive_early_starts"),
                ("consecutive_late_nights", totals.consecutive_late_nights, "max_consecutive_late_nights"),
            )
            duty_day_statuses = {
                name: evaluate_count(count, getattr(rules, limit) if rules else None, name)
                for name, count, limit in counters
            }

            next_duty = project(
                totals, self.limit_table, duties, candidate_start, configuration,
                crew_complement=candidate_crew_complement, sectors=candidate_sectors
            )
            turnaround = assess_turnaround(
                duties, configuration.home_base, configuration.fleet,
                self.limit_table, configuration
            )

            statuses = list(window_statuses.values()) + list(duty_day_statuses.values())
            statuses.append(turnaround.status)
            if candidate_start is not None:
                statuses.append(next_duty.status)

            report = FRMSComplianceReport(
                fleet=configuration.fleet,
                home_base=configuration.home_base,
                as_of=totals.as_of,
                totals=totals,
                window_statuses=window_statuses,
                duty_day_statuses=duty_day_statuses,
                next_duty=next_duty,
                turnaround=turnaround,
                skipped_records=totals.skipped_records,
                configuration_errors=errors,
                worst_status=worst_status(statuses)
            )
        except Exception as e:
            logger.log_engine_error("build_report", e, {"fleet": configuration.fleet.value})
            raise

        logger.log_engine_complete("build_report", {
            "worst_status": report.worst_status.level.value,
            "skipped_records": report.skipped_records,
        }, time.time() - start_time)
        return report
