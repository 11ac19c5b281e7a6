"""
End-to-end tests for compliance report assembly
"""
import pytest
from datetime import date, datetime, timedelta

from frms_engine.main import sample_logbook
from frms_engine.models.schemas import FleetTag, FlightDutyRecord, FRMSConfiguration, LimitTable, WindowKind
from frms_engine.orchestrator import ComplianceOrchestrator
from frms_engine.rules.limit_tables import load_limit_table
from frms_engine.tools.record_builder import build_records


@pytest.fixture
def orchestrator():
    return ComplianceOrchestrator(load_limit_table())


@pytest.fixture
def short_haul():
    return FRMSConfiguration(fleet=FleetTag.SHORT_HAUL, home_base="SYD")


def _duty(day, hours=8.0, flight=4.0):
    start = datetime(day.year, day.month, day.day, 8)
    return FlightDutyRecord(date=day, duty_start=start, duty_end=start + timedelta(hours=hours), flight_time=flight)


class TestComplianceOrchestrator:

    def test_sample_logbook_report(self, orchestrator, short_haul):
        records, dropped = build_records(sample_logbook(), short_haul)

        report = orchestrator.build_report(
            records, short_haul,
            as_of=date(2025, 3, 3),
            candidate_start=datetime(2025, 3, 4, 6, 0)
        )

        assert dropped == 1
        assert set(report.window_statuses) == {
            WindowKind.FLIGHT_MONTH, WindowKind.FLIGHT_YEAR, WindowKind.DUTY_WEEK, WindowKind.DUTY_FORTNIGHT
        }
        assert report.worst_status.is_compliant
        assert report.next_duty.max_duty_hours == 14.0
        assert report.next_duty.max_flight_hours == 10.5
        assert report.next_duty.earliest_start < datetime(2025, 3, 4, 6, 0)
        assert not report.turnaround.applicable
        assert report.configuration_errors == []
        assert report.totals.used(WindowKind.FLIGHT_MONTH) == pytest.approx(9.16)
        assert report.totals.consecutive_duty_days == 3
        assert report.totals.consecutive_early_starts == 1
        assert report.totals.days_off == 25

    def test_sector_overlaps_not_double_counted(self, orchestrator, short_haul):
        records, _ = build_records(sample_logbook(), short_haul)

        consolidated = orchestrator.build_report(records, short_haul, as_of=date(2025, 3, 3))
        per_sector = orchestrator.build_report(records, short_haul, as_of=date(2025, 3, 3), consolidate=False)

        assert consolidated.totals.used(WindowKind.DUTY_WEEK) == pytest.approx(16.416667)
        assert per_sector.totals.used(WindowKind.DUTY_WEEK) == pytest.approx(17.0)
        assert consolidated.totals.used(WindowKind.FLIGHT_MONTH) == per_sector.totals.used(WindowKind.FLIGHT_MONTH)

    def test_report_is_deterministic(self, orchestrator, short_haul):
        records, _ = build_records(sample_logbook(), short_haul)
        kwargs = dict(as_of=date(2025, 3, 3), candidate_start=datetime(2025, 3, 4, 6, 0))

        assert orchestrator.build_report(records, short_haul, **kwargs) == orchestrator.build_report(records, short_haul, **kwargs)

    def test_window_violation_propagates(self, orchestrator, short_haul):
        records = [_duty(date(2025, 3, d), hours=11.0, flight=9.0) for d in range(1, 6)]
        records.append(_duty(date(2025, 3, 6), hours=6.0, flight=3.0))

        report = orchestrator.build_report(records, short_haul, as_of=date(2025, 3, 6))

        assert report.window_statuses[WindowKind.DUTY_WEEK].is_violation
        assert report.worst_status.is_violation
        assert report.next_duty.max_duty_hours == 0.0

    def test_consecutive_duty_days_limit(self, orchestrator, short_haul):
        records = [_duty(date(2025, 3, d)) for d in range(1, 7)]

        report = orchestrator.build_report(records, short_haul, as_of=date(2025, 3, 6))

        assert report.duty_day_statuses["consecutive_duty_days"].is_violation
        assert report.window_statuses[WindowKind.DUTY_WEEK].is_compliant
        assert report.worst_status.is_violation

    def test_unknown_fleet_fails_closed(self, short_haul):
        table = load_limit_table()
        short_haul_only = LimitTable(
            entries=tuple(table.entries_for(FleetTag.SHORT_HAUL)),
            fleets={FleetTag.SHORT_HAUL: table.rules_for(FleetTag.SHORT_HAUL)}
        )
        configuration = FRMSConfiguration(fleet=FleetTag.LONG_HAUL, home_base="SYD")

        report = ComplianceOrchestrator(short_haul_only).build_report(
            [_duty(date(2025, 3, 1))], configuration, as_of=date(2025, 3, 1)
        )

        assert report.window_statuses[WindowKind.FLIGHT_MONTH].is_violation
        assert len(report.configuration_errors) == 2
        assert report.worst_status.is_violation
        assert report.next_duty.max_duty_hours == 0.0

    def test_skipped_records_surface(self, orchestrator, short_haul):
        records = [_duty(date(2025, 3, 1)), FlightDutyRecord(flight_time=2.0)]

        report = orchestrator.build_report(records, short_haul, as_of=date(2025, 3, 1))

        assert report.skipped_records == 1
        assert report.summary()["skipped_records"] == 1

    def test_candidate_inside_rest_is_violation(self, orchestrator, short_haul):
        records = [_duty(date(2025, 3, 1))]

        report = orchestrator.build_report(
            records, short_haul,
            as_of=date(2025, 3, 1),
            candidate_start=datetime(2025, 3, 2, 0, 0)
        )

        assert report.next_duty.status.is_violation
        assert report.worst_status.is_violation

    def test_long_haul_turnaround_included(self, orchestrator):
        configuration = FRMSConfiguration(fleet=FleetTag.LONG_HAUL, home_base="SYD")
        records = [
            FlightDutyRecord(date=date(2025, 3, 1), duty_start=datetime(2025, 3, 1, 6),
                             duty_end=datetime(2025, 3, 1, 15), flight_time=6.0,
                             origin="SYD", destination="SYD"),
            FlightDutyRecord(date=date(2025, 3, 2), duty_start=datetime(2025, 3, 2, 1),
                             duty_end=datetime(2025, 3, 2, 5), flight_time=3.0,
                             origin="SYD", destination="MEL"),
        ]

        report = orchestrator.build_report(records, configuration, as_of=date(2025, 3, 2))

        assert report.turnaround.evaluated
        assert report.turnaround.status.is_violation
        assert report.worst_status.is_violation

    def test_short_haul_turnaround_override_ignored(self, orchestrator):
        configuration = FRMSConfiguration(fleet=FleetTag.SHORT_HAUL, home_base="SYD", min_turnaround_hours=12.0)
        records = [
            FlightDutyRecord(date=date(2025, 3, 1), duty_start=datetime(2025, 3, 1, 6),
                             duty_end=datetime(2025, 3, 1, 15), flight_time=6.0,
                             origin="SYD", destination="SYD"),
            FlightDutyRecord(date=date(2025, 3, 2), duty_start=datetime(2025, 3, 2, 1),
                             duty_end=datetime(2025, 3, 2, 5), flight_time=3.0,
                             origin="SYD", destination="MEL"),
        ]

        report = orchestrator.build_report(records, configuration, as_of=date(2025, 3, 2))

        assert report.turnaround.status.is_compliant
        assert not report.turnaround.evaluated

    @pytest.mark.parametrize("extra_day,extra_hours", [(1, 2.0), (4, 11.0), (6, 12.0), (8, 6.0)])
    def test_adding_a_duty_never_improves_status(self, orchestrator, short_haul, extra_day, extra_hours):
        records = [_duty(date(2025, 3, d), hours=11.0, flight=9.0) for d in (2, 3, 4, 5, 7)]
        before = orchestrator.build_report(records, short_haul, as_of=date(2025, 3, 8))

        after = orchestrator.build_report(
            records + [_duty(date(2025, 3, extra_day), hours=extra_hours, flight=1.0)],
            short_haul, as_of=date(2025, 3, 8)
        )

        assert not before.worst_status.is_compliant
        assert after.worst_status.rank >= before.worst_status.rank
        for kind, status in before.window_statuses.items():
            assert after.window_statuses[kind].rank >= status.rank

    def test_early_start_counter_status(self, orchestrator, short_haul):
        records = [
            FlightDutyRecord(date=date(2025, 3, d), duty_start=datetime(2025, 3, d, 5),
                             duty_end=datetime(2025, 3, d, 11), flight_time=4.0)
            for d in (1, 2, 3, 4)
        ]

        report = orchestrator.build_report(records, short_haul, as_of=date(2025, 3, 4))

        assert report.totals.consecutive_early_starts == 4
        assert report.duty_day_statuses["consecutive_early_starts"].is_violation
        assert report.duty_day_statuses["consecutive_late_nights"].is_compliant
        assert "Maximum 4 consecutive early starts reached" in report.next_duty.restrictions
        assert report.summary()["counters"]["consecutive_early_starts"] == 4

    def test_candidate_crew_and_sectors(self, orchestrator, short_haul):
        report = orchestrator.build_report(
            [_duty(date(2025, 3, 1))], short_haul,
            as_of=date(2025, 3, 1),
            candidate_start=datetime(2025, 3, 2, 16),
            candidate_sectors=6
        )

        assert report.next_duty.max_duty_hours == 11.0
        assert report.summary()["next_duty"]["sign_on_band"] == "afternoon"
