"""
Tests for limit classification
"""
import pytest
from datetime import date, timedelta

from frms_engine.models.schemas import (
    ComplianceLevel, ComplianceStatus, CumulativeTotals, FleetTag, FlightDutyRecord, FRMSConfiguration,
    LimitEntry, LimitTable, TimeMetric, WindowKind
)
from frms_engine.rules.limit_tables import load_limit_table
from frms_engine.tools.compliance_evaluator import (
    evaluate, evaluate_count, evaluate_windows, worst_status
)
from frms_engine.tools.window_aggregator import aggregate, build_totals

FLIGHT_MONTH = LimitEntry(
    fleet=FleetTag.SHORT_HAUL,
    window_kind=WindowKind.FLIGHT_MONTH,
    metric=TimeMetric.FLIGHT,
    window_days=28,
    max_hours=100.0,
    warning_ratio=0.9
)


class TestEvaluate:
    """Test single-window classification"""

    @pytest.mark.parametrize("hours_used,expected", [
        (0.0, ComplianceLevel.COMPLIANT),
        (89.0, ComplianceLevel.COMPLIANT),
        (90.0, ComplianceLevel.WARNING),
        (91.0, ComplianceLevel.WARNING),
        (99.99, ComplianceLevel.WARNING),
        (100.0, ComplianceLevel.VIOLATION),
        (120.0, ComplianceLevel.VIOLATION),
    ])
    def test_thresholds(self, hours_used, expected):
        assert evaluate(hours_used, FLIGHT_MONTH).level == expected

    def test_violation_message_names_window(self):
        status = evaluate(100.0, FLIGHT_MONTH)

        assert "flight_month" in status.message
        assert "28 days" in status.message
        assert "100.0h" in status.message

    def test_missing_limit_fails_closed(self):
        status = evaluate(0.0, None, window_kind=WindowKind.DUTY_WEEK)

        assert status.is_violation
        assert "duty_week" in status.message

    def test_warning_ratio_override(self):
        assert evaluate(85.0, FLIGHT_MONTH).is_compliant
        assert evaluate(85.0, FLIGHT_MONTH, warning_ratio=0.8).is_warning

    def test_evaluate_is_idempotent(self):
        for hours in (0.0, 89.0, 95.0, 100.0):
            assert evaluate(hours, FLIGHT_MONTH) == evaluate(hours, FLIGHT_MONTH)

    def test_more_hours_never_less_severe(self):
        ranks = [evaluate(h / 4, FLIGHT_MONTH).rank for h in range(0, 481)]

        assert ranks == sorted(ranks)


class TestEvaluateCount:

    def test_counter_thresholds(self):
        assert evaluate_count(6, 6, "consecutive_duty_days").is_violation
        assert evaluate_count(5, 6, "consecutive_duty_days").is_warning
        assert evaluate_count(4, 6, "consecutive_duty_days").is_compliant

    def test_no_rule_is_compliant(self):
        assert evaluate_count(30, None, "duty_days_in_11_days").is_compliant


class TestEvaluateWindows:

    def test_every_window_evaluated(self):
        table = LimitTable(entries=(FLIGHT_MONTH,))
        configuration = FRMSConfiguration(fleet=FleetTag.SHORT_HAUL, home_base="SYD")
        totals = CumulativeTotals(
            as_of=date(2025, 3, 1),
            fleet=FleetTag.SHORT_HAUL,
            hours_used={WindowKind.FLIGHT_MONTH: 95.0}
        )

        statuses, errors = evaluate_windows(totals, table, configuration)

        assert statuses[WindowKind.FLIGHT_MONTH].is_warning
        assert errors == []

    def test_fleet_without_limits_fails_closed(self):
        table = LimitTable(entries=(FLIGHT_MONTH,))
        configuration = FRMSConfiguration(fleet=FleetTag.LONG_HAUL, home_base="SYD")
        totals = CumulativeTotals(as_of=date(2025, 3, 1), fleet=FleetTag.LONG_HAUL)

        statuses, errors = evaluate_windows(totals, table, configuration)

        assert list(statuses) == [WindowKind.FLIGHT_MONTH]
        assert statuses[WindowKind.FLIGHT_MONTH].is_violation
        assert len(errors) == 1

    def test_missing_totals_fail_closed(self):
        table = LimitTable(entries=(FLIGHT_MONTH,))
        configuration = FRMSConfiguration(fleet=FleetTag.SHORT_HAUL, home_base="SYD")
        totals = CumulativeTotals(as_of=date(2025, 3, 1), fleet=FleetTag.SHORT_HAUL)

        statuses, errors = evaluate_windows(totals, table, configuration)

        assert statuses[WindowKind.FLIGHT_MONTH].is_violation
        assert errors


class TestWorstStatus:

    def test_empty_is_compliant(self):
        assert worst_status([]).is_compliant

    def test_violation_dominates(self):
        statuses = [
            ComplianceStatus.compliant(),
            ComplianceStatus.warning("close"),
            ComplianceStatus.violation("over"),
            ComplianceStatus.warning("close again"),
        ]
        worst = worst_status(statuses)

        assert worst.is_violation
        assert worst.message == "over"

    def test_warning_over_compliant(self):
        assert worst_status([ComplianceStatus.compliant(), ComplianceStatus.warning("w")]).is_warning


def _logbook(flight_hours, as_of=date(2025, 3, 28), spacing=1):
    """Untimed records every `spacing` days ending at as_of"""
    return [
        FlightDutyRecord(date=as_of - timedelta(days=i * spacing), flight_time=hours)
        for i, hours in enumerate(flight_hours)
    ]


class TestAggregateThenEvaluate:
    """Test classification of summed logbook hours"""

    @pytest.mark.parametrize("flight_hours,expected", [
        ([10.0] * 8 + [9.0], ComplianceLevel.COMPLIANT),
        ([10.0] * 9 + [1.0], ComplianceLevel.WARNING),
        ([10.0] * 10, ComplianceLevel.VIOLATION),
    ])
    def test_flight_month(self, flight_hours, expected):
        limit = load_limit_table().lookup(FleetTag.SHORT_HAUL, WindowKind.FLIGHT_MONTH)

        totals = aggregate(_logbook(flight_hours), date(2025, 3, 28), limit.window_days)

        assert totals.flight_hours == sum(flight_hours)
        assert evaluate(totals.flight_hours, limit).level == expected

    def test_adding_a_record_never_improves_status(self):
        table = load_limit_table()
        configuration = FRMSConfiguration(fleet=FleetTag.SHORT_HAUL, home_base="SYD")
        records = _logbook([10.0] * 9 + [1.0], spacing=3)

        def worst(recs):
            totals = build_totals(recs, table, configuration, date(2025, 3, 28))
            return worst_status(evaluate_windows(totals, table, configuration)[0].values())

        before = worst(records)
        assert before.is_warning
        for extra in (0.0, 0.5, 9.0, 30.0):
            after = worst(records + [FlightDutyRecord(date=date(2025, 3, 10), flight_time=extra)])
            assert after.rank >= before.rank
