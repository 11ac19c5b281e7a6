# main.py (CLI-based simulation)

from datetime import date, datetime

from frms_engine.config import config
from frms_engine.orchestrator import ComplianceOrchestrator
from frms_engine.tools.record_builder import build_records


def sample_logbook():
    """Three-day short-haul pairing out of Sydney followed by a day trip"""
    return [
        {"id": "QF401", "date": "01/03/2025", "std": "0700", "out_time": "0705", "in_time": "0840",
         "block_time": 1.58, "from_airport": "SYD", "to_airport": "MEL"},
        {"id": "QF410", "date": "01/03/2025", "std": "0930", "out_time": "0935", "in_time": "1105",
         "block_time": 1.5, "from_airport": "MEL", "to_airport": "SYD"},
        {"id": "QF520", "date": "01/03/2025", "std": "1230", "out_time": "1240", "in_time": "1410",
         "block_time": 1.5, "from_airport": "SYD", "to_airport": "BNE"},
        {"id": "QF537", "date": "02/03/2025", "std": "0800", "out_time": "0800", "in_time": "0930",
         "block_time": 1.5, "from_airport": "BNE", "to_airport": "SYD"},
        {"id": "QF431", "date": "03/03/2025", "std": "0600", "out_time": "0600", "in_time": "0735",
         "block_time": 1.58, "from_airport": "SYD", "to_airport": "MEL"},
        {"id": "QF434", "date": "03/03/2025", "std": "0830", "out_time": "0830", "in_time": "1000",
         "block_time": 1.5, "from_airport": "MEL", "to_airport": "SYD"},
        {"id": "QF0000", "date": "03/03/2025", "block_time": 0, "from_airport": "SYD", "to_airport": "SYD"},
    ]


def simulate_compliance_check():
    print("\n📦 Loading sample logbook...")

    configuration = config.frms_configuration(fleet="A320/B737", home_base="SYD")
    records, dropped = build_records(sample_logbook(), configuration)
    print(f"Built {len(records)} sector records ({dropped} dropped)")

    orchestrator = ComplianceOrchestrator()
    report = orchestrator.build_report(
        records,
        configuration,
        as_of=date(2025, 3, 3),
        candidate_start=datetime(2025, 3, 4, 6, 0)
    )

    print(f"\n✈️  Fleet {report.fleet.value}, base {report.home_base}, as of {report.as_of}")
    print("\n[1] Rolling windows")
    for kind, status in report.window_statuses.items():
        days = report.totals.window_days.get(kind)
        print(f"  {kind.value:<16} {report.totals.used(kind):7.1f}h / {days}d  {status.level.value}")

    print("\n[2] Duty days")
    for name, status in report.duty_day_statuses.items():
        print(f"  {name:<24} {status.level.value}")
    print(f"  Days off in last {report.totals.days_off_window_days} days: {report.totals.days_off}")

    print("\n[3] Next duty")
    next_duty = report.next_duty
    print(f"  Max duty: {next_duty.max_duty_hours:.1f}h, max flight: {next_duty.max_flight_hours:.1f}h")
    print(f"  Minimum rest: {next_duty.min_rest_hours:.1f}h, earliest start: {next_duty.earliest_start}")
    for restriction in next_duty.restrictions:
        print(f"  - {restriction}")

    print("\n[4] Home-base turnaround")
    print(f"  {report.turnaround.status.level.value}: {report.turnaround.reason}")

    print(f"\nOverall: {report.worst_status.level.value}")
    return report


if __name__ == "__main__":
    simulate_compliance_check()
