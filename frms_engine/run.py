#!/usr/bin/env python3
"""
FRMS Engine Runner Script
Provides easy ways to run different parts of the engine
"""
import argparse
import json
import subprocess
import sys
from datetime import date, datetime

from frms_engine.config import config
from frms_engine.utils.exceptions import FRMSException


def run_report(csv_path, fleet=None, home_base=None, as_of=None, candidate_start=None, as_json=False,
               crew=2, sectors=1):
    """Build a compliance report from a logbook CSV"""
    from frms_engine.orchestrator import ComplianceOrchestrator
    from frms_engine.tools.record_builder import read_logbook_csv

    configuration = config.frms_configuration(fleet=fleet, home_base=home_base)
    records, dropped = read_logbook_csv(csv_path, configuration)

    report = ComplianceOrchestrator().build_report(
        records,
        configuration,
        as_of=date.fromisoformat(as_of) if as_of else None,
        candidate_start=datetime.fromisoformat(candidate_start) if candidate_start else None,
        candidate_crew_complement=crew,
        candidate_sectors=sectors
    )
    summary = report.summary()
    summary["dropped_rows"] = dropped

    if as_json:
        print(json.dumps(summary, indent=2))
    else:
        print(f"Fleet: {summary['fleet']}  Base: {summary['home_base']}  As of: {summary['as_of']}")
        for kind, window in summary["windows"].items():
            print(f"  {kind:<16} {window['hours_used']:7.1f}h  {window['status']}")
        print(f"  Next duty: {summary['next_duty']['max_duty_hours']:.1f}h max, "
              f"{summary['next_duty']['min_rest_hours']:.1f}h rest")
        print(f"  Turnaround: {summary['turnaround']['status']}")
        print(f"Overall: {summary['worst_status']}")
        if dropped or summary["skipped_records"]:
            print(f"({dropped} rows dropped, {summary['skipped_records']} records without a date)")

    return report.worst_status.is_compliant or report.worst_status.is_warning


def run_demo():
    """Run CLI simulation"""
    print("🎯 Running Compliance Simulation...")
    from frms_engine.main import simulate_compliance_check
    simulate_compliance_check()


def run_tests():
    """Run test suite"""
    print("🧪 Running Test Suite...")
    try:
        result = subprocess.run(["pytest", "-v"], capture_output=False)
        return result.returncode == 0
    except FileNotFoundError:
        print("❌ pytest not installed. Install with: pip install -e .[test]")
        return False


def validate_config():
    """Validate configuration"""
    print("🔧 Validating Configuration...")

    if config.validate():
        print("✅ Configuration is valid")
        print(f"✈️  Default fleet: {config.engine.default_fleet}")
        print(f"🏠 Home base: {config.engine.default_home_base}")
        print(f"📄 Limit table: {config.engine.limit_table_file or 'packaged default'}")
        return True
    else:
        print("❌ Configuration validation failed")
        print("⚠️  Check your environment variables and .env file")
        return False


def show_help():
    """Show help information"""
    print("""
FRMS Engine - Flight and duty time compliance for airline pilots

Available commands:

  report      Build a compliance report from a logbook CSV
  demo        Run the sample logbook simulation
  test        Run the test suite
  config      Validate configuration
  help        Show this help message

Examples:

  python -m frms_engine.run report --csv logbook.csv
  python -m frms_engine.run report --csv logbook.csv --json --as-of 2025-03-03
  python -m frms_engine.run report --csv logbook.csv --candidate-start 2025-03-04T06:00 --sectors 4
  python -m frms_engine.run demo
  python -m frms_engine.run config
""")


def main():
    parser = argparse.ArgumentParser(
        description="FRMS Engine Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "command",
        choices=["report", "demo", "test", "config", "help"],
        help="Command to run"
    )
    parser.add_argument("--csv", help="Logbook CSV for the report command")
    parser.add_argument("--fleet", help="Fleet tag, e.g. A320/B737")
    parser.add_argument("--home-base", help="Home base airport code")
    parser.add_argument("--as-of", help="Reference date (YYYY-MM-DD)")
    parser.add_argument("--candidate-start", help="Proposed next sign-on (ISO datetime)")
    parser.add_argument("--crew", type=int, default=2, choices=[2, 3, 4], help="Pilots on the proposed duty")
    parser.add_argument("--sectors", type=int, default=1, help="Sectors planned for the proposed duty")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    if len(sys.argv) == 1:
        show_help()
        return

    args = parser.parse_args()

    try:
        if args.command == "report":
            if not args.csv:
                parser.error("report requires --csv")
            success = run_report(
                args.csv, args.fleet, args.home_base, args.as_of,
                args.candidate_start, args.json, args.crew, args.sectors
            )
            sys.exit(0 if success else 2)
        elif args.command == "demo":
            run_demo()
        elif args.command == "test":
            success = run_tests()
            sys.exit(0 if success else 1)
        elif args.command == "config":
            success = validate_config()
            sys.exit(0 if success else 1)
        else:
            show_help()

    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except (FRMSException, ValueError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
