"""
Tests for rule book loading
"""
import json
import pytest
from datetime import datetime

from frms_engine.models.schemas import FleetTag, RestFormula, SignOnBand, WindowKind
from frms_engine.rules.limit_tables import load_limit_table, sign_on_band
from frms_engine.utils.exceptions import ConfigurationException, LimitTableException


class TestLoadLimitTable:

    def test_packaged_rule_book(self):
        table = load_limit_table()

        assert len(table.entries) == 9
        assert set(table.fleets) == {FleetTag.SHORT_HAUL, FleetTag.LONG_HAUL}
        assert table.lookup(FleetTag.LONG_HAUL, WindowKind.FLIGHT_MONTH).window_days == 30
        assert table.lookup(FleetTag.SHORT_HAUL, WindowKind.FLIGHT_MONTH).window_days == 28
        assert table.lookup(FleetTag.SHORT_HAUL, WindowKind.FLIGHT_WEEK) is None
        assert table.rules_for(FleetTag.LONG_HAUL).rest_formula == RestFormula.INCREMENTAL
        assert table.rules_for(FleetTag.SHORT_HAUL).min_turnaround_hours is None
        assert table.rules_for(FleetTag.SHORT_HAUL).max_consecutive_early_starts == 4
        assert table.rules_for(FleetTag.LONG_HAUL).max_consecutive_early_starts is None
        assert table.rules_for(FleetTag.LONG_HAUL).back_of_clock_earliest_sign_on_hour == 10
        assert len(table.ceilings) == 14
        assert len(table.ceilings_for(FleetTag.LONG_HAUL)) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(LimitTableException) as exc_info:
            load_limit_table(str(tmp_path / "missing.json"))

        assert exc_info.value.error_code == "LIMIT_TABLE_UNREADABLE"

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "limits.json"
        path.write_text("{not json")

        with pytest.raises(LimitTableException) as exc_info:
            load_limit_table(str(path))

        assert exc_info.value.error_code == "LIMIT_TABLE_UNREADABLE"

    def test_duplicate_rows_invalid(self, tmp_path):
        row = {"fleet": "A320/B737", "window_kind": "duty_week", "metric": "duty",
               "window_days": 7, "max_hours": 60.0}
        path = tmp_path / "limits.json"
        path.write_text(json.dumps({"windows": [row, row]}))

        with pytest.raises(LimitTableException) as exc_info:
            load_limit_table(str(path))

        assert exc_info.value.error_code == "LIMIT_TABLE_INVALID"

    def test_wrong_shape_invalid(self, tmp_path):
        path = tmp_path / "limits.json"
        path.write_text(json.dumps([1, 2, 3]))

        with pytest.raises(ConfigurationException):
            load_limit_table(str(path))

    def test_custom_rule_book(self, tmp_path):
        path = tmp_path / "limits.json"
        path.write_text(json.dumps({
            "windows": [{"fleet": "A320/B737", "window_kind": "duty_week", "metric": "duty",
                         "window_days": 7, "max_hours": 55.0, "warning_ratio": 0.8}],
            "fleets": []
        }))

        table = load_limit_table(str(path))

        assert table.lookup(FleetTag.SHORT_HAUL, WindowKind.DUTY_WEEK).max_hours == 55.0
        assert table.rules_for(FleetTag.SHORT_HAUL) is None
        assert table.ceilings == ()

    def test_custom_ceilings(self, tmp_path):
        path = tmp_path / "limits.json"
        path.write_text(json.dumps({
            "windows": [],
            "fleets": [],
            "duty_ceilings": [
                {"fleet": "A320/B737", "crew_complement": 2, "sign_on_band": "early",
                 "max_sectors": 3, "max_duty_hours": 13.5},
                {"fleet": "A320/B737", "crew_complement": 2, "max_duty_hours": 11.0}
            ]
        }))

        table = load_limit_table(str(path))

        assert table.ceiling_for(FleetTag.SHORT_HAUL, 2, SignOnBand.EARLY, 2).max_duty_hours == 13.5
        assert table.ceiling_for(FleetTag.SHORT_HAUL, 2, SignOnBand.EARLY, 4).max_duty_hours == 11.0
        assert table.ceiling_for(FleetTag.SHORT_HAUL, 3, SignOnBand.EARLY, 1) is None

    def test_ceiling_with_unknown_band_invalid(self, tmp_path):
        path = tmp_path / "limits.json"
        path.write_text(json.dumps({
            "windows": [],
            "fleets": [],
            "duty_ceilings": [{"fleet": "A320/B737", "crew_complement": 2, "sign_on_band": "dawn",
                               "max_duty_hours": 13.0}]
        }))

        with pytest.raises(LimitTableException):
            load_limit_table(str(path))


class TestSignOnBand:

    @pytest.mark.parametrize("hour,minute,band", [
        (4, 59, SignOnBand.NIGHT),
        (5, 0, SignOnBand.EARLY),
        (14, 59, SignOnBand.EARLY),
        (15, 0, SignOnBand.AFTERNOON),
        (19, 59, SignOnBand.AFTERNOON),
        (20, 0, SignOnBand.NIGHT),
        (0, 0, SignOnBand.NIGHT),
    ])
    def test_bands(self, hour, minute, band):
        assert sign_on_band(datetime(2025, 3, 1, hour, minute)) == band
