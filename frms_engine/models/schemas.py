"""
Data models and validation schemas for the FRMS compliance engine
"""
import datetime as dt
from typing import List, Optional, Dict, Any, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from enum import Enum

DEFAULT_DUTY_OVERHEAD_HOURS = 1.5

class FleetTag(str, Enum):
    """Fleet groupings that carry distinct rule sets"""
    SHORT_HAUL = "A320/B737"
    LONG_HAUL = "A380/A330/B787"

class WindowKind(str, Enum):
    """Rolling windows tracked by the limit table"""
    FLIGHT_WEEK = "flight_week"
    FLIGHT_MONTH = "flight_month"
    FLIGHT_YEAR = "flight_year"
    DUTY_WEEK = "duty_week"
    DUTY_FORTNIGHT = "duty_fortnight"

class TimeMetric(str, Enum):
    """Which hours a window accumulates"""
    FLIGHT = "flight"
    DUTY = "duty"

class RestFormula(str, Enum):
    """Post-duty rest calculation families"""
    PROPORTIONAL = "proportional"
    INCREMENTAL = "incremental"

class SignOnBand(str, Enum):
    """Local sign-on time bands used by the single-duty ceilings"""
    EARLY = "early"
    AFTERNOON = "afternoon"
    NIGHT = "night"

class OperationTimeClass(str, Enum):
    """How far a duty reaches into the night"""
    DAY = "day"
    LATE_NIGHT = "late_night"
    BACK_OF_CLOCK = "back_of_clock"

class ComplianceLevel(str, Enum):
    """Compliance classification, ordered by severity"""
    COMPLIANT = "compliant"
    WARNING = "warning"
    VIOLATION = "violation"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

_LEVEL_RANK = {
    ComplianceLevel.COMPLIANT: 0,
    ComplianceLevel.WARNING: 1,
    ComplianceLevel.VIOLATION: 2,
}

class ComplianceStatus(BaseModel):
    """Compliant, Warning(message) or Violation(message)"""
    model_config = ConfigDict(frozen=True)

    level: ComplianceLevel = Field(..., description="Classification")
    message: Optional[str] = Field(None, description="Explanation for warnings and violations")

    @classmethod
    def compliant(cls, message: Optional[str] = None) -> "ComplianceStatus":
        return cls(level=ComplianceLevel.COMPLIANT, message=message)

    @classmethod
    def warning(cls, message: str) -> "ComplianceStatus":
        return cls(level=ComplianceLevel.WARNING, message=message)

    @classmethod
    def violation(cls, message: str) -> "ComplianceStatus":
        return cls(level=ComplianceLevel.VIOLATION, message=message)

    @property
    def rank(self) -> int:
        return self.level.rank

    @property
    def is_compliant(self) -> bool:
        return self.level == ComplianceLevel.COMPLIANT

    @property
    def is_warning(self) -> bool:
        return self.level == ComplianceLevel.WARNING

    @property
    def is_violation(self) -> bool:
        return self.level == ComplianceLevel.VIOLATION

def _hours_between(start: dt.datetime, end: dt.datetime) -> float:
    return (end - start).total_seconds() / 3600

class FlightDutyRecord(BaseModel):
    """One logged or planned duty period"""
    model_config = ConfigDict(frozen=True)

    record_id: Optional[str] = Field(None, description="Source identifier")
    date: Optional[dt.date] = Field(None, description="Calendar day of the duty; None when missing or unparseable")
    duty_start: Optional[dt.datetime] = Field(None, description="Logged sign-on")
    duty_end: Optional[dt.datetime] = Field(None, description="Logged sign-off")
    scheduled_start: Optional[dt.datetime] = Field(None, description="Scheduled sign-on, used when no logged pair exists")
    scheduled_end: Optional[dt.datetime] = Field(None, description="Scheduled sign-off, used when no logged pair exists")
    flight_time: Optional[float] = Field(None, ge=0, description="Block plus simulator hours")
    fleet: Optional[FleetTag] = Field(None, description="Fleet classification")
    is_positioning: bool = Field(False, description="Non-operating (deadheading) duty")
    origin: Optional[str] = Field(None, description="Departure airport code")
    destination: Optional[str] = Field(None, description="Arrival airport code")
    crew_complement: int = Field(2, ge=2, le=4, description="Number of pilots")
    sectors: int = Field(1, ge=0, description="Sectors flown in the duty")

    @field_validator('origin', 'destination')
    @classmethod
    def normalize_airport(cls, v):
        if v is not None:
            v = v.strip().upper() or None
        return v

    @model_validator(mode='after')
    def check_time_pairs(self):
        if self.duty_start is not None and self.duty_end is not None:
            if self.duty_end < self.duty_start:
                raise ValueError('duty_end must not be before duty_start')
        if self.scheduled_start is not None and self.scheduled_end is not None:
            if self.scheduled_end < self.scheduled_start:
                raise ValueError('scheduled_end must not be before scheduled_start')
        start, end = self.resolved_start, self.resolved_end
        if start is not None and self.flight_time is not None:
            if _hours_between(start, end) < self.flight_time:
                raise ValueError('duty time must not be shorter than flight time')
        return self

    @property
    def has_logged_times(self) -> bool:
        return self.duty_start is not None and self.duty_end is not None

    @property
    def has_scheduled_times(self) -> bool:
        return self.scheduled_start is not None and self.scheduled_end is not None

    @property
    def resolved_start(self) -> Optional[dt.datetime]:
        if self.has_logged_times:
            return self.duty_start
        if self.has_scheduled_times:
            return self.scheduled_start
        return None

    @property
    def resolved_end(self) -> Optional[dt.datetime]:
        if self.has_logged_times:
            return self.duty_end
        if self.has_scheduled_times:
            return self.scheduled_end
        return None

    def duty_hours(self, overhead_hours: float = DEFAULT_DUTY_OVERHEAD_HOURS) -> Optional[float]:
        """Elapsed duty hours, or flight time plus overhead when no times exist"""
        start, end = self.resolved_start, self.resolved_end
        if start is not None:
            return _hours_between(start, end)
        if self.flight_time is not None:
            return self.flight_time + overhead_hours
        return None

    @property
    def duty_time(self) -> Optional[float]:
        return self.duty_hours()

class LimitEntry(BaseModel):
    """Regulatory ceiling for one (fleet, window) pair"""
    model_config = ConfigDict(frozen=True)

    fleet: FleetTag = Field(..., description="Fleet the limit applies to")
    window_kind: WindowKind = Field(..., description="Window identifier")
    metric: TimeMetric = Field(..., description="Hours accumulated by the window")
    window_days: int = Field(..., gt=0, description="Trailing window length in days")
    max_hours: float = Field(..., gt=0, description="Absolute ceiling for the window")
    warning_ratio: float = Field(0.9, gt=0, le=1.0, description="Fraction of max_hours that starts the warning band")

class FleetRules(BaseModel):
    """Per-fleet rules that are not rolling-window ceilings"""
    model_config = ConfigDict(frozen=True)

    fleet: FleetTag = Field(..., description="Fleet the rules apply to")
    long_haul: bool = Field(False, description="Whether the fleet belongs to the long-haul group")
    single_duty_max_hours: float = Field(..., gt=0, description="Longest permissible single duty")
    single_flight_max_hours: float = Field(..., gt=0, description="Most flight time in a single duty")
    min_rest_hours: float = Field(..., gt=0, description="Floor for post-duty rest")
    rest_formula: RestFormula = Field(..., description="Post-duty rest calculation family")
    min_turnaround_hours: Optional[float] = Field(None, gt=0, description="Home-base turnaround minimum; None when the fleet has no such rule")
    turnaround_warning_margin_hours: float = Field(2.0, ge=0, description="Band above the turnaround minimum reported as a warning")
    max_consecutive_duty_days: Optional[int] = Field(None, gt=0, description="Consecutive duty day limit")
    max_duty_days_in_11_days: Optional[int] = Field(None, gt=0, description="Duty days allowed in any 11-day period")
    max_consecutive_early_starts: Optional[int] = Field(None, gt=0, description="Consecutive days with an early sign-on")
    max_consecutive_late_nights: Optional[int] = Field(None, gt=0, description="Consecutive days with a late-night duty")
    single_sector_flight_max_hours: Optional[float] = Field(None, gt=0, description="Flight time ceiling for a single-sector 2-pilot duty")
    back_of_clock_earliest_sign_on_hour: Optional[int] = Field(None, ge=0, le=23, description="Earliest local sign-on hour after a back-of-clock duty")
    sign_on_minutes_before_std: int = Field(60, ge=0, description="Report time before scheduled departure")
    sign_off_minutes_after_in: int = Field(15, ge=0, description="Release time after arrival")

class DutyCeiling(BaseModel):
    """Single-duty ceiling for a crew complement, sign-on band and sector count"""
    model_config = ConfigDict(frozen=True)

    fleet: FleetTag = Field(..., description="Fleet the ceiling applies to")
    crew_complement: int = Field(..., ge=2, le=4, description="Number of pilots")
    sign_on_band: Optional[SignOnBand] = Field(None, description="Local sign-on band; None matches any")
    min_sectors: int = Field(1, ge=0, description="Fewest sectors the row covers")
    max_sectors: Optional[int] = Field(None, ge=0, description="Most sectors the row covers; None is unbounded")
    max_duty_hours: float = Field(..., gt=0, description="Longest permissible duty")
    max_flight_hours: Optional[float] = Field(None, gt=0, description="Flight time ceiling; the fleet default when None")

    def matches(self, crew_complement: int, band: SignOnBand, sectors: int) -> bool:
        if self.crew_complement != crew_complement:
            return False
        if self.sign_on_band is not None and self.sign_on_band != band:
            return False
        return sectors >= self.min_sectors and (self.max_sectors is None or sectors <= self.max_sectors)

class LimitTable(BaseModel):
    """Fleet-keyed table of regulatory thresholds"""
    model_config = ConfigDict(frozen=True)

    entries: Tuple[LimitEntry, ...] = Field(default_factory=tuple, description="One row per (fleet, window)")
    fleets: Dict[FleetTag, FleetRules] = Field(default_factory=dict, description="Non-window rules per fleet")
    ceilings: Tuple[DutyCeiling, ...] = Field(default_factory=tuple, description="Single-duty ceilings, first match wins")

    @model_validator(mode='after')
    def check_unique_rows(self):
        seen = set()
        for entry in self.entries:
            key = (entry.fleet, entry.window_kind)
            if key in seen:
                raise ValueError(f'duplicate limit row for {entry.fleet.value} {entry.window_kind.value}')
            seen.add(key)
        for fleet, rules in self.fleets.items():
            if rules.fleet != fleet:
                raise ValueError(f'rules keyed under {fleet.value} describe {rules.fleet.value}')
        return self

    def lookup(self, fleet: FleetTag, window_kind: WindowKind) -> Optional[LimitEntry]:
        for entry in self.entries:
            if entry.fleet == fleet and entry.window_kind == window_kind:
                return entry
        return None

    def entries_for(self, fleet: FleetTag) -> List[LimitEntry]:
        return [entry for entry in self.entries if entry.fleet == fleet]

    def rules_for(self, fleet: FleetTag) -> Optional[FleetRules]:
        return self.fleets.get(fleet)

    def ceilings_for(self, fleet: FleetTag) -> List[DutyCeiling]:
        return [ceiling for ceiling in self.ceilings if ceiling.fleet == fleet]

    def ceiling_for(self, fleet: FleetTag, crew_complement: int, band: SignOnBand,
                    sectors: int) -> Optional[DutyCeiling]:
        for ceiling in self.ceilings_for(fleet):
            if ceiling.matches(crew_complement, band, sectors):
                return ceiling
        return None

class FRMSConfiguration(BaseModel):
    """Read-only settings supplied by the host application"""
    model_config = ConfigDict(frozen=True)

    fleet: FleetTag = Field(..., description="Pilot's fleet")
    home_base: str = Field(..., min_length=1, description="Home base airport code")
    warning_ratio: Optional[float] = Field(None, gt=0, le=1.0, description="Overrides the table warning ratios")
    min_rest_hours: Optional[float] = Field(None, gt=0, description="Overrides the fleet rest floor")
    min_turnaround_hours: Optional[float] = Field(None, gt=0, description="Overrides the fleet turnaround minimum")
    turnaround_warning_margin_hours: Optional[float] = Field(None, ge=0, description="Overrides the turnaround warning band")
    sign_on_minutes_before_std: Optional[int] = Field(None, ge=0, description="Overrides the fleet report time")
    sign_off_minutes_after_in: Optional[int] = Field(None, ge=0, description="Overrides the fleet release time")
    duty_overhead_hours: float = Field(DEFAULT_DUTY_OVERHEAD_HOURS, ge=0, description="Report/debrief overhead for estimated duties")

    @field_validator('home_base')
    @classmethod
    def normalize_home_base(cls, v):
        return v.strip().upper()

class WindowTotals(BaseModel):
    """Flight and duty sums for one trailing window"""
    model_config = ConfigDict(frozen=True)

    window_days: int
    flight_hours: float = 0.0
    duty_hours: float = 0.0
    records_included: int = 0
    skipped_records: int = 0

class CumulativeTotals(BaseModel):
    """Per-window hours used as of a reference date"""
    model_config = ConfigDict(frozen=True)

    as_of: dt.date
    fleet: FleetTag
    hours_used: Dict[WindowKind, float] = Field(default_factory=dict)
    window_days: Dict[WindowKind, int] = Field(default_factory=dict)
    skipped_records: int = 0
    consecutive_duty_days: int = 0
    duty_days_in_11_days: int = 0
    consecutive_early_starts: int = 0
    consecutive_late_nights: int = 0
    days_off: Optional[int] = None
    days_off_window_days: Optional[int] = None

    def used(self, window_kind: WindowKind) -> float:
        return self.hours_used.get(window_kind, 0.0)

class NextDutyProjection(BaseModel):
    """Constraints on the pilot's next duty"""
    model_config = ConfigDict(frozen=True)

    max_duty_hours: float = Field(..., ge=0)
    max_flight_hours: float = Field(..., ge=0)
    min_rest_hours: float = Field(..., ge=0)
    earliest_start: Optional[dt.datetime] = None
    previous_duty_end: Optional[dt.datetime] = None
    governing_window: Optional[WindowKind] = None
    sign_on_band: Optional[SignOnBand] = None
    status: ComplianceStatus
    restrictions: List[str] = Field(default_factory=list)

    @property
    def is_legal_for_duty(self) -> bool:
        return self.max_duty_hours > 0

class BaseTurnaroundRequirement(BaseModel):
    """Minimum rest at home base after a trip"""
    model_config = ConfigDict(frozen=True)

    days_away: int
    credited_flight_hours: float
    min_hours: Optional[float] = None
    local_nights_required: int = 0
    reason: str = ""

class TurnaroundAssessment(BaseModel):
    """Outcome of the home-base turnaround check"""
    model_config = ConfigDict(frozen=True)

    status: ComplianceStatus
    applicable: bool = False
    evaluated: bool = False
    rest_hours: Optional[float] = None
    required_hours: Optional[float] = None
    local_nights: Optional[int] = None
    requirement: Optional[BaseTurnaroundRequirement] = None
    reason: str = ""

class FRMSComplianceReport(BaseModel):
    """Everything the presentation layer needs about a pilot's compliance"""
    model_config = ConfigDict(frozen=True)

    fleet: FleetTag
    home_base: str
    as_of: dt.date
    totals: CumulativeTotals
    window_statuses: Dict[WindowKind, ComplianceStatus] = Field(default_factory=dict)
    duty_day_statuses: Dict[str, ComplianceStatus] = Field(default_factory=dict)
    next_duty: NextDutyProjection
    turnaround: TurnaroundAssessment
    skipped_records: int = 0
    configuration_errors: List[str] = Field(default_factory=list)
    worst_status: ComplianceStatus

    def summary(self) -> Dict[str, Any]:
        """JSON-friendly digest"""
        return {
            "fleet": self.fleet.value,
            "home_base": self.home_base,
            "as_of": self.as_of.isoformat(),
            "worst_status": self.worst_status.level.value,
            "windows": {
                kind.value: {
                    "hours_used": self.totals.used(kind),
                    "window_days": self.totals.window_days.get(kind),
                    "status": status.level.value,
                    "message": status.message,
                }
                for kind, status in self.window_statuses.items()
            },
            "duty_days": {
                name: status.level.value for name, status in self.duty_day_statuses.items()
            },
            "counters": {
                "consecutive_duty_days": self.totals.consecutive_duty_days,
                "duty_days_in_11_days": self.totals.duty_days_in_11_days,
                "consecutive_early_starts": self.totals.consecutive_early_starts,
                "consecutive_late_nights": self.totals.consecutive_late_nights,
                "days_off": self.totals.days_off,
                "days_off_window_days": self.totals.days_off_window_days,
            },
            "next_duty": {
                "max_duty_hours": self.next_duty.max_duty_hours,
                "max_flight_hours": self.next_duty.max_flight_hours,
                "min_rest_hours": self.next_duty.min_rest_hours,
                "earliest_start": self.next_duty.earliest_start.isoformat() if self.next_duty.earliest_start else None,
                "governing_window": self.next_duty.governing_window.value if self.next_duty.governing_window else None,
                "sign_on_band": self.next_duty.sign_on_band.value if self.next_duty.sign_on_band else None,
                "restrictions": list(self.next_duty.restrictions),
            },
            "turnaround": {
                "status": self.turnaround.status.level.value,
                "evaluated": self.turnaround.evaluated,
                "rest_hours": self.turnaround.rest_hours,
                "required_hours": self.turnaround.required_hours,
                "reason": self.turnaround.reason,
            },
            "skipped_records": self.skipped_records,
            "configuration_errors": list(self.configuration_errors),
        }

def validate_flight_duty_records(record_data: List[Dict[str, Any]]) -> List[FlightDutyRecord]:
    """Validate and convert raw record dictionaries"""
    return [FlightDutyRecord(**record) for record in record_data]
