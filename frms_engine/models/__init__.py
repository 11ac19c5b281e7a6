"""
Data models for the FRMS compliance engine
"""
from .schemas import (
    FleetTag, WindowKind, TimeMetric, RestFormula, SignOnBand, OperationTimeClass,
    ComplianceLevel, ComplianceStatus, DutyCeiling,
    FlightDutyRecord, LimitEntry, FleetRules, LimitTable, FRMSConfiguration,
    WindowTotals, CumulativeTotals, NextDutyProjection,
    BaseTurnaroundRequirement, TurnaroundAssessment, FRMSComplianceReport,
    DEFAULT_DUTY_OVERHEAD_HOURS, validate_flight_duty_records
)

__all__ = [
    'FleetTag', 'WindowKind', 'TimeMetric', 'RestFormula', 'SignOnBand', 'OperationTimeClass',
    'ComplianceLevel', 'ComplianceStatus', 'DutyCeiling',
    'FlightDutyRecord', 'LimitEntry', 'FleetRules', 'LimitTable', 'FRMSConfiguration',
    'WindowTotals', 'CumulativeTotals', 'NextDutyProjection',
    'BaseTurnaroundRequirement', 'TurnaroundAssessment', 'FRMSComplianceReport',
    'DEFAULT_DUTY_OVERHEAD_HOURS', 'validate_flight_duty_records'
]
