from .orchestrator import ComplianceOrchestrator

__all__ = ['ComplianceOrchestrator']
