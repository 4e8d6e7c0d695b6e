"""Recovery flows driven by check results."""

from .group_remediation import GroupRemediation, RemediationAction, RemediationReport, plan_remediation
from .orchestrator import RecoveryOrchestrator, ScheduleCycle

__all__ = [
    "GroupRemediation",
    "RecoveryOrchestrator",
    "RemediationAction",
    "RemediationReport",
    "ScheduleCycle",
    "plan_remediation",
]
