"""P4P engine services."""

from p4p_engine.services.contingency_service import PayPeriodContingencyService
from p4p_engine.services.job_service import JobService
from p4p_engine.services.reporting_service import ReportingService
from p4p_engine.services.state_machine import JobStateMachine

__all__ = [
    "JobStateMachine",
    "JobService",
    "PayPeriodContingencyService",
    "ReportingService",
]
