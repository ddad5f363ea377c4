"""Pydantic schemas for CLI output.

Built from the calculator dataclasses with ``from_attributes``; dump with
``mode="json"`` so Decimals come out as strings.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from p4p_engine.analyzers.compliance import ComplianceAssessment
from p4p_engine.calculators.pay_period import format_period
from p4p_engine.calculators.types import CalculationStatus, LineType, PayPeriod, PeriodType


class OutputBase(BaseModel):
    """Base schema reading attributes from domain objects."""

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Pay period schemas
# ============================================================================


class PayPeriodResponse(OutputBase):
    """Schema for a pay period."""

    start: date
    end: date
    period_type: PeriodType
    label: str
    display: str

    @classmethod
    def from_period(cls, period: PayPeriod) -> "PayPeriodResponse":
        return cls(
            start=period.start,
            end=period.end,
            period_type=period.period_type,
            label=period.label,
            display=format_period(period),
        )


class PayPeriodSummaryResponse(BaseModel):
    """Schema for the dashboard pay period summary."""

    period: PayPeriodResponse
    progress_percent: float
    working_days_total: int
    working_days_remaining: int
    is_current_period: bool


# ============================================================================
# Calculation schemas
# ============================================================================


class PayLineResponse(OutputBase):
    """Schema for a pay line."""

    line_type: LineType
    amount: Decimal
    quantity: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None
    line_hash: str | None = None


class P4PResultResponse(OutputBase):
    """Schema for one assignment's performance pay."""

    assignment_id: UUID
    employee_id: UUID
    job_id: UUID
    status: CalculationStatus
    performance_pay: Decimal
    hourly_equivalent: Decimal
    minimum_pay: Decimal
    shortfall: Decimal
    team_size: int
    revenue_share_percent: Decimal
    hours_worked: Decimal
    jobsite_hours: Decimal
    base_pay: Decimal
    training_bonus: Decimal
    large_job_bonus: Decimal
    incident_adjustment: Decimal
    is_reconciled: bool
    calculation_id: UUID | None = None
    inputs_fingerprint: str
    lines: list[PayLineResponse]
    warnings: list[str]


class JobOutcomeResponse(OutputBase):
    """Schema for one job in a batch."""

    job_id: UUID
    succeeded: int
    skipped: int
    failed: int
    errors: list[str]
    results: list[P4PResultResponse]


class BatchSummaryResponse(OutputBase):
    """Schema for a batch recalculation."""

    jobs_processed: int
    jobs_failed: int
    assignments_succeeded: int
    assignments_skipped: int
    total_performance_pay: Decimal
    totals_by_line_type: dict[LineType, Decimal]
    outcomes: list[JobOutcomeResponse]


# ============================================================================
# Reporting schemas
# ============================================================================


class EmployeePeriodSummaryResponse(OutputBase):
    """Schema for one employee's pay in a period."""

    employee_id: UUID
    name: str
    total_hours: Decimal
    hourly_pay: Decimal
    performance_pay: Decimal
    reconciliation_adjustment: Decimal
    total_pay: Decimal
    minimum_pay: Decimal
    wage_floor_supplement: Decimal
    effective_hourly_rate: Decimal
    assignment_count: int
    pending_p4p_jobs: int


class PayrollReportResponse(BaseModel):
    """Schema for the payroll report of a period."""

    period: PayPeriodResponse
    total_hours: Decimal
    total_pay: Decimal
    total_supplement: Decimal
    rows: list[EmployeePeriodSummaryResponse]


# ============================================================================
# Analyzer schemas
# ============================================================================


class AssignmentComplianceResponse(OutputBase):
    """Schema for one assignment's compliance."""

    assignment_id: UUID
    employee_id: UUID
    job_id: UUID
    job_type: str
    hours_worked: Decimal
    actual_p4p: Decimal
    expected_p4p: Decimal
    minimum_required: Decimal
    shortfall: Decimal
    hourly_equivalent: Decimal
    meets_minimum: bool
    calculation_correct: bool
    compliant: bool


class ComplianceReportResponse(OutputBase):
    """Schema for the compliance report."""

    compliant_count: int
    compliance_rate: Decimal
    assessment: ComplianceAssessment
    total_shortfall: Decimal
    entries: list[AssignmentComplianceResponse]
    errors: dict[UUID, str]


class AchievementResultResponse(OutputBase):
    """Schema for an evaluated achievement."""

    employee_id: UUID
    week_start: date
    achievement_type: str
    title: str
    earned: bool
    value: Decimal
