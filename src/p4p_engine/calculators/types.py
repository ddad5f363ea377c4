"""Type definitions for the P4P calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

ZERO = Decimal("0")


def _coerce_decimals(record: Any, *names: str) -> None:
    """Convert numeric fields of a frozen record to Decimal in place."""
    for name in names:
        value = getattr(record, name)
        if value is None or isinstance(value, Decimal):
            continue
        if isinstance(value, float):
            value = str(value)
        object.__setattr__(record, name, Decimal(value))


def _coerce_enum(record: Any, name: str, enum_type: type[Enum]) -> None:
    value = getattr(record, name)
    if value is not None and not isinstance(value, enum_type):
        object.__setattr__(record, name, enum_type(value))


# ============================================================================
# Enumerations
# ============================================================================


class PeriodType(str, Enum):
    """Bimonthly pay period types."""

    A = "11-25"
    B = "26-10"


class JobStatus(str, Enum):
    """Job lifecycle status values."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FLAGGED = "flagged"
    ON_HOLD = "on_hold"


class JobCategory(str, Enum):
    """Job duration category."""

    SINGLE_DAY = "single_day"
    MULTI_DAY = "multi_day"


class IncidentType(str, Enum):
    """Incident types affecting performance pay."""

    QUALITY_ISSUE = "quality_issue"
    PROPERTY_DAMAGE = "property_damage"
    EQUIPMENT_DAMAGE = "equipment_damage"
    CUSTOMER_REVIEW = "customer_review"
    ESTIMATE_COMPLETED = "estimate_completed"


# Incidents whose cost is deducted from performance pay
DEDUCTIBLE_INCIDENT_TYPES = frozenset(
    {
        IncidentType.QUALITY_ISSUE,
        IncidentType.PROPERTY_DAMAGE,
        IncidentType.EQUIPMENT_DAMAGE,
    }
)

# Incidents paid as a flat bonus
BONUS_INCIDENT_TYPES = frozenset(
    {IncidentType.CUSTOMER_REVIEW, IncidentType.ESTIMATE_COMPLETED}
)


class CalculationStatus(str, Enum):
    """Outcome of a single assignment calculation."""

    CALCULATED = "calculated"
    NOT_READY = "not_ready"  # job not completed yet, nothing to pay
    SKIPPED = "skipped"  # data-integrity problem, zero result


class LineType(str, Enum):
    """Pay line item types.

    Everything except WAGE_FLOOR_SUPPLEMENT adds up to performance pay. The
    supplement is reported for payroll to top up separately.
    """

    BASE_SHARE = "BASE_SHARE"
    SEASONAL_BONUS = "SEASONAL_BONUS"
    TRAINING_BONUS = "TRAINING_BONUS"
    LARGE_JOB_BONUS = "LARGE_JOB_BONUS"
    REVIEW_BONUS = "REVIEW_BONUS"
    INCIDENT_DEDUCTION = "INCIDENT_DEDUCTION"
    WAGE_FLOOR_SUPPLEMENT = "WAGE_FLOOR_SUPPLEMENT"


# ============================================================================
# Pay periods
# ============================================================================

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class PayPeriod:
    """A bimonthly pay period. ``end`` is inclusive (end of day)."""

    start: date
    end: date
    period_type: PeriodType

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Pay period start {self.start} is after end {self.end}")

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'February 26 - March 10, 2024'."""
        start_month = MONTH_NAMES[self.start.month - 1]
        if self.period_type == PeriodType.A:
            return f"{start_month} 11-25, {self.start.year}"
        end_month = MONTH_NAMES[self.end.month - 1]
        return f"{start_month} 26 - {end_month} 10, {self.start.year}"

    def contains(self, day: date | datetime) -> bool:
        """Check if a date falls within this period."""
        if isinstance(day, datetime):
            if day.tzinfo is not None:
                day = day.astimezone()
            day = day.date()
        return self.start <= day <= self.end


@dataclass(frozen=True)
class PayPeriodSummary:
    """Dashboard view of a pay period relative to a point in time."""

    period: PayPeriod
    progress_percent: float
    working_days_total: int
    working_days_remaining: int
    is_current_period: bool


# ============================================================================
# Input records
# ============================================================================


@dataclass(frozen=True)
class P4PRules:
    """Active P4P policy parameters for one job type."""

    job_type: str
    minimum_hourly_rate: Decimal
    revenue_share_percent: Decimal = Decimal("33")
    seasonal_bonus_percent: Decimal = Decimal("7")
    training_bonus_per_hour: Decimal = Decimal("4")
    large_job_hour_threshold: Decimal = Decimal("49")
    large_job_bonus_per_hour: Decimal = Decimal("1.50")
    seasonal_start_month: int = 3
    seasonal_end_month: int = 5
    active: bool = True
    config_id: UUID | None = None

    def __post_init__(self) -> None:
        _coerce_decimals(
            self,
            "minimum_hourly_rate",
            "revenue_share_percent",
            "seasonal_bonus_percent",
            "training_bonus_per_hour",
            "large_job_hour_threshold",
            "large_job_bonus_per_hour",
        )
        if not self.job_type:
            raise ValueError("job_type is required")
        for name in ("revenue_share_percent", "seasonal_bonus_percent"):
            value = getattr(self, name)
            if not ZERO <= value <= Decimal("100"):
                raise ValueError(f"{name} must be between 0 and 100, got {value}")
        for name in (
            "minimum_hourly_rate",
            "training_bonus_per_hour",
            "large_job_hour_threshold",
            "large_job_bonus_per_hour",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        for name in ("seasonal_start_month", "seasonal_end_month"):
            if not 1 <= getattr(self, name) <= 12:
                raise ValueError(f"{name} must be a month number 1-12")

    def in_seasonal_window(self, month: int) -> bool:
        """Check if a month falls in the seasonal window (may wrap year end)."""
        if self.seasonal_start_month <= self.seasonal_end_month:
            return self.seasonal_start_month <= month <= self.seasonal_end_month
        return month >= self.seasonal_start_month or month <= self.seasonal_end_month


@dataclass(frozen=True)
class JobRecord:
    """A job as seen by the calculation engine."""

    job_id: UUID
    job_type: str
    budgeted_hours: Decimal
    labor_revenue: Decimal
    status: JobStatus = JobStatus.PENDING
    category: JobCategory = JobCategory.SINGLE_DAY
    actual_hours: Decimal | None = None
    is_seasonal_eligible: bool = False
    start_date: date | None = None
    end_date: date | None = None
    completed_at: datetime | None = None
    spans_pay_periods: bool = False

    def __post_init__(self) -> None:
        _coerce_decimals(self, "budgeted_hours", "labor_revenue", "actual_hours")
        _coerce_enum(self, "status", JobStatus)
        _coerce_enum(self, "category", JobCategory)
        if self.budgeted_hours < 0:
            raise ValueError("budgeted_hours cannot be negative")
        if self.labor_revenue < 0:
            raise ValueError("labor_revenue cannot be negative")
        if self.actual_hours is not None and self.actual_hours < 0:
            raise ValueError("actual_hours cannot be negative")
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.end_date < self.start_date
        ):
            raise ValueError(
                f"Job {self.job_id} ends ({self.end_date}) before it starts ({self.start_date})"
            )
        if self.status == JobStatus.COMPLETED and self.completed_at is None:
            raise ValueError(f"Completed job {self.job_id} has no completed_at")

    @property
    def is_completed(self) -> bool:
        return self.status == JobStatus.COMPLETED

    def is_large_job(self, rules: P4PRules) -> bool:
        """Large jobs meet or exceed the configured budgeted-hours threshold."""
        return self.budgeted_hours >= rules.large_job_hour_threshold

    def in_seasonal_window(self, rules: P4PRules) -> bool:
        """Check if the job was completed inside the seasonal window."""
        if self.completed_at is None:
            return False
        return rules.in_seasonal_window(self.completed_at.month)

    def qualifies_for_seasonal_bonus(self, rules: P4PRules) -> bool:
        return self.is_seasonal_eligible and self.in_seasonal_window(rules)


@dataclass(frozen=True)
class AssignmentRecord:
    """One employee's participation in a job."""

    assignment_id: UUID
    job_id: UUID
    employee_id: UUID
    hours_worked: Decimal = ZERO  # incl. travel/breaks, wage-floor basis
    jobsite_hours: Decimal = ZERO  # productive time, P4P rate basis
    is_leader: bool = False
    is_training: bool = False
    performance_pay: Decimal = ZERO
    is_hourly_payment: bool = False
    pay_period_type: PeriodType | None = None
    pay_period_start: date | None = None
    pay_period_end: date | None = None
    work_date: date | None = None
    hourly_paid: Decimal = ZERO  # interim pay issued in the work-date period
    reconciled_period_start: date | None = None  # period the true-up is paid in

    def __post_init__(self) -> None:
        _coerce_decimals(
            self, "hours_worked", "jobsite_hours", "performance_pay", "hourly_paid"
        )
        _coerce_enum(self, "pay_period_type", PeriodType)
        if self.hours_worked < 0:
            raise ValueError("hours_worked cannot be negative")
        if self.jobsite_hours < 0:
            raise ValueError("jobsite_hours cannot be negative")


@dataclass(frozen=True)
class EmployeeRecord:
    """Crew member with an individual wage floor."""

    employee_id: UUID
    name: str
    base_hourly_rate: Decimal
    position: str = ""
    active: bool = True

    def __post_init__(self) -> None:
        _coerce_decimals(self, "base_hourly_rate")
        if self.base_hourly_rate < 0:
            raise ValueError("base_hourly_rate cannot be negative")


@dataclass(frozen=True)
class IncidentRecord:
    """Quality/damage incident or review/estimate credit."""

    incident_id: UUID
    employee_id: UUID
    incident_type: IncidentType
    cost: Decimal = ZERO
    resolved: bool = False
    job_id: UUID | None = None
    occurred_on: date | None = None

    def __post_init__(self) -> None:
        _coerce_decimals(self, "cost")
        _coerce_enum(self, "incident_type", IncidentType)
        if self.cost < 0:
            raise ValueError("incident cost cannot be negative")


# ============================================================================
# Calculation outputs
# ============================================================================


@dataclass
class LineCandidate:
    """A pay line explaining one component of an assignment's pay."""

    line_type: LineType
    amount: Decimal  # signed: deductions negative

    quantity: Decimal | None = None
    rate: Decimal | None = None
    source_id: UUID | None = None
    explanation: str | None = None
    line_hash: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "line_type": self.line_type.value,
            "amount": str(self.amount),
            "quantity": str(self.quantity) if self.quantity is not None else None,
            "rate": str(self.rate) if self.rate is not None else None,
            "source_id": str(self.source_id) if self.source_id else None,
        }


@dataclass(frozen=True)
class IncidentAdjustment:
    """Aggregated outstanding incidents for one employee."""

    deductions: Decimal = ZERO
    bonuses: Decimal = ZERO
    deduction_count: int = 0
    bonus_count: int = 0

    @property
    def net(self) -> Decimal:
        """Amount subtracted from P4P; negative when bonuses dominate."""
        return self.deductions - self.bonuses


@dataclass
class P4PResult:
    """Result of calculating performance pay for one assignment."""

    assignment_id: UUID
    employee_id: UUID
    job_id: UUID
    status: CalculationStatus
    performance_pay: Decimal = ZERO
    hourly_equivalent: Decimal = ZERO
    minimum_pay: Decimal = ZERO
    shortfall: Decimal = ZERO
    team_size: int = 0
    revenue_share_percent: Decimal = ZERO
    hours_worked: Decimal = ZERO
    jobsite_hours: Decimal = ZERO
    lines: list[LineCandidate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    inputs_fingerprint: str = ""
    calculation_id: UUID | None = None
    is_reconciled: bool = False

    @classmethod
    def zero(
        cls,
        assignment: AssignmentRecord,
        status: CalculationStatus,
        warning: str | None = None,
    ) -> P4PResult:
        """Zero-value result that downstream aggregation can sum safely."""
        return cls(
            assignment_id=assignment.assignment_id,
            employee_id=assignment.employee_id,
            job_id=assignment.job_id,
            status=status,
            hours_worked=assignment.hours_worked,
            jobsite_hours=assignment.jobsite_hours,
            warnings=[warning] if warning else [],
        )

    @property
    def is_calculated(self) -> bool:
        return self.status == CalculationStatus.CALCULATED

    def amount_for(self, *line_types: LineType) -> Decimal:
        """Sum of line amounts of the given types."""
        return sum(
            (line.amount for line in self.lines if line.line_type in line_types),
            ZERO,
        )

    @property
    def base_pay(self) -> Decimal:
        """Revenue share per worker, seasonal portion included."""
        return self.amount_for(LineType.BASE_SHARE, LineType.SEASONAL_BONUS)

    @property
    def seasonal_bonus(self) -> Decimal:
        return self.amount_for(LineType.SEASONAL_BONUS)

    @property
    def training_bonus(self) -> Decimal:
        return self.amount_for(LineType.TRAINING_BONUS)

    @property
    def large_job_bonus(self) -> Decimal:
        return self.amount_for(LineType.LARGE_JOB_BONUS)

    @property
    def incident_adjustment(self) -> Decimal:
        """Deductions minus review/estimate bonuses, as a positive charge."""
        return -self.amount_for(LineType.INCIDENT_DEDUCTION, LineType.REVIEW_BONUS)


@dataclass(frozen=True)
class InterimPayment:
    """Hourly pay issued while a period-spanning project is still open."""

    assignment_id: UUID
    employee_id: UUID
    hours_worked: Decimal
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class ReconciliationLine:
    """Final P4P for one worker of a period-spanning job."""

    assignment_id: UUID
    employee_id: UUID
    hours_worked: Decimal
    hourly_portion: Decimal
    proportional_share: Decimal
    training_bonus: Decimal
    minimum_pay: Decimal
    final_p4p: Decimal
    previously_paid: Decimal
    adjustment: Decimal

    @property
    def floor_applied(self) -> bool:
        return self.final_p4p > self.proportional_share + self.training_bonus


@dataclass
class ReconciliationOutcome:
    """Result of reconciling a completed period-spanning job."""

    job_id: UUID
    pool: Decimal = ZERO
    total_hours: Decimal = ZERO
    lines: list[ReconciliationLine] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def reconciled(self) -> bool:
        return self.skipped_reason is None

    @property
    def total_final(self) -> Decimal:
        return sum((line.final_p4p for line in self.lines), ZERO)

    @property
    def total_adjustment(self) -> Decimal:
        return sum((line.adjustment for line in self.lines), ZERO)
