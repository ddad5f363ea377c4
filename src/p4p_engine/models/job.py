"""Job and job assignment models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from p4p_engine.calculators.types import AssignmentRecord, JobRecord
from p4p_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from p4p_engine.models.employee import Employee


class Job(Base, TimestampMixin):
    """A field-service job with its budget and revenue."""

    __tablename__ = "job"

    job_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    job_type: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False, default="single_day")
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    budgeted_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    actual_hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    labor_revenue: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_seasonal_eligible: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    completed_at: Mapped[datetime | None] = mapped_column()
    spans_pay_periods: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'flagged', 'on_hold')",
            name="job_status_check",
        ),
        CheckConstraint(
            "category IN ('single_day', 'multi_day')",
            name="job_category_check",
        ),
        CheckConstraint(
            "budgeted_hours >= 0 AND labor_revenue >= 0",
            name="job_amounts_check",
        ),
        CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name="job_dates_check",
        ),
    )

    # Relationships
    assignments: Mapped[list[JobAssignment]] = relationship(back_populates="job")

    def to_record(self) -> JobRecord:
        return JobRecord(
            job_id=self.job_id,
            job_type=self.job_type,
            category=self.category,
            status=self.status,
            budgeted_hours=self.budgeted_hours,
            actual_hours=self.actual_hours,
            labor_revenue=self.labor_revenue,
            is_seasonal_eligible=self.is_seasonal_eligible,
            start_date=self.start_date,
            end_date=self.end_date,
            completed_at=self.completed_at,
            spans_pay_periods=self.spans_pay_periods,
        )


class JobAssignment(Base, TimestampMixin):
    """One employee's hours and pay on a job."""

    __tablename__ = "job_assignment"

    assignment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    job_id: Mapped[UUID] = mapped_column(
        ForeignKey("job.job_id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"), nullable=False
    )
    hours_worked: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    jobsite_hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    is_leader: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_training: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    performance_pay: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    is_hourly_payment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    hourly_paid: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )

    # Pay period the assignment is attributed to
    pay_period_type: Mapped[str | None] = mapped_column(String)
    pay_period_start: Mapped[date | None] = mapped_column(Date)
    pay_period_end: Mapped[date | None] = mapped_column(Date)
    work_date: Mapped[date | None] = mapped_column(Date)

    # Pay period a reconciled spanning job pays its true-up in
    reconciled_period_start: Mapped[date | None] = mapped_column(Date)

    __table_args__ = (
        UniqueConstraint("job_id", "employee_id", name="job_assignment_job_employee_key"),
        CheckConstraint(
            "hours_worked >= 0 AND jobsite_hours >= 0",
            name="job_assignment_hours_check",
        ),
        CheckConstraint(
            "pay_period_type IS NULL OR pay_period_type IN ('11-25', '26-10')",
            name="job_assignment_period_type_check",
        ),
    )

    # Relationships
    job: Mapped[Job] = relationship(back_populates="assignments")
    employee: Mapped[Employee] = relationship(back_populates="assignments")

    def to_record(self) -> AssignmentRecord:
        return AssignmentRecord(
            assignment_id=self.assignment_id,
            job_id=self.job_id,
            employee_id=self.employee_id,
            hours_worked=self.hours_worked,
            jobsite_hours=self.jobsite_hours,
            is_leader=self.is_leader,
            is_training=self.is_training,
            performance_pay=self.performance_pay,
            is_hourly_payment=self.is_hourly_payment,
            pay_period_type=self.pay_period_type,
            pay_period_start=self.pay_period_start,
            pay_period_end=self.pay_period_end,
            work_date=self.work_date,
            hourly_paid=self.hourly_paid,
            reconciled_period_start=self.reconciled_period_start,
        )
