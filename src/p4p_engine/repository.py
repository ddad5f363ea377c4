"""Persistence boundary for the P4P engine.

The engine and services talk to storage only through ``P4PRepository`` and
only exchange the frozen records from ``calculators.types``. ORM rows never
leave this module.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from p4p_engine.calculators.types import (
    AssignmentRecord,
    EmployeeRecord,
    IncidentRecord,
    JobRecord,
    JobStatus,
    P4PRules,
    PayPeriod,
)
from p4p_engine.exceptions import RecordNotFoundError
from p4p_engine.models import Employee, Incident, Job, JobAssignment, P4PConfiguration


class P4PRepository(Protocol):
    """Read/write operations the engine needs from storage."""

    # ===== Reads =====

    async def get_job(self, job_id: UUID) -> JobRecord | None: ...

    async def get_assignment(self, assignment_id: UUID) -> AssignmentRecord | None: ...

    async def get_assignments_for_job(self, job_id: UUID) -> list[AssignmentRecord]: ...

    async def get_active_configs(self, job_type: str) -> list[P4PRules]: ...

    async def get_incidents_for_employee(
        self, employee_id: UUID
    ) -> list[IncidentRecord]: ...

    async def get_employee(self, employee_id: UUID) -> EmployeeRecord | None: ...

    async def list_job_ids(self, status: JobStatus | None = None) -> list[UUID]: ...

    async def get_assignments_for_period(
        self, period: PayPeriod, employee_id: UUID | None = None
    ) -> list[AssignmentRecord]: ...

    async def get_reconciled_assignments_for_period(
        self, period: PayPeriod, employee_id: UUID | None = None
    ) -> list[AssignmentRecord]: ...

    async def get_assignments_for_employee(
        self, employee_id: UUID, start: date, end: date
    ) -> list[AssignmentRecord]: ...

    async def list_employees(self, active_only: bool = True) -> list[EmployeeRecord]: ...

    # ===== Writes =====

    async def set_assignment_performance_pay(
        self, assignment_id: UUID, amount: Decimal
    ) -> None: ...

    async def set_assignment_hourly_flag(
        self, assignment_id: UUID, is_hourly_payment: bool
    ) -> None: ...

    async def set_assignment_hourly_paid(
        self, assignment_id: UUID, amount: Decimal
    ) -> None: ...

    async def mark_job_spans_periods(self, job_id: UUID, spans: bool = True) -> None: ...

    async def set_assignment_pay_period(
        self, assignment_id: UUID, period: PayPeriod
    ) -> None: ...

    async def set_assignment_reconciled_period(
        self, assignment_id: UUID, period: PayPeriod
    ) -> None: ...

    async def add_job(self, job: JobRecord) -> JobRecord: ...

    async def add_assignment(self, assignment: AssignmentRecord) -> AssignmentRecord: ...

    async def set_job_status(
        self,
        job_id: UUID,
        status: JobStatus,
        completed_at: datetime | None = None,
    ) -> JobRecord: ...


class SqlAlchemyP4PRepository:
    """``P4PRepository`` backed by an async SQLAlchemy session.

    Writes are flushed, never committed; the session owner decides when the
    unit of work ends.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ===== Reads =====

    async def get_job(self, job_id: UUID) -> JobRecord | None:
        job = await self.session.get(Job, job_id)
        return job.to_record() if job is not None else None

    async def get_assignment(self, assignment_id: UUID) -> AssignmentRecord | None:
        assignment = await self.session.get(JobAssignment, assignment_id)
        return assignment.to_record() if assignment is not None else None

    async def get_assignments_for_job(self, job_id: UUID) -> list[AssignmentRecord]:
        result = await self.session.execute(
            select(JobAssignment)
            .where(JobAssignment.job_id == job_id)
            .order_by(JobAssignment.created_at, JobAssignment.assignment_id)
        )
        return [a.to_record() for a in result.scalars()]

    async def get_active_configs(self, job_type: str) -> list[P4PRules]:
        result = await self.session.execute(
            select(P4PConfiguration)
            .where(
                P4PConfiguration.job_type == job_type,
                P4PConfiguration.is_active.is_(True),
            )
            .order_by(P4PConfiguration.config_id)
        )
        return [c.to_rules() for c in result.scalars()]

    async def get_incidents_for_employee(self, employee_id: UUID) -> list[IncidentRecord]:
        result = await self.session.execute(
            select(Incident)
            .where(Incident.employee_id == employee_id)
            .order_by(Incident.incident_id)
        )
        return [i.to_record() for i in result.scalars()]

    async def get_employee(self, employee_id: UUID) -> EmployeeRecord | None:
        employee = await self.session.get(Employee, employee_id)
        return employee.to_record() if employee is not None else None

    async def list_job_ids(self, status: JobStatus | None = None) -> list[UUID]:
        query = select(Job.job_id).order_by(Job.created_at, Job.job_id)
        if status is not None:
            query = query.where(Job.status == status.value)
        result = await self.session.execute(query)
        return list(result.scalars())

    async def get_assignments_for_period(
        self, period: PayPeriod, employee_id: UUID | None = None
    ) -> list[AssignmentRecord]:
        query = select(JobAssignment).where(
            JobAssignment.pay_period_start == period.start
        )
        if employee_id is not None:
            query = query.where(JobAssignment.employee_id == employee_id)
        result = await self.session.execute(
            query.order_by(JobAssignment.employee_id, JobAssignment.assignment_id)
        )
        return [a.to_record() for a in result.scalars()]

    async def get_reconciled_assignments_for_period(
        self, period: PayPeriod, employee_id: UUID | None = None
    ) -> list[AssignmentRecord]:
        """Assignments of spanning jobs whose true-up is paid in ``period``."""
        query = select(JobAssignment).where(
            JobAssignment.reconciled_period_start == period.start
        )
        if employee_id is not None:
            query = query.where(JobAssignment.employee_id == employee_id)
        result = await self.session.execute(
            query.order_by(JobAssignment.employee_id, JobAssignment.assignment_id)
        )
        return [a.to_record() for a in result.scalars()]

    async def get_assignments_for_employee(
        self, employee_id: UUID, start: date, end: date
    ) -> list[AssignmentRecord]:
        """Assignments whose work date falls in ``[start, end]``."""
        result = await self.session.execute(
            select(JobAssignment)
            .where(
                JobAssignment.employee_id == employee_id,
                JobAssignment.work_date >= start,
                JobAssignment.work_date <= end,
            )
            .order_by(JobAssignment.work_date, JobAssignment.assignment_id)
        )
        return [a.to_record() for a in result.scalars()]

    async def list_employees(self, active_only: bool = True) -> list[EmployeeRecord]:
        query = select(Employee).order_by(Employee.name, Employee.employee_id)
        if active_only:
            query = query.where(Employee.is_active.is_(True))
        result = await self.session.execute(query)
        return [e.to_record() for e in result.scalars()]

    # ===== Writes =====

    async def _load_assignment(self, assignment_id: UUID) -> JobAssignment:
        assignment = await self.session.get(JobAssignment, assignment_id)
        if assignment is None:
            raise RecordNotFoundError("Assignment", assignment_id)
        return assignment

    async def _load_job(self, job_id: UUID) -> Job:
        job = await self.session.get(Job, job_id)
        if job is None:
            raise RecordNotFoundError("Job", job_id)
        return job

    async def set_assignment_performance_pay(
        self, assignment_id: UUID, amount: Decimal
    ) -> None:
        assignment = await self._load_assignment(assignment_id)
        assignment.performance_pay = amount
        await self.session.flush()

    async def set_assignment_hourly_flag(
        self, assignment_id: UUID, is_hourly_payment: bool
    ) -> None:
        assignment = await self._load_assignment(assignment_id)
        assignment.is_hourly_payment = is_hourly_payment
        await self.session.flush()

    async def set_assignment_hourly_paid(
        self, assignment_id: UUID, amount: Decimal
    ) -> None:
        assignment = await self._load_assignment(assignment_id)
        assignment.hourly_paid = amount
        await self.session.flush()

    async def mark_job_spans_periods(self, job_id: UUID, spans: bool = True) -> None:
        job = await self._load_job(job_id)
        job.spans_pay_periods = spans
        await self.session.flush()

    async def set_assignment_pay_period(
        self, assignment_id: UUID, period: PayPeriod
    ) -> None:
        assignment = await self._load_assignment(assignment_id)
        assignment.pay_period_type = period.period_type.value
        assignment.pay_period_start = period.start
        assignment.pay_period_end = period.end
        await self.session.flush()

    async def set_assignment_reconciled_period(
        self, assignment_id: UUID, period: PayPeriod
    ) -> None:
        assignment = await self._load_assignment(assignment_id)
        assignment.reconciled_period_start = period.start
        await self.session.flush()

    async def add_job(self, job: JobRecord) -> JobRecord:
        row = Job(
            job_id=job.job_id,
            job_type=job.job_type,
            category=job.category.value,
            status=job.status.value,
            budgeted_hours=job.budgeted_hours,
            actual_hours=job.actual_hours,
            labor_revenue=job.labor_revenue,
            is_seasonal_eligible=job.is_seasonal_eligible,
            start_date=job.start_date,
            end_date=job.end_date,
            completed_at=job.completed_at,
            spans_pay_periods=job.spans_pay_periods,
        )
        self.session.add(row)
        await self.session.flush()
        return row.to_record()

    async def add_assignment(self, assignment: AssignmentRecord) -> AssignmentRecord:
        row = JobAssignment(
            assignment_id=assignment.assignment_id,
            job_id=assignment.job_id,
            employee_id=assignment.employee_id,
            hours_worked=assignment.hours_worked,
            jobsite_hours=assignment.jobsite_hours,
            is_leader=assignment.is_leader,
            is_training=assignment.is_training,
            performance_pay=assignment.performance_pay,
            is_hourly_payment=assignment.is_hourly_payment,
            pay_period_type=(
                assignment.pay_period_type.value if assignment.pay_period_type else None
            ),
            pay_period_start=assignment.pay_period_start,
            pay_period_end=assignment.pay_period_end,
            work_date=assignment.work_date,
            hourly_paid=assignment.hourly_paid,
            reconciled_period_start=assignment.reconciled_period_start,
        )
        self.session.add(row)
        await self.session.flush()
        return row.to_record()

    async def set_job_status(
        self,
        job_id: UUID,
        status: JobStatus,
        completed_at: datetime | None = None,
    ) -> JobRecord:
        job = await self._load_job(job_id)
        job.status = status.value
        if completed_at is not None:
            job.completed_at = completed_at
        await self.session.flush()
        return job.to_record()
