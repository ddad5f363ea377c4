"""Pay period reporting per employee."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from p4p_engine.calculators.line_builder import LineItemBuilder
from p4p_engine.calculators.types import ZERO, EmployeeRecord, JobRecord, PayPeriod
from p4p_engine.exceptions import RecordNotFoundError
from p4p_engine.repository import P4PRepository

logger = logging.getLogger(__name__)


@dataclass
class EmployeePeriodSummary:
    """What one employee earned in one pay period."""

    employee_id: UUID
    name: str
    period: PayPeriod
    base_hourly_rate: Decimal
    total_hours: Decimal = ZERO
    hourly_pay: Decimal = ZERO  # interim pay on spanning projects
    performance_pay: Decimal = ZERO
    reconciliation_adjustment: Decimal = ZERO  # included in performance_pay
    assignment_count: int = 0
    pending_p4p_jobs: int = 0

    @property
    def total_pay(self) -> Decimal:
        return self.hourly_pay + self.performance_pay

    @property
    def minimum_pay(self) -> Decimal:
        return LineItemBuilder.round_to_cents(self.total_hours * self.base_hourly_rate)

    @property
    def wage_floor_supplement(self) -> Decimal:
        """Top-up payroll owes so the period pays at least the base rate."""
        return max(ZERO, self.minimum_pay - self.total_pay)

    @property
    def effective_hourly_rate(self) -> Decimal:
        if self.total_hours <= 0:
            return ZERO
        return LineItemBuilder.round_to_cents(self.total_pay / self.total_hours)


@dataclass
class PayrollReport:
    """Per-employee pay for one pay period."""

    period: PayPeriod
    rows: list[EmployeePeriodSummary] = field(default_factory=list)

    @property
    def total_hours(self) -> Decimal:
        return sum((r.total_hours for r in self.rows), ZERO)

    @property
    def total_pay(self) -> Decimal:
        return sum((r.total_pay for r in self.rows), ZERO)

    @property
    def total_supplement(self) -> Decimal:
        return sum((r.wage_floor_supplement for r in self.rows), ZERO)


class ReportingService:
    """Sums stored pay per employee per pay period.

    Hours and interim hourly pay belong to the work-date period stored on
    each assignment. Once a period-spanning job is reconciled, only the
    true-up (final P4P minus the hourly pay already issued) is reported in
    the completion period, so the two periods together pay the final amount.
    """

    def __init__(self, repository: P4PRepository):
        self.repository = repository

    async def employee_period_summary(
        self, employee_id: UUID, period: PayPeriod
    ) -> EmployeePeriodSummary:
        employee = await self.repository.get_employee(employee_id)
        if employee is None:
            raise RecordNotFoundError("Employee", employee_id)
        return await self._summarize(employee, period, {})

    async def payroll_report(
        self, period: PayPeriod, include_inactive: bool = False
    ) -> PayrollReport:
        """Build the payroll report; employees without work show zeros."""
        report = PayrollReport(period=period)
        jobs: dict[UUID, JobRecord | None] = {}
        for employee in await self.repository.list_employees(
            active_only=not include_inactive
        ):
            report.rows.append(await self._summarize(employee, period, jobs))
        return report

    async def _summarize(
        self,
        employee: EmployeeRecord,
        period: PayPeriod,
        jobs: dict[UUID, JobRecord | None],
    ) -> EmployeePeriodSummary:
        summary = EmployeePeriodSummary(
            employee_id=employee.employee_id,
            name=employee.name,
            period=period,
            base_hourly_rate=employee.base_hourly_rate,
        )

        assignments = await self.repository.get_assignments_for_period(
            period, employee.employee_id
        )
        for assignment in assignments:
            if assignment.job_id not in jobs:
                jobs[assignment.job_id] = await self.repository.get_job(assignment.job_id)
            job = jobs[assignment.job_id]
            if job is None:
                logger.warning(
                    "Assignment %s references missing job %s",
                    assignment.assignment_id,
                    assignment.job_id,
                )
                continue

            summary.assignment_count += 1
            summary.total_hours += assignment.hours_worked
            if assignment.reconciled_period_start is not None:
                summary.hourly_pay += assignment.hourly_paid
            elif assignment.is_hourly_payment:
                summary.hourly_pay += assignment.performance_pay
            elif job.is_completed:
                summary.performance_pay += assignment.performance_pay
            else:
                summary.pending_p4p_jobs += 1

        for assignment in await self.repository.get_reconciled_assignments_for_period(
            period, employee.employee_id
        ):
            true_up = assignment.performance_pay - assignment.hourly_paid
            summary.reconciliation_adjustment += true_up
            summary.performance_pay += true_up

        return summary
