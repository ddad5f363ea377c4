"""Job service - lifecycle of jobs and their crew."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from p4p_engine.calculators.engine import P4PEngine
from p4p_engine.calculators.pay_period import period_containing
from p4p_engine.calculators.reconciliation import job_spans_pay_periods
from p4p_engine.calculators.types import (
    AssignmentRecord,
    JobCategory,
    JobRecord,
    JobStatus,
    P4PResult,
)
from p4p_engine.exceptions import InvalidTransitionError, JobLockedError, RecordNotFoundError
from p4p_engine.repository import P4PRepository
from p4p_engine.services.contingency_service import PayPeriodContingencyService
from p4p_engine.services.state_machine import JobStateMachine

logger = logging.getLogger(__name__)


class JobService:
    """Service for managing the job lifecycle.

    Operations:
    - create_job: Register a job, flagging it if it spans pay periods
    - add_assignment: Put an employee on a job; spanning projects pay hourly
    - transition_status: Move a job through its statuses
    - complete_job: Complete a job and calculate its performance pay
    """

    def __init__(
        self,
        repository: P4PRepository,
        engine: P4PEngine | None = None,
        contingency: PayPeriodContingencyService | None = None,
    ):
        self.repository = repository
        self.engine = engine or P4PEngine(repository)
        self.contingency = contingency or PayPeriodContingencyService(
            repository, self.engine
        )

    async def create_job(
        self,
        job_type: str,
        budgeted_hours: Decimal,
        labor_revenue: Decimal,
        category: JobCategory = JobCategory.SINGLE_DAY,
        is_seasonal_eligible: bool = False,
        start_date: date | None = None,
        end_date: date | None = None,
        job_id: UUID | None = None,
    ) -> JobRecord:
        """Create a pending job."""
        job = JobRecord(
            job_id=job_id or uuid4(),
            job_type=job_type,
            category=category,
            budgeted_hours=budgeted_hours,
            labor_revenue=labor_revenue,
            is_seasonal_eligible=is_seasonal_eligible,
            start_date=start_date,
            end_date=end_date,
        )
        if job_spans_pay_periods(job):
            job = replace(job, spans_pay_periods=True)
            logger.info(
                "Job %s spans pay periods (%s to %s); crew will be paid hourly",
                job.job_id,
                start_date,
                end_date,
            )
        return await self.repository.add_job(job)

    async def add_assignment(
        self,
        job_id: UUID,
        employee_id: UUID,
        hours_worked: Decimal = Decimal("0"),
        jobsite_hours: Decimal = Decimal("0"),
        is_leader: bool = False,
        is_training: bool = False,
        work_date: date | None = None,
    ) -> AssignmentRecord:
        """Assign an employee to a job.

        The assignment is attributed to the pay period of its work date (the
        job start date, or today). For a period-spanning project the crew is
        then paid hourly until completion.

        Raises:
            RecordNotFoundError: If the job or employee does not exist
            JobLockedError: If the job no longer accepts assignments
        """
        job = await self.repository.get_job(job_id)
        if job is None:
            raise RecordNotFoundError("Job", job_id)
        if not JobStateMachine.can_modify_assignments(job.status):
            raise JobLockedError(job_id, job.status.value)
        if await self.repository.get_employee(employee_id) is None:
            raise RecordNotFoundError("Employee", employee_id)

        work_date = work_date or job.start_date or date.today()
        period = period_containing(work_date)
        assignment = await self.repository.add_assignment(
            AssignmentRecord(
                assignment_id=uuid4(),
                job_id=job_id,
                employee_id=employee_id,
                hours_worked=hours_worked,
                jobsite_hours=jobsite_hours,
                is_leader=is_leader,
                is_training=is_training,
                pay_period_type=period.period_type,
                pay_period_start=period.start,
                pay_period_end=period.end,
                work_date=work_date,
            )
        )

        if job_spans_pay_periods(job):
            await self.contingency.process_project_hourly_payments(job_id)
            refreshed = await self.repository.get_assignment(assignment.assignment_id)
            if refreshed is not None:
                assignment = refreshed

        return assignment

    async def transition_status(
        self,
        job_id: UUID,
        to_status: JobStatus,
        now: datetime | None = None,
    ) -> tuple[JobRecord, list[P4PResult]]:
        """Transition a job to a new status.

        Completing a job stamps ``completed_at`` (only the first time) and
        calculates performance pay for its crew.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        job = await self.repository.get_job(job_id)
        if job is None:
            raise RecordNotFoundError("Job", job_id)
        JobStateMachine.validate_transition(job.status, to_status)
        assignments = await self.repository.get_assignments_for_job(job_id)

        errors = JobStateMachine.validate_job_for_transition(job, to_status, assignments)
        if errors:
            raise InvalidTransitionError(
                job.status.value, JobStatus(to_status).value, "; ".join(errors)
            )

        completed_at = None
        if to_status == JobStatus.COMPLETED and job.completed_at is None:
            completed_at = now or datetime.now(timezone.utc)

        job = await self.repository.set_job_status(job_id, JobStatus(to_status), completed_at)
        logger.info("Job %s moved to '%s'", job_id, job.status.value)

        results: list[P4PResult] = []
        if JobStateMachine.can_calculate(job.status):
            results = await self.engine.calculate_for_job(job_id)
        return job, results

    async def complete_job(
        self, job_id: UUID, now: datetime | None = None
    ) -> list[P4PResult]:
        """Complete a job and return its performance pay results."""
        _, results = await self.transition_status(job_id, JobStatus.COMPLETED, now)
        return results
