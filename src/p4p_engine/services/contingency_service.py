"""Pay period contingency for multi-day projects.

A project that starts in one pay period and ends in another would leave its
crew unpaid at the first cutoff if P4P waited for completion. Such projects
are paid hourly while open and reconciled to P4P once completed.
"""

from __future__ import annotations

import logging
from uuid import UUID

from p4p_engine.calculators.config_resolver import ConfigurationResolver
from p4p_engine.calculators.engine import P4PEngine
from p4p_engine.calculators.reconciliation import interim_hourly_payment, job_spans_pay_periods
from p4p_engine.calculators.types import InterimPayment, ReconciliationOutcome
from p4p_engine.exceptions import RecordNotFoundError
from p4p_engine.repository import P4PRepository

logger = logging.getLogger(__name__)


class PayPeriodContingencyService:
    """Interim hourly pay and final reconciliation of spanning projects.

    Operations:
    - process_project_hourly_payments: pay open spanning projects hourly
    - reconcile_completed_job: replace hourly pay with final P4P
    """

    def __init__(self, repository: P4PRepository, engine: P4PEngine | None = None):
        self.repository = repository
        self.engine = engine or P4PEngine(repository)

    async def process_project_hourly_payments(self, job_id: UUID) -> list[InterimPayment]:
        """Issue interim hourly pay to the crew of an open spanning project.

        Every assignment with hours worked is paid at the configured minimum
        rate and flagged as hourly. Jobs that do not span pay periods, and
        completed jobs, are left untouched.
        """
        job = await self.repository.get_job(job_id)
        if job is None:
            raise RecordNotFoundError("Job", job_id)
        if not job_spans_pay_periods(job):
            return []
        if job.is_completed:
            logger.info("Job %s is completed; reconcile instead of paying hourly", job_id)
            return []

        rules = await ConfigurationResolver(self.repository).active_config_for(job.job_type)
        if not job.spans_pay_periods:
            await self.repository.mark_job_spans_periods(job_id, True)

        payments: list[InterimPayment] = []
        for assignment in await self.repository.get_assignments_for_job(job_id):
            payment = interim_hourly_payment(assignment, rules)
            if payment is None:
                continue
            await self.repository.set_assignment_performance_pay(
                assignment.assignment_id, payment.amount
            )
            await self.repository.set_assignment_hourly_flag(assignment.assignment_id, True)
            await self.repository.set_assignment_hourly_paid(
                assignment.assignment_id, payment.amount
            )
            payments.append(payment)

        logger.info(
            "Issued %d interim hourly payment(s) at %s/h for spanning job %s",
            len(payments),
            rules.minimum_hourly_rate,
            job_id,
        )
        return payments

    async def reconcile_completed_job(self, job_id: UUID) -> ReconciliationOutcome:
        """Compute final P4P for a completed spanning job and persist it.

        Adjustments (final minus already paid) are reported, not settled.
        """
        outcome = await self.engine.reconcile_job(job_id)
        if outcome.reconciled:
            for line in outcome.lines:
                logger.debug(
                    "Assignment %s: final %s, previously paid %s, adjustment %s",
                    line.assignment_id,
                    line.final_p4p,
                    line.previously_paid,
                    line.adjustment,
                )
        return outcome
