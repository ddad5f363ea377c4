"""Reconciliation of multi-day projects that span pay periods.

While such a project is open its crew is paid hourly at the configured
minimum rate so nobody waits past a payroll cutoff. When it completes, P4P is
computed over the whole job, split by each worker's share of hours worked,
and the difference to what was already paid is reported as an adjustment.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from p4p_engine.calculators.line_builder import LineItemBuilder
from p4p_engine.calculators.pay_period import period_containing
from p4p_engine.calculators.performance_pay import HUNDRED, revenue_share_percent
from p4p_engine.calculators.types import (
    ZERO,
    AssignmentRecord,
    InterimPayment,
    JobCategory,
    JobRecord,
    P4PRules,
    ReconciliationLine,
    ReconciliationOutcome,
)

logger = logging.getLogger(__name__)

PORTION_PRECISION = Decimal("0.0001")


def job_spans_pay_periods(job: JobRecord) -> bool:
    """Check if a multi-day project starts and ends in different pay periods.

    Single-day jobs and jobs without both dates never span.
    """
    if job.category != JobCategory.MULTI_DAY:
        return False
    if job.start_date is None or job.end_date is None:
        return False
    return period_containing(job.start_date) != period_containing(job.end_date)


def interim_hourly_payment(
    assignment: AssignmentRecord, rules: P4PRules
) -> InterimPayment | None:
    """Hourly pay at the configured minimum rate; None without hours."""
    if assignment.hours_worked <= 0:
        return None
    return InterimPayment(
        assignment_id=assignment.assignment_id,
        employee_id=assignment.employee_id,
        hours_worked=assignment.hours_worked,
        rate=rules.minimum_hourly_rate,
        amount=LineItemBuilder.round_to_cents(
            assignment.hours_worked * rules.minimum_hourly_rate
        ),
    )


def reconciliation_pool(job: JobRecord, rules: P4PRules) -> Decimal:
    """Whole-job P4P pool: revenue share plus the large job bonus."""
    pool = job.labor_revenue * revenue_share_percent(job, rules) / HUNDRED
    if job.is_large_job(rules):
        pool += job.budgeted_hours * rules.large_job_bonus_per_hour
    return pool


def reconcile_job(
    job: JobRecord,
    assignments: Sequence[AssignmentRecord],
    rules: P4PRules,
) -> ReconciliationOutcome:
    """Compute final P4P for every worker of a completed spanning job.

    ``AssignmentRecord.performance_pay`` is taken as the amount already paid,
    so running this again after the result was persisted reports a zero
    adjustment.
    """
    if not job.is_completed:
        return ReconciliationOutcome(
            job_id=job.job_id, skipped_reason="job not completed"
        )

    total_hours = sum((a.hours_worked for a in assignments), ZERO)
    if total_hours <= 0:
        reason = f"completed job {job.job_id} has no hours worked"
        logger.warning("Reconciliation skipped: %s", reason)
        return ReconciliationOutcome(job_id=job.job_id, skipped_reason=reason)

    pool = reconciliation_pool(job, rules)
    outcome = ReconciliationOutcome(job_id=job.job_id, pool=pool, total_hours=total_hours)

    for assignment in assignments:
        hours = assignment.hours_worked
        portion = hours / total_hours
        share = LineItemBuilder.round_to_cents(pool * portion)

        training_bonus = ZERO
        if assignment.is_training:
            training_bonus = LineItemBuilder.round_to_cents(
                hours * rules.training_bonus_per_hour
            )

        minimum_pay = LineItemBuilder.round_to_cents(hours * rules.minimum_hourly_rate)
        final_p4p = max(share + training_bonus, minimum_pay)
        previously_paid = assignment.performance_pay

        outcome.lines.append(
            ReconciliationLine(
                assignment_id=assignment.assignment_id,
                employee_id=assignment.employee_id,
                hours_worked=hours,
                hourly_portion=portion.quantize(PORTION_PRECISION),
                proportional_share=share,
                training_bonus=training_bonus,
                minimum_pay=minimum_pay,
                final_p4p=final_p4p,
                previously_paid=previously_paid,
                adjustment=final_p4p - previously_paid,
            )
        )

    return outcome
