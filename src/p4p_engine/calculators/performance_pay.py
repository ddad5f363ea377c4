"""Performance pay for a single job assignment.

Pipeline (stable order per assignment):
1) Revenue share percent (base, plus seasonal when eligible)
2) Base share: labor revenue x share / team size
3) Training bonus on jobsite hours
4) Large job bonus pool split across the team
5) Outstanding incident adjustments for the employee (all jobs)
6) Performance pay = sum of the above
7) Minimum-wage shortfall, reported as a separate supplement line

Everything here is pure: no I/O, no clock, no settings lookups.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import Any
from uuid import UUID

from p4p_engine.calculators.line_builder import LineItemBuilder
from p4p_engine.calculators.types import (
    BONUS_INCIDENT_TYPES,
    DEDUCTIBLE_INCIDENT_TYPES,
    ZERO,
    AssignmentRecord,
    CalculationStatus,
    EmployeeRecord,
    IncidentAdjustment,
    IncidentRecord,
    JobRecord,
    LineCandidate,
    LineType,
    P4PResult,
    P4PRules,
)
from p4p_engine.config import WagePolicy

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

# Flat credit per customer review or completed estimate
REVIEW_BONUS_AMOUNT = Decimal("25.00")


def revenue_share_percent(job: JobRecord, rules: P4PRules) -> Decimal:
    """Percent of labor revenue paid to the crew for this job."""
    percent = rules.revenue_share_percent
    if job.qualifies_for_seasonal_bonus(rules):
        percent += rules.seasonal_bonus_percent
    return percent


def apply_outstanding_incident_adjustments(
    incidents: Iterable[IncidentRecord],
    employee_id: UUID | None = None,
) -> IncidentAdjustment:
    """Aggregate every unresolved incident of an employee.

    Deductions are not scoped to the job being paid: an incident keeps
    reducing P4P on every calculation until it is resolved.
    """
    deductions = ZERO
    bonuses = ZERO
    deduction_count = 0
    bonus_count = 0

    for incident in incidents:
        if incident.resolved:
            continue
        if employee_id is not None and incident.employee_id != employee_id:
            continue
        if incident.incident_type in DEDUCTIBLE_INCIDENT_TYPES:
            deductions += incident.cost
            deduction_count += 1
        elif incident.incident_type in BONUS_INCIDENT_TYPES:
            bonuses += REVIEW_BONUS_AMOUNT
            bonus_count += 1

    return IncidentAdjustment(
        deductions=deductions,
        bonuses=bonuses,
        deduction_count=deduction_count,
        bonus_count=bonus_count,
    )


def wage_floor_rate(
    employee: EmployeeRecord, rules: P4PRules, policy: WagePolicy
) -> Decimal:
    """Hourly rate used for the minimum-wage check under ``policy``."""
    if policy == WagePolicy.CONFIGURED_RATE:
        return rules.minimum_hourly_rate
    if policy == WagePolicy.HIGHER_OF:
        return max(employee.base_hourly_rate, rules.minimum_hourly_rate)
    return employee.base_hourly_rate


def minimum_wage_shortfall(minimum_pay: Decimal, total_p4p: Decimal) -> Decimal:
    """Top-up needed to reach the wage floor; never negative."""
    return LineItemBuilder.round_to_cents(max(ZERO, minimum_pay - total_p4p))


def fingerprint_inputs(
    job: JobRecord,
    assignment: AssignmentRecord,
    team_size: int,
    employee: EmployeeRecord,
    rules: P4PRules,
    incidents: Iterable[IncidentRecord],
    policy: WagePolicy,
) -> str:
    """Deterministic fingerprint of everything a calculation depends on."""
    data: dict[str, Any] = {
        "job": {
            "id": str(job.job_id),
            "status": job.status.value,
            "labor_revenue": str(job.labor_revenue),
            "budgeted_hours": str(job.budgeted_hours),
            "seasonal_eligible": job.is_seasonal_eligible,
            "completed_at": job.completed_at.isoformat() if job.completed_at else None,
        },
        "assignment": {
            "id": str(assignment.assignment_id),
            "hours_worked": str(assignment.hours_worked),
            "jobsite_hours": str(assignment.jobsite_hours),
            "is_training": assignment.is_training,
        },
        "team_size": team_size,
        "employee_rate": str(employee.base_hourly_rate),
        "rules": {
            "config_id": str(rules.config_id) if rules.config_id else None,
            "revenue_share_percent": str(rules.revenue_share_percent),
            "seasonal_bonus_percent": str(rules.seasonal_bonus_percent),
            "minimum_hourly_rate": str(rules.minimum_hourly_rate),
            "training_bonus_per_hour": str(rules.training_bonus_per_hour),
            "large_job_hour_threshold": str(rules.large_job_hour_threshold),
            "large_job_bonus_per_hour": str(rules.large_job_bonus_per_hour),
            "seasonal_window": [rules.seasonal_start_month, rules.seasonal_end_month],
        },
        "incidents": sorted(
            (
                str(i.incident_id),
                i.incident_type.value,
                str(i.cost),
                i.resolved,
            )
            for i in incidents
        ),
        "policy": policy.value,
    }
    json_str = json.dumps(data, sort_keys=True)
    return hashlib.sha256(json_str.encode()).hexdigest()[:32]


def calculate_performance_pay(
    job: JobRecord,
    assignment: AssignmentRecord,
    team_size: int,
    employee: EmployeeRecord,
    rules: P4PRules,
    incidents: Iterable[IncidentRecord] = (),
    policy: WagePolicy = WagePolicy.EMPLOYEE_RATE,
) -> P4PResult:
    """Calculate performance pay for one assignment.

    Args:
        job: The job the assignment belongs to
        assignment: The assignment being paid
        team_size: Number of assignments on the job (at least 1)
        employee: The assigned employee
        rules: Active P4P configuration for the job type
        incidents: The employee's incidents; resolved ones are ignored
        policy: Which rate the minimum-wage check uses

    Returns:
        A calculated result, or a zero result when the job is not completed
        (NOT_READY) or has no jobsite hours (SKIPPED).
    """
    if assignment.job_id != job.job_id:
        raise ValueError(
            f"Assignment {assignment.assignment_id} does not belong to job {job.job_id}"
        )
    if assignment.employee_id != employee.employee_id:
        raise ValueError(
            f"Assignment {assignment.assignment_id} is not for employee {employee.employee_id}"
        )

    if not job.is_completed:
        return P4PResult.zero(assignment, CalculationStatus.NOT_READY)

    if assignment.jobsite_hours <= 0:
        message = (
            f"No jobsite hours for assignment {assignment.assignment_id} "
            f"on completed job {job.job_id}"
        )
        logger.warning(message)
        return P4PResult.zero(assignment, CalculationStatus.SKIPPED, message)

    if team_size < 1:
        raise ValueError(f"Team size must be at least 1, got {team_size}")

    incidents = list(incidents)
    lines: list[LineCandidate] = []
    warnings: list[str] = []
    team = Decimal(team_size)

    # 1-2) Revenue share split evenly across the crew
    lines.append(
        LineItemBuilder.create_earning_line(
            LineType.BASE_SHARE,
            job.labor_revenue * rules.revenue_share_percent / HUNDRED / team,
            quantity=job.labor_revenue,
            rate=rules.revenue_share_percent,
            source_id=job.job_id,
            explanation=(
                f"{rules.revenue_share_percent}% of {job.labor_revenue} "
                f"labor revenue / {team_size}"
            ),
        )
    )
    if job.qualifies_for_seasonal_bonus(rules) and rules.seasonal_bonus_percent > 0:
        lines.append(
            LineItemBuilder.create_earning_line(
                LineType.SEASONAL_BONUS,
                job.labor_revenue * rules.seasonal_bonus_percent / HUNDRED / team,
                quantity=job.labor_revenue,
                rate=rules.seasonal_bonus_percent,
                source_id=job.job_id,
                explanation=f"Seasonal +{rules.seasonal_bonus_percent}% / {team_size}",
            )
        )

    # 3) Training bonus
    if assignment.is_training and rules.training_bonus_per_hour > 0:
        lines.append(
            LineItemBuilder.create_earning_line(
                LineType.TRAINING_BONUS,
                assignment.jobsite_hours * rules.training_bonus_per_hour,
                quantity=assignment.jobsite_hours,
                rate=rules.training_bonus_per_hour,
                source_id=assignment.assignment_id,
                explanation="Training bonus on jobsite hours",
            )
        )

    # 4) Large job bonus pool, shared by the team
    if job.is_large_job(rules) and rules.large_job_bonus_per_hour > 0:
        lines.append(
            LineItemBuilder.create_earning_line(
                LineType.LARGE_JOB_BONUS,
                job.budgeted_hours * rules.large_job_bonus_per_hour / team,
                quantity=job.budgeted_hours,
                rate=rules.large_job_bonus_per_hour,
                source_id=job.job_id,
                explanation=f"Large job: {job.budgeted_hours} budgeted hours / {team_size}",
            )
        )

    # 5) Outstanding incidents across all of the employee's jobs
    adjustment = apply_outstanding_incident_adjustments(incidents, employee.employee_id)
    if adjustment.deductions > 0:
        lines.append(
            LineItemBuilder.create_deduction_line(
                adjustment.deductions,
                quantity=Decimal(adjustment.deduction_count),
                explanation=f"{adjustment.deduction_count} outstanding incident(s)",
            )
        )
    if adjustment.bonuses > 0:
        lines.append(
            LineItemBuilder.create_earning_line(
                LineType.REVIEW_BONUS,
                adjustment.bonuses,
                quantity=Decimal(adjustment.bonus_count),
                rate=REVIEW_BONUS_AMOUNT,
                explanation=f"{adjustment.bonus_count} review/estimate bonus(es)",
            )
        )

    # 6) Performance pay
    performance_pay = LineItemBuilder.calculate_performance_pay_from_lines(lines)

    # 7) Wage floor, kept out of performance pay
    if employee.base_hourly_rate != rules.minimum_hourly_rate:
        warnings.append(
            f"Employee rate {employee.base_hourly_rate} differs from configured "
            f"minimum {rules.minimum_hourly_rate} for '{rules.job_type}'; "
            f"wage floor policy '{policy.value}' applied"
        )
    floor_rate = wage_floor_rate(employee, rules, policy)
    minimum_pay = LineItemBuilder.round_to_cents(assignment.hours_worked * floor_rate)
    shortfall = minimum_wage_shortfall(minimum_pay, performance_pay)
    if shortfall > 0:
        lines.append(
            LineItemBuilder.create_earning_line(
                LineType.WAGE_FLOOR_SUPPLEMENT,
                shortfall,
                quantity=assignment.hours_worked,
                rate=floor_rate,
                source_id=assignment.assignment_id,
                explanation=f"Minimum wage top-up: {minimum_pay} floor",
            )
        )

    sign_errors = LineItemBuilder.validate_line_signs(lines)
    if sign_errors:
        raise ValueError("; ".join(sign_errors))

    return P4PResult(
        assignment_id=assignment.assignment_id,
        employee_id=assignment.employee_id,
        job_id=job.job_id,
        status=CalculationStatus.CALCULATED,
        performance_pay=performance_pay,
        hourly_equivalent=LineItemBuilder.round_to_cents(
            performance_pay / assignment.jobsite_hours
        ),
        minimum_pay=minimum_pay,
        shortfall=shortfall,
        team_size=team_size,
        revenue_share_percent=revenue_share_percent(job, rules),
        hours_worked=assignment.hours_worked,
        jobsite_hours=assignment.jobsite_hours,
        lines=lines,
        warnings=warnings,
        inputs_fingerprint=fingerprint_inputs(
            job, assignment, team_size, employee, rules, incidents, policy
        ),
    )
