"""P4P compliance analysis over completed jobs.

For every assignment of a completed job the stored performance pay is
checked against two things: the configured minimum wage for the hours
worked, and a fresh calculation from the current inputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID

from p4p_engine.calculators.config_resolver import ConfigurationResolver
from p4p_engine.calculators.line_builder import LineItemBuilder
from p4p_engine.calculators.performance_pay import calculate_performance_pay
from p4p_engine.calculators.reconciliation import job_spans_pay_periods, reconcile_job
from p4p_engine.calculators.types import (
    ZERO,
    AssignmentRecord,
    JobRecord,
    JobStatus,
    P4PRules,
)
from p4p_engine.config import WagePolicy, get_settings
from p4p_engine.exceptions import ConfigurationError
from p4p_engine.repository import P4PRepository

logger = logging.getLogger(__name__)

# Stored and recalculated pay may differ by rounding only
CALCULATION_TOLERANCE = Decimal("0.01")


class ComplianceAssessment(str, Enum):
    """Overall verdict by compliance rate."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    CRITICAL = "CRITICAL"

    @classmethod
    def for_rate(cls, rate: Decimal) -> ComplianceAssessment:
        if rate >= 95:
            return cls.EXCELLENT
        if rate >= 90:
            return cls.GOOD
        if rate >= 80:
            return cls.ACCEPTABLE
        return cls.CRITICAL


@dataclass(frozen=True)
class AssignmentCompliance:
    """Compliance checks for one assignment."""

    assignment_id: UUID
    employee_id: UUID
    job_id: UUID
    job_type: str
    hours_worked: Decimal
    actual_p4p: Decimal
    expected_p4p: Decimal
    minimum_required: Decimal
    hourly_equivalent: Decimal

    @property
    def shortfall(self) -> Decimal:
        return max(ZERO, self.minimum_required - self.actual_p4p)

    @property
    def meets_minimum(self) -> bool:
        return self.actual_p4p >= self.minimum_required

    @property
    def calculation_correct(self) -> bool:
        return abs(self.actual_p4p - self.expected_p4p) <= CALCULATION_TOLERANCE

    @property
    def accurate_records(self) -> bool:
        return self.hours_worked > 0 and self.actual_p4p >= 0

    @property
    def compliant(self) -> bool:
        return self.meets_minimum and self.calculation_correct and self.accurate_records


@dataclass
class ComplianceReport:
    """Compliance over every analyzed assignment."""

    entries: list[AssignmentCompliance] = field(default_factory=list)
    errors: dict[UUID, str] = field(default_factory=dict)  # job_id -> reason skipped

    @property
    def compliant_count(self) -> int:
        return sum(1 for e in self.entries if e.compliant)

    @property
    def compliance_rate(self) -> Decimal:
        """Percent of compliant assignments, 0 when nothing was analyzed."""
        if not self.entries:
            return ZERO
        rate = Decimal(self.compliant_count) * 100 / Decimal(len(self.entries))
        return rate.quantize(Decimal("0.1"))

    @property
    def assessment(self) -> ComplianceAssessment:
        return ComplianceAssessment.for_rate(self.compliance_rate)

    @property
    def total_shortfall(self) -> Decimal:
        return sum((e.shortfall for e in self.entries), ZERO)

    @property
    def below_minimum(self) -> list[AssignmentCompliance]:
        return [e for e in self.entries if not e.meets_minimum]

    @property
    def miscalculated(self) -> list[AssignmentCompliance]:
        return [e for e in self.entries if not e.calculation_correct]


class P4PComplianceAnalyzer:
    """Checks stored P4P of completed jobs against the rules."""

    def __init__(self, repository: P4PRepository, policy: WagePolicy | None = None):
        self.repository = repository
        self.policy = policy or get_settings().wage_floor_policy

    async def analyze(self) -> ComplianceReport:
        resolver = ConfigurationResolver(self.repository)
        report = ComplianceReport()

        for job_id in await self.repository.list_job_ids(JobStatus.COMPLETED):
            job = await self.repository.get_job(job_id)
            if job is None:
                continue
            try:
                rules = await resolver.active_config_for(job.job_type)
            except ConfigurationError as e:
                logger.warning("Compliance skipped job %s: %s", job_id, e)
                report.errors[job_id] = str(e)
                continue

            assignments = await self.repository.get_assignments_for_job(job_id)
            expected = await self._expected_pay(job, assignments, rules)
            for assignment in assignments:
                report.entries.append(
                    AssignmentCompliance(
                        assignment_id=assignment.assignment_id,
                        employee_id=assignment.employee_id,
                        job_id=job_id,
                        job_type=job.job_type,
                        hours_worked=assignment.hours_worked,
                        actual_p4p=assignment.performance_pay,
                        expected_p4p=expected.get(assignment.assignment_id, ZERO),
                        minimum_required=LineItemBuilder.round_to_cents(
                            assignment.hours_worked * rules.minimum_hourly_rate
                        ),
                        hourly_equivalent=(
                            LineItemBuilder.round_to_cents(
                                assignment.performance_pay / assignment.hours_worked
                            )
                            if assignment.hours_worked > 0
                            else ZERO
                        ),
                    )
                )

        logger.info(
            "Compliance: %d/%d assignments compliant (%s%%, %s)",
            report.compliant_count,
            len(report.entries),
            report.compliance_rate,
            report.assessment.value,
        )
        return report

    async def _expected_pay(
        self, job: JobRecord, assignments: list[AssignmentRecord], rules: P4PRules
    ) -> dict[UUID, Decimal]:
        """Recalculate what each assignment should have been paid."""
        if job.spans_pay_periods or job_spans_pay_periods(job):
            outcome = reconcile_job(job, assignments, rules)
            return {line.assignment_id: line.final_p4p for line in outcome.lines}

        expected: dict[UUID, Decimal] = {}
        for assignment in assignments:
            employee = await self.repository.get_employee(assignment.employee_id)
            if employee is None:
                continue
            incidents = await self.repository.get_incidents_for_employee(
                employee.employee_id
            )
            result = calculate_performance_pay(
                job, assignment, len(assignments), employee, rules, incidents, self.policy
            )
            expected[assignment.assignment_id] = result.performance_pay
        return expected
