"""P4P calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from p4p_engine.calculators.config_resolver import ConfigurationResolver
from p4p_engine.calculators.line_builder import LineItemBuilder
from p4p_engine.calculators.pay_period import period_containing, summarize_period
from p4p_engine.calculators.performance_pay import (
    calculate_performance_pay,
    revenue_share_percent,
)
from p4p_engine.calculators.reconciliation import job_spans_pay_periods, reconcile_job
from p4p_engine.calculators.types import (
    ZERO,
    AssignmentRecord,
    CalculationStatus,
    JobRecord,
    JobStatus,
    LineCandidate,
    LineType,
    P4PResult,
    P4PRules,
    PayPeriodSummary,
    ReconciliationLine,
    ReconciliationOutcome,
)
from p4p_engine.config import Settings, WagePolicy, get_settings
from p4p_engine.exceptions import RecordNotFoundError
from p4p_engine.repository import P4PRepository

logger = logging.getLogger(__name__)


@dataclass
class JobOutcome:
    """Result of calculating one job inside a batch."""

    job_id: UUID
    results: list[P4PResult] = field(default_factory=list)
    reconciliation: ReconciliationOutcome | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status == CalculationStatus.CALCULATED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status != CalculationStatus.CALCULATED)

    @property
    def failed(self) -> int:
        return 0 if self.success else 1


@dataclass
class BatchSummary:
    """Result of recalculating every completed job."""

    outcomes: list[JobOutcome] = field(default_factory=list)

    @property
    def jobs_processed(self) -> int:
        return len(self.outcomes)

    @property
    def jobs_failed(self) -> int:
        return sum(o.failed for o in self.outcomes)

    @property
    def assignments_succeeded(self) -> int:
        return sum(o.succeeded for o in self.outcomes)

    @property
    def assignments_skipped(self) -> int:
        return sum(o.skipped for o in self.outcomes)

    @property
    def errors(self) -> dict[UUID, list[str]]:
        return {o.job_id: o.errors for o in self.outcomes if o.errors}

    @property
    def total_performance_pay(self) -> Decimal:
        return sum(
            (r.performance_pay for o in self.outcomes for r in o.results),
            ZERO,
        )

    @property
    def totals_by_line_type(self) -> dict[LineType, Decimal]:
        """Pay line amounts across every calculated assignment, per line type."""
        return LineItemBuilder.sum_by_type(
            [line for o in self.outcomes for r in o.results for line in r.lines]
        )


class P4PEngine:
    """Performance pay engine.

    Pipeline per job:
    1) Load job, crew and employees through the repository
    2) Return zero NOT_READY results until the job is completed
    3) Resolve the active configuration for the job type
    4) Reconcile period-spanning multi-day projects as a whole, otherwise
       calculate each assignment independently
    5) Write only after every result of the job has been computed

    Recalculating the same job concurrently is last-writer-wins; callers must
    serialize work per job. Different jobs are independent.
    """

    def __init__(
        self,
        repository: P4PRepository,
        settings: Settings | None = None,
        policy: WagePolicy | None = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.policy = policy or self.settings.wage_floor_policy

    # ===== Entry points =====

    async def calculate_for_assignment(self, assignment_id: UUID) -> P4PResult:
        """Calculate and persist performance pay for one assignment.

        Assignments of a period-spanning job are reconciled with the rest of
        their crew, since their share depends on everyone's hours.
        """
        assignment = await self.repository.get_assignment(assignment_id)
        if assignment is None:
            raise RecordNotFoundError("Assignment", assignment_id)
        job = await self._load_job(assignment.job_id)

        if job.is_completed and self._is_spanning(job):
            for result in await self.calculate_for_job(job.job_id):
                if result.assignment_id == assignment_id:
                    return result

        resolver = ConfigurationResolver(self.repository)
        team = await self.repository.get_assignments_for_job(job.job_id)
        result = await self._compute_assignment(job, assignment, len(team), resolver)
        await self._persist_results(job, [result])
        return result

    async def calculate_for_job(self, job_id: UUID) -> list[P4PResult]:
        """Calculate and persist performance pay for every assignment of a job.

        Raises:
            RecordNotFoundError: If the job or an assigned employee is missing
            ConfigurationError: If the job type has no usable configuration;
                nothing is written in that case
        """
        outcome = await self._calculate_job(job_id, ConfigurationResolver(self.repository))
        return outcome.results

    async def reconcile_job(self, job_id: UUID) -> ReconciliationOutcome:
        """Reconcile a completed period-spanning job and persist final P4P."""
        job = await self._load_job(job_id)
        assignments = await self.repository.get_assignments_for_job(job_id)
        if not job.is_completed:
            return ReconciliationOutcome(job_id=job_id, skipped_reason="job not completed")
        rules = await ConfigurationResolver(self.repository).active_config_for(job.job_type)
        outcome, _ = await self._reconcile(job, assignments, rules)
        return outcome

    async def recalculate_all_completed_jobs(self) -> BatchSummary:
        """Recalculate every completed job; one job failing never stops the rest."""
        resolver = ConfigurationResolver(self.repository)
        summary = BatchSummary()

        for job_id in await self.repository.list_job_ids(JobStatus.COMPLETED):
            try:
                outcome = await self._calculate_job(job_id, resolver)
            except Exception as e:
                logger.exception("P4P recalculation failed for job %s", job_id)
                outcome = JobOutcome(job_id=job_id, errors=[f"{type(e).__name__}: {e}"])
            summary.outcomes.append(outcome)

        logger.info(
            "Recalculated %d completed jobs: %d assignments calculated, "
            "%d skipped, %d jobs failed",
            summary.jobs_processed,
            summary.assignments_succeeded,
            summary.assignments_skipped,
            summary.jobs_failed,
        )
        return summary

    def current_pay_period_summary(
        self, today: date | datetime | None = None
    ) -> PayPeriodSummary:
        """Dashboard summary of the pay period containing ``today``."""
        return summarize_period(today or datetime.now())

    # ===== Job calculation =====

    async def _calculate_job(
        self, job_id: UUID, resolver: ConfigurationResolver
    ) -> JobOutcome:
        job = await self._load_job(job_id)
        assignments = await self.repository.get_assignments_for_job(job_id)

        if not job.is_completed:
            return JobOutcome(
                job_id=job_id,
                results=[
                    P4PResult.zero(a, CalculationStatus.NOT_READY) for a in assignments
                ],
            )

        rules = await resolver.active_config_for(job.job_type)

        if self._is_spanning(job):
            reconciliation, results = await self._reconcile(job, assignments, rules)
            return JobOutcome(
                job_id=job_id, results=results, reconciliation=reconciliation
            )

        results = [
            await self._compute_assignment(job, a, len(assignments), resolver)
            for a in assignments
        ]
        await self._persist_results(job, results)
        return JobOutcome(job_id=job_id, results=results)

    async def _compute_assignment(
        self,
        job: JobRecord,
        assignment: AssignmentRecord,
        team_size: int,
        resolver: ConfigurationResolver,
    ) -> P4PResult:
        """Compute one assignment without writing anything."""
        if not job.is_completed:
            return P4PResult.zero(assignment, CalculationStatus.NOT_READY)

        rules = await resolver.active_config_for(job.job_type)
        employee = await self.repository.get_employee(assignment.employee_id)
        if employee is None:
            raise RecordNotFoundError("Employee", assignment.employee_id)
        incidents = await self.repository.get_incidents_for_employee(employee.employee_id)

        result = calculate_performance_pay(
            job,
            assignment,
            team_size,
            employee,
            rules,
            incidents,
            policy=self.policy,
        )
        if result.warnings and result.is_calculated:
            for warning in result.warnings:
                logger.warning("Assignment %s: %s", assignment.assignment_id, warning)

        result.calculation_id = self._generate_calculation_id(
            assignment.assignment_id, job.job_id, result.inputs_fingerprint, rules
        )
        return result

    async def _persist_results(self, job: JobRecord, results: list[P4PResult]) -> None:
        """Write calculated pay and move it into the completion pay period."""
        if job.completed_at is None:
            return
        period = period_containing(job.completed_at)
        for result in results:
            if not result.is_calculated:
                continue
            await self.repository.set_assignment_performance_pay(
                result.assignment_id, result.performance_pay
            )
            await self.repository.set_assignment_hourly_flag(result.assignment_id, False)
            await self.repository.set_assignment_pay_period(result.assignment_id, period)

    # ===== Reconciliation =====

    def _is_spanning(self, job: JobRecord) -> bool:
        return job.spans_pay_periods or job_spans_pay_periods(job)

    async def _reconcile(
        self,
        job: JobRecord,
        assignments: list[AssignmentRecord],
        rules: P4PRules,
    ) -> tuple[ReconciliationOutcome, list[P4PResult]]:
        outcome = reconcile_job(job, assignments, rules)
        if not outcome.reconciled:
            results = [
                P4PResult.zero(a, CalculationStatus.SKIPPED, outcome.skipped_reason)
                for a in assignments
            ]
            return outcome, results

        by_id = {a.assignment_id: a for a in assignments}
        results = [
            self._result_from_reconciliation(
                job,
                by_id[line.assignment_id],
                line,
                len(assignments),
                outcome.total_hours,
                rules,
            )
            for line in outcome.lines
        ]

        # Interim pay stays in its work-date period; the true-up lands here
        period = period_containing(job.completed_at or job.end_date)
        if not job.spans_pay_periods:
            await self.repository.mark_job_spans_periods(job.job_id, True)
        for line in outcome.lines:
            await self.repository.set_assignment_performance_pay(
                line.assignment_id, line.final_p4p
            )
            await self.repository.set_assignment_hourly_flag(line.assignment_id, False)
            await self.repository.set_assignment_reconciled_period(line.assignment_id, period)

        logger.info(
            "Reconciled job %s: pool %s over %s hours, net adjustment %s",
            job.job_id,
            LineItemBuilder.round_to_cents(outcome.pool),
            outcome.total_hours,
            outcome.total_adjustment,
        )
        return outcome, results

    def _result_from_reconciliation(
        self,
        job: JobRecord,
        assignment: AssignmentRecord,
        line: ReconciliationLine,
        team_size: int,
        total_hours: Decimal,
        rules: P4PRules,
    ) -> P4PResult:
        """Express a reconciliation line as a P4P result.

        Reconciled pay has the wage floor folded in, so the supplement line
        is part of ``performance_pay`` here.
        """
        lines: list[LineCandidate] = [
            LineItemBuilder.create_earning_line(
                LineType.BASE_SHARE,
                line.proportional_share,
                quantity=line.hours_worked,
                rate=line.hourly_portion,
                source_id=job.job_id,
                explanation=f"Proportional share of job pool ({line.hourly_portion} of hours)",
            )
        ]
        if line.training_bonus > 0:
            lines.append(
                LineItemBuilder.create_earning_line(
                    LineType.TRAINING_BONUS,
                    line.training_bonus,
                    quantity=line.hours_worked,
                    rate=rules.training_bonus_per_hour,
                    source_id=assignment.assignment_id,
                    explanation="Training bonus on hours worked",
                )
            )
        shortfall = ZERO
        if line.floor_applied:
            shortfall = line.final_p4p - line.proportional_share - line.training_bonus
            lines.append(
                LineItemBuilder.create_earning_line(
                    LineType.WAGE_FLOOR_SUPPLEMENT,
                    shortfall,
                    quantity=line.hours_worked,
                    rate=rules.minimum_hourly_rate,
                    source_id=assignment.assignment_id,
                    explanation=f"Minimum wage floor: {line.minimum_pay}",
                )
            )

        hourly_equivalent = ZERO
        if assignment.jobsite_hours > 0:
            hourly_equivalent = LineItemBuilder.round_to_cents(
                line.final_p4p / assignment.jobsite_hours
            )

        fingerprint = self._reconciliation_fingerprint(job, assignment, total_hours, rules)
        return P4PResult(
            assignment_id=assignment.assignment_id,
            employee_id=assignment.employee_id,
            job_id=job.job_id,
            status=CalculationStatus.CALCULATED,
            performance_pay=line.final_p4p,
            hourly_equivalent=hourly_equivalent,
            minimum_pay=line.minimum_pay,
            shortfall=shortfall,
            team_size=team_size,
            revenue_share_percent=revenue_share_percent(job, rules),
            hours_worked=assignment.hours_worked,
            jobsite_hours=assignment.jobsite_hours,
            lines=lines,
            inputs_fingerprint=fingerprint,
            calculation_id=self._generate_calculation_id(
                assignment.assignment_id, job.job_id, fingerprint, rules
            ),
            is_reconciled=True,
        )

    # ===== Identity =====

    def _generate_calculation_id(
        self,
        assignment_id: UUID,
        job_id: UUID,
        inputs_fingerprint: str,
        rules: P4PRules,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "assignment_id": str(assignment_id),
            "job_id": str(job_id),
            "engine_version": self.settings.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
            "config_id": str(rules.config_id) if rules.config_id else None,
            "policy": self.policy.value,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _reconciliation_fingerprint(
        self,
        job: JobRecord,
        assignment: AssignmentRecord,
        total_hours: Decimal,
        rules: P4PRules,
    ) -> str:
        """Fingerprint of reconciliation inputs; amounts already paid excluded."""
        data = {
            "job_id": str(job.job_id),
            "labor_revenue": str(job.labor_revenue),
            "budgeted_hours": str(job.budgeted_hours),
            "assignment_id": str(assignment.assignment_id),
            "hours_worked": str(assignment.hours_worked),
            "total_hours": str(total_hours),
            "is_training": assignment.is_training,
            "revenue_share_percent": str(revenue_share_percent(job, rules)),
            "minimum_hourly_rate": str(rules.minimum_hourly_rate),
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    async def _load_job(self, job_id: UUID) -> JobRecord:
        job = await self.repository.get_job(job_id)
        if job is None:
            raise RecordNotFoundError("Job", job_id)
        return job
