"""Weekly achievement evaluation.

Rules are plain functions over a ``WeeklyActivity`` snapshot, registered in
an ``AchievementRuleRegistry`` that the analyzer receives at construction.
Nothing here persists badges; callers decide what to do with the results.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from p4p_engine.calculators.types import (
    DEDUCTIBLE_INCIDENT_TYPES,
    ZERO,
    AssignmentRecord,
    IncidentRecord,
    JobRecord,
)
from p4p_engine.exceptions import RecordNotFoundError
from p4p_engine.repository import P4PRepository

logger = logging.getLogger(__name__)


def week_start_for(day: date | datetime) -> date:
    """Sunday on or before ``day``."""
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=(day.weekday() + 1) % 7)


@dataclass(frozen=True)
class WeeklyActivity:
    """One employee's work in one week (Sunday through Saturday)."""

    employee_id: UUID
    week_start: date
    assignments: tuple[AssignmentRecord, ...] = ()
    jobs: dict[UUID, JobRecord] = field(default_factory=dict)
    incidents: tuple[IncidentRecord, ...] = ()

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=6)

    def completed_assignments(self) -> list[tuple[AssignmentRecord, JobRecord]]:
        pairs = []
        for assignment in self.assignments:
            job = self.jobs.get(assignment.job_id)
            if job is not None and job.is_completed:
                pairs.append((assignment, job))
        return pairs

    def incidents_in_week(self) -> list[IncidentRecord]:
        return [
            i
            for i in self.incidents
            if i.occurred_on is not None and self.week_start <= i.occurred_on <= self.week_end
        ]


@dataclass(frozen=True)
class AchievementCheck:
    earned: bool
    value: Decimal = ZERO


@dataclass(frozen=True)
class AchievementRule:
    achievement_type: str
    title: str
    description: str
    check: Callable[[WeeklyActivity], AchievementCheck]


@dataclass(frozen=True)
class AchievementResult:
    """Outcome of one rule for one employee and week."""

    employee_id: UUID
    week_start: date
    achievement_type: str
    title: str
    earned: bool
    value: Decimal


class AchievementRuleRegistry:
    """Ordered set of achievement rules keyed by type."""

    def __init__(self, rules: list[AchievementRule] | None = None):
        self._rules: dict[str, AchievementRule] = {}
        for rule in rules or []:
            self.register(rule)

    def register(self, rule: AchievementRule) -> None:
        if rule.achievement_type in self._rules:
            raise ValueError(f"Achievement '{rule.achievement_type}' already registered")
        self._rules[rule.achievement_type] = rule

    def unregister(self, achievement_type: str) -> None:
        self._rules.pop(achievement_type, None)

    def get(self, achievement_type: str) -> AchievementRule | None:
        return self._rules.get(achievement_type)

    def __iter__(self) -> Iterator[AchievementRule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


# ============================================================================
# Built-in rules
# ============================================================================


def _efficiency_master(activity: WeeklyActivity) -> AchievementCheck:
    """Average budgeted/jobsite hours of 150% or more on completed jobs."""
    ratios = [
        job.budgeted_hours / assignment.jobsite_hours * 100
        for assignment, job in activity.completed_assignments()
        if job.budgeted_hours > 0 and assignment.jobsite_hours > 0
    ]
    if not ratios:
        return AchievementCheck(earned=False)
    average = (sum(ratios, ZERO) / len(ratios)).quantize(Decimal("0.01"))
    return AchievementCheck(earned=average >= 150, value=average)


def _revenue_champion(activity: WeeklyActivity) -> AchievementCheck:
    """At least $500 of P4P from completed jobs."""
    total = sum(
        (assignment.performance_pay for assignment, _ in activity.completed_assignments()),
        ZERO,
    )
    return AchievementCheck(earned=total >= 500, value=total)


def _consistency_pro(activity: WeeklyActivity) -> AchievementCheck:
    """Worked on five or more distinct days."""
    days = {a.work_date for a in activity.assignments if a.work_date is not None}
    return AchievementCheck(earned=len(days) >= 5, value=Decimal(len(days)))


def _safety_star(activity: WeeklyActivity) -> AchievementCheck:
    """Worked during the week without a quality or damage incident."""
    incidents = [
        i for i in activity.incidents_in_week() if i.incident_type in DEDUCTIBLE_INCIDENT_TYPES
    ]
    earned = bool(activity.assignments) and not incidents
    return AchievementCheck(earned=earned, value=Decimal(len(incidents)))


def _team_leader(activity: WeeklyActivity) -> AchievementCheck:
    """Led three or more jobs."""
    led = sum(1 for a in activity.assignments if a.is_leader)
    return AchievementCheck(earned=led >= 3, value=Decimal(led))


def default_registry() -> AchievementRuleRegistry:
    """A new registry holding the built-in rules."""
    return AchievementRuleRegistry(
        [
            AchievementRule(
                "efficiency_master",
                "Efficiency Master",
                "Achieved 150%+ efficiency this week",
                _efficiency_master,
            ),
            AchievementRule(
                "revenue_champion",
                "Revenue Champion",
                "Earned $500+ in P4P this week",
                _revenue_champion,
            ),
            AchievementRule(
                "consistency_pro",
                "Consistency Pro",
                "Worked 5+ days this week",
                _consistency_pro,
            ),
            AchievementRule(
                "safety_star",
                "Safety Star",
                "Zero incidents this week",
                _safety_star,
            ),
            AchievementRule(
                "team_leader",
                "Team Leader",
                "Led 3+ jobs this week",
                _team_leader,
            ),
        ]
    )


class AchievementAnalyzer:
    """Evaluates registered rules against stored weekly activity."""

    def __init__(self, repository: P4PRepository, registry: AchievementRuleRegistry):
        self.repository = repository
        self.registry = registry

    async def load_activity(self, employee_id: UUID, week_start: date) -> WeeklyActivity:
        week_start = week_start_for(week_start)
        assignments = await self.repository.get_assignments_for_employee(
            employee_id, week_start, week_start + timedelta(days=6)
        )
        jobs: dict[UUID, JobRecord] = {}
        for assignment in assignments:
            if assignment.job_id not in jobs:
                job = await self.repository.get_job(assignment.job_id)
                if job is not None:
                    jobs[job.job_id] = job
        incidents = await self.repository.get_incidents_for_employee(employee_id)
        return WeeklyActivity(
            employee_id=employee_id,
            week_start=week_start,
            assignments=tuple(assignments),
            jobs=jobs,
            incidents=tuple(incidents),
        )

    def evaluate(self, activity: WeeklyActivity) -> list[AchievementResult]:
        results = []
        for rule in self.registry:
            check = rule.check(activity)
            results.append(
                AchievementResult(
                    employee_id=activity.employee_id,
                    week_start=activity.week_start,
                    achievement_type=rule.achievement_type,
                    title=rule.title,
                    earned=check.earned,
                    value=check.value,
                )
            )
        return results

    async def evaluate_employee(
        self, employee_id: UUID, week_start: date
    ) -> list[AchievementResult]:
        if await self.repository.get_employee(employee_id) is None:
            raise RecordNotFoundError("Employee", employee_id)
        return self.evaluate(await self.load_activity(employee_id, week_start))

    async def evaluate_week(self, week_start: date) -> dict[UUID, list[AchievementResult]]:
        """Evaluate every active employee; returns only earned achievements."""
        earned: dict[UUID, list[AchievementResult]] = {}
        employees = await self.repository.list_employees()
        for employee in employees:
            activity = await self.load_activity(employee.employee_id, week_start)
            results = [r for r in self.evaluate(activity) if r.earned]
            if results:
                earned[employee.employee_id] = results
        logger.info(
            "Evaluated achievements for %d employees, %d earned at least one",
            len(employees),
            len(earned),
        )
        return earned
