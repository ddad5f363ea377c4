"""Tests for compliance and achievement analyzers."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from p4p_engine.analyzers.achievements import (
    AchievementAnalyzer,
    AchievementCheck,
    AchievementRule,
    AchievementRuleRegistry,
    WeeklyActivity,
    default_registry,
    week_start_for,
)
from p4p_engine.analyzers.compliance import (
    AssignmentCompliance,
    ComplianceAssessment,
    ComplianceReport,
    P4PComplianceAnalyzer,
)
from p4p_engine.calculators.types import AssignmentRecord, IncidentRecord, IncidentType
from p4p_engine.exceptions import RecordNotFoundError


def _entry(actual: str, expected: str, minimum: str, hours: str = "8") -> AssignmentCompliance:
    return AssignmentCompliance(
        assignment_id=uuid4(),
        employee_id=uuid4(),
        job_id=uuid4(),
        job_type="landscaping",
        hours_worked=Decimal(hours),
        actual_p4p=Decimal(actual),
        expected_p4p=Decimal(expected),
        minimum_required=Decimal(minimum),
        hourly_equivalent=Decimal("0"),
    )


class TestComplianceChecks:
    """Test per-assignment and aggregate compliance."""

    def test_compliant_entry(self):
        entry = _entry("396.00", "396.00", "144.00")

        assert entry.compliant
        assert entry.shortfall == Decimal("0")

    def test_rounding_difference_tolerated(self):
        assert _entry("396.01", "396.00", "144.00").calculation_correct
        assert not _entry("396.02", "396.00", "144.00").calculation_correct

    def test_below_minimum(self):
        entry = _entry("100.00", "100.00", "144.00")

        assert not entry.meets_minimum
        assert entry.shortfall == Decimal("44.00")
        assert not entry.compliant

    def test_zero_hours_inaccurate(self):
        entry = _entry("0", "0", "0", hours="0")

        assert not entry.accurate_records
        assert not entry.compliant

    @pytest.mark.parametrize(
        "rate,expected",
        [
            (Decimal("100"), ComplianceAssessment.EXCELLENT),
            (Decimal("95.0"), ComplianceAssessment.EXCELLENT),
            (Decimal("94.9"), ComplianceAssessment.GOOD),
            (Decimal("90"), ComplianceAssessment.GOOD),
            (Decimal("85"), ComplianceAssessment.ACCEPTABLE),
            (Decimal("79.9"), ComplianceAssessment.CRITICAL),
        ],
    )
    def test_assessment_buckets(self, rate, expected):
        assert ComplianceAssessment.for_rate(rate) == expected

    def test_report_rate(self):
        report = ComplianceReport(
            entries=[
                _entry("396.00", "396.00", "144.00"),
                _entry("396.00", "396.00", "144.00"),
                _entry("100.00", "100.00", "144.00"),
            ]
        )

        assert report.compliance_rate == Decimal("66.7")
        assert report.assessment == ComplianceAssessment.CRITICAL
        assert len(report.below_minimum) == 1

    def test_empty_report(self):
        assert ComplianceReport().compliance_rate == Decimal("0")


class TestComplianceAnalyzer:
    """Test compliance analysis against the database."""

    @pytest.mark.asyncio
    async def test_analyze(self, repository, test_config, test_employees, add_job, add_assignment):
        alice, bob, _ = test_employees
        job = await add_job(status="completed", completed_at=datetime(2024, 7, 15, 16, 0))
        await add_assignment(job, alice, performance_pay=Decimal("396.00"))
        short = await add_assignment(job, bob, performance_pay=Decimal("100.00"))
        unconfigured = await add_job(
            job_type="snow_removal",
            status="completed",
            completed_at=datetime(2024, 7, 15, 16, 0),
        )
        await add_assignment(unconfigured, alice)
        await add_job(status="in_progress")

        report = await P4PComplianceAnalyzer(repository).analyze()

        assert len(report.entries) == 2
        assert report.compliant_count == 1
        assert report.compliance_rate == Decimal("50.0")
        assert report.assessment == ComplianceAssessment.CRITICAL
        assert report.total_shortfall == Decimal("44.00")
        assert [e.assignment_id for e in report.miscalculated] == [short.assignment_id]
        assert unconfigured.job_id in report.errors

    @pytest.mark.asyncio
    async def test_spanning_job_checked_against_reconciliation(
        self, repository, test_config, test_employees, add_job, add_assignment
    ):
        job = await add_job(
            category="multi_day",
            status="completed",
            labor_revenue=Decimal("500.00"),
            start_date=date(2024, 3, 20),
            end_date=date(2024, 3, 28),
            completed_at=datetime(2024, 3, 28, 17, 0),
            spans_pay_periods=True,
        )
        await add_assignment(
            job,
            test_employees[0],
            hours_worked=Decimal("30.00"),
            jobsite_hours=Decimal("30.00"),
            performance_pay=Decimal("540.00"),
        )

        report = await P4PComplianceAnalyzer(repository).analyze()

        entry = report.entries[0]
        assert entry.expected_p4p == Decimal("540.00")
        assert entry.compliant


class TestWeekStart:
    """Test Sunday-based weeks."""

    def test_midweek(self):
        assert week_start_for(date(2024, 7, 17)) == date(2024, 7, 14)

    def test_sunday_is_its_own_start(self):
        assert week_start_for(date(2024, 7, 14)) == date(2024, 7, 14)

    def test_saturday(self):
        assert week_start_for(datetime(2024, 7, 20, 18, 0)) == date(2024, 7, 14)


class TestAchievementRules:
    """Test built-in rules on in-memory activity."""

    def _activity(self, assignments=(), incidents=()):
        return WeeklyActivity(
            employee_id=uuid4(),
            week_start=date(2024, 7, 14),
            assignments=tuple(assignments),
            incidents=tuple(incidents),
        )

    def test_safety_star_needs_activity(self):
        analyzer = AchievementAnalyzer(repository=None, registry=default_registry())

        results = {r.achievement_type: r for r in analyzer.evaluate(self._activity())}

        assert not results["safety_star"].earned

    def test_safety_star_ignores_incidents_outside_week(self):
        employee_id = uuid4()
        assignment = AssignmentRecord(
            assignment_id=uuid4(),
            job_id=uuid4(),
            employee_id=employee_id,
            work_date=date(2024, 7, 15),
        )
        old_incident = IncidentRecord(
            incident_id=uuid4(),
            employee_id=employee_id,
            incident_type=IncidentType.PROPERTY_DAMAGE,
            cost=Decimal("50"),
            occurred_on=date(2024, 7, 1),
        )
        analyzer = AchievementAnalyzer(repository=None, registry=default_registry())

        results = {
            r.achievement_type: r
            for r in analyzer.evaluate(self._activity([assignment], [old_incident]))
        }

        assert results["safety_star"].earned
        assert not results["consistency_pro"].earned

    def test_registry(self):
        registry = default_registry()
        assert len(registry) == 5

        rule = AchievementRule(
            "early_bird",
            "Early Bird",
            "Worked any day this week",
            lambda activity: AchievementCheck(earned=bool(activity.assignments)),
        )
        registry.register(rule)
        with pytest.raises(ValueError):
            registry.register(rule)

        registry.unregister("team_leader")
        assert registry.get("early_bird") is rule
        assert registry.get("team_leader") is None
        assert [r.achievement_type for r in registry][-1] == "early_bird"

    def test_custom_registry_only(self):
        registry = AchievementRuleRegistry(
            [
                AchievementRule(
                    "always",
                    "Always",
                    "Always earned",
                    lambda activity: AchievementCheck(earned=True, value=Decimal("1")),
                )
            ]
        )

        results = AchievementAnalyzer(None, registry).evaluate(self._activity())

        assert [(r.achievement_type, r.earned) for r in results] == [("always", True)]


@pytest.fixture
async def busy_week(test_employees, add_job, add_assignment, add_incident):
    """Alice leads a completed job every weekday; Bob works once and damages property."""
    alice, bob, _ = test_employees
    for offset in range(5):
        day = date(2024, 7, 15) + timedelta(days=offset)
        job = await add_job(
            status="completed",
            start_date=day,
            completed_at=datetime(day.year, day.month, day.day, 16, 0),
        )
        await add_assignment(job, alice, is_leader=True, performance_pay=Decimal("120.00"))

    job = await add_job(status="in_progress", start_date=date(2024, 7, 16))
    await add_assignment(job, bob)
    await add_incident(
        bob, "property_damage", cost=Decimal("75.00"), occurred_on=date(2024, 7, 17)
    )
    return alice, bob


class TestAchievementAnalyzer:
    """Test weekly evaluation against the database."""

    @pytest.mark.asyncio
    async def test_evaluate_week(self, repository, busy_week):
        alice, _ = busy_week
        analyzer = AchievementAnalyzer(repository, default_registry())

        earned = await analyzer.evaluate_week(date(2024, 7, 17))

        assert list(earned) == [alice.employee_id]
        by_type = {r.achievement_type: r for r in earned[alice.employee_id]}
        assert set(by_type) == {
            "efficiency_master",
            "revenue_champion",
            "consistency_pro",
            "safety_star",
            "team_leader",
        }
        # 16 budgeted / 7 jobsite hours
        assert by_type["efficiency_master"].value == Decimal("228.57")
        assert by_type["revenue_champion"].value == Decimal("600.00")
        assert by_type["team_leader"].value == Decimal("5")
        assert all(r.week_start == date(2024, 7, 14) for r in by_type.values())

    @pytest.mark.asyncio
    async def test_evaluate_employee_reports_all_rules(self, repository, busy_week):
        _, bob = busy_week
        analyzer = AchievementAnalyzer(repository, default_registry())

        results = await analyzer.evaluate_employee(bob.employee_id, date(2024, 7, 20))

        assert len(results) == 5
        assert not any(r.earned for r in results)
        safety = next(r for r in results if r.achievement_type == "safety_star")
        assert safety.value == Decimal("1")

    @pytest.mark.asyncio
    async def test_unknown_employee(self, repository):
        analyzer = AchievementAnalyzer(repository, default_registry())

        with pytest.raises(RecordNotFoundError):
            await analyzer.evaluate_employee(uuid4(), date(2024, 7, 17))
