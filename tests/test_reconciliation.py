"""Tests for pay period spanning job reconciliation."""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from hypothesis import given, settings
from hypothesis import strategies as st

from p4p_engine.calculators.reconciliation import (
    interim_hourly_payment,
    job_spans_pay_periods,
    reconcile_job,
    reconciliation_pool,
)
from p4p_engine.calculators.types import (
    AssignmentRecord,
    JobCategory,
    JobRecord,
    JobStatus,
    P4PRules,
)


def _project(**kwargs) -> JobRecord:
    values = {
        "job_id": uuid4(),
        "job_type": "landscaping",
        "budgeted_hours": Decimal("80"),
        "labor_revenue": Decimal("6000.00"),
        "status": JobStatus.COMPLETED,
        "category": JobCategory.MULTI_DAY,
        "start_date": date(2024, 3, 20),
        "end_date": date(2024, 3, 28),
        "completed_at": datetime(2024, 3, 28, 17, 0),
        "spans_pay_periods": True,
    }
    values.update(kwargs)
    return JobRecord(**values)


def _worker(job: JobRecord, hours: str, **kwargs) -> AssignmentRecord:
    return AssignmentRecord(
        assignment_id=uuid4(),
        job_id=job.job_id,
        employee_id=uuid4(),
        hours_worked=Decimal(hours),
        jobsite_hours=Decimal(hours),
        **kwargs,
    )


class TestSpanDetection:
    """Test pay period span detection."""

    def test_multi_day_crossing_boundary(self):
        assert job_spans_pay_periods(_project())

    def test_multi_day_within_one_period(self):
        job = _project(start_date=date(2024, 3, 12), end_date=date(2024, 3, 20))

        assert not job_spans_pay_periods(job)

    def test_single_day_never_spans(self):
        assert not job_spans_pay_periods(_project(category=JobCategory.SINGLE_DAY))

    def test_missing_dates_never_span(self):
        assert not job_spans_pay_periods(_project(end_date=None))


class TestInterimPayment:
    """Test hourly pay while a project is open."""

    def test_hours_at_configured_minimum(self, rules):
        job = _project(status=JobStatus.IN_PROGRESS, completed_at=None)
        assignment = _worker(job, "30")

        payment = interim_hourly_payment(assignment, rules)

        assert payment.rate == Decimal("18.00")
        assert payment.amount == Decimal("540.00")

    def test_no_hours_no_payment(self, rules):
        assignment = _worker(_project(), "0")

        assert interim_hourly_payment(assignment, rules) is None


class TestReconcileJob:
    """Test final P4P for spanning projects."""

    def test_pool_includes_large_job_bonus(self, rules):
        # 6000 x 33% + 80 x 1.50
        assert reconciliation_pool(_project(), rules) == Decimal("2100.00")

    def test_split_by_hours_with_training(self, rules):
        job = _project()
        lead = _worker(job, "30", performance_pay=Decimal("540.00"))
        trainee = _worker(job, "20", is_training=True, performance_pay=Decimal("360.00"))

        outcome = reconcile_job(job, [lead, trainee], rules)

        assert outcome.reconciled
        assert outcome.total_hours == Decimal("50")
        first, second = outcome.lines
        assert first.hourly_portion == Decimal("0.6000")
        assert first.proportional_share == Decimal("1260.00")
        assert first.final_p4p == Decimal("1260.00")
        assert first.adjustment == Decimal("720.00")
        assert second.proportional_share == Decimal("840.00")
        assert second.training_bonus == Decimal("80.00")
        assert second.final_p4p == Decimal("920.00")
        assert second.adjustment == Decimal("560.00")
        assert not first.floor_applied
        assert outcome.total_adjustment == Decimal("1280.00")

    def test_wage_floor_applied(self, rules):
        job = _project(labor_revenue=Decimal("500.00"), budgeted_hours=Decimal("20"))
        worker = _worker(job, "30", performance_pay=Decimal("540.00"))

        outcome = reconcile_job(job, [worker], rules)

        line = outcome.lines[0]
        assert line.proportional_share == Decimal("165.00")
        assert line.final_p4p == Decimal("540.00")
        assert line.floor_applied
        assert line.adjustment == Decimal("0.00")

    def test_rerun_after_persisting_has_zero_adjustment(self, rules):
        job = _project()
        crew = [_worker(job, "30"), _worker(job, "20")]

        first = reconcile_job(job, crew, rules)
        persisted = [
            replace(a, performance_pay=line.final_p4p) for a, line in zip(crew, first.lines)
        ]
        second = reconcile_job(job, persisted, rules)

        assert [line.final_p4p for line in second.lines] == [
            line.final_p4p for line in first.lines
        ]
        assert second.total_adjustment == Decimal("0")

    def test_open_job_skipped(self, rules):
        job = _project(status=JobStatus.IN_PROGRESS, completed_at=None)

        outcome = reconcile_job(job, [_worker(job, "8")], rules)

        assert not outcome.reconciled
        assert outcome.lines == []

    def test_no_hours_skipped(self, rules):
        job = _project()

        outcome = reconcile_job(job, [_worker(job, "0"), _worker(job, "0")], rules)

        assert not outcome.reconciled
        assert "no hours worked" in outcome.skipped_reason

    def test_zero_hour_worker_gets_nothing(self, rules):
        job = _project()

        outcome = reconcile_job(job, [_worker(job, "10"), _worker(job, "0")], rules)

        assert outcome.lines[1].final_p4p == Decimal("0")
        assert outcome.lines[0].proportional_share == Decimal("2100.00")

    @given(
        hours=st.lists(
            st.decimals(min_value="0.25", max_value=80, places=2), min_size=1, max_size=8
        ),
        revenue=st.decimals(min_value=0, max_value=50000, places=2),
    )
    @settings(max_examples=200, deadline=None)
    def test_shares_conserve_pool(self, hours, revenue):
        """Proportional shares add up to the pool within a cent per worker."""
        rules = P4PRules(job_type="landscaping", minimum_hourly_rate=Decimal("18.00"))
        job = _project(labor_revenue=revenue)
        crew = [_worker(job, str(h)) for h in hours]

        outcome = reconcile_job(job, crew, rules)

        total_share = sum(line.proportional_share for line in outcome.lines)
        assert abs(total_share - outcome.pool) <= Decimal("0.005") * len(crew)
        for line in outcome.lines:
            assert line.final_p4p >= line.minimum_pay

    @given(
        crew=st.lists(
            st.tuples(
                st.decimals(min_value="0.25", max_value=80, places=2),
                st.booleans(),
                st.decimals(min_value=0, max_value=2000, places=2),
            ),
            min_size=1,
            max_size=8,
        ),
        revenue=st.decimals(min_value=0, max_value=50000, places=2),
    )
    @settings(max_examples=200, deadline=None)
    def test_final_pay_conserves_pool_plus_training(self, crew, revenue):
        """Without a wage floor, final pay is the pool plus training bonuses."""
        rules = P4PRules(job_type="landscaping", minimum_hourly_rate=Decimal("0"))
        job = _project(labor_revenue=revenue)
        workers = [
            _worker(job, str(hours), is_training=training, performance_pay=paid)
            for hours, training, paid in crew
        ]

        outcome = reconcile_job(job, workers, rules)

        assert not any(line.floor_applied for line in outcome.lines)
        total_final = sum(line.final_p4p for line in outcome.lines)
        total_training = sum(line.training_bonus for line in outcome.lines)
        assert abs(total_final - (outcome.pool + total_training)) <= Decimal("0.005") * len(
            workers
        )
        assert total_training == sum(
            Decimal("4.00") * hours for hours, training, _ in crew if training
        )
        for line in outcome.lines:
            assert line.final_p4p - line.previously_paid == line.adjustment
