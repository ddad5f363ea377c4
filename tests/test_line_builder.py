"""Tests for line item builder."""

from decimal import Decimal
from uuid import uuid4

import pytest

from p4p_engine.calculators.line_builder import LineItemBuilder
from p4p_engine.calculators.types import LineCandidate, LineType


class TestLineItemBuilder:
    """Test line item builder functionality."""

    def test_round_to_cents(self):
        """Test rounding to 2 decimal places."""
        assert LineItemBuilder.round_to_cents(Decimal("10.124")) == Decimal("10.12")

        # Half-up rounding
        assert LineItemBuilder.round_to_cents(Decimal("10.125")) == Decimal("10.13")
        assert LineItemBuilder.round_to_cents(Decimal("10.135")) == Decimal("10.14")
        assert LineItemBuilder.round_to_cents(Decimal("-10.125")) == Decimal("-10.13")

    def test_create_earning_line(self):
        """Test creating a base share line (positive amount)."""
        job_id = uuid4()
        line = LineItemBuilder.create_earning_line(
            LineType.BASE_SHARE,
            Decimal("396.004"),
            quantity=Decimal("2400.00"),
            rate=Decimal("33"),
            source_id=job_id,
            explanation="33% of 2400.00 labor revenue / 2",
        )

        assert line.line_type == LineType.BASE_SHARE
        assert line.amount == Decimal("396.00")
        assert line.source_id == job_id
        assert line.quantity == Decimal("2400.00")
        assert line.rate == Decimal("33")

    def test_earning_line_is_always_positive(self):
        line = LineItemBuilder.create_earning_line(LineType.TRAINING_BONUS, Decimal("-28"))

        assert line.amount == Decimal("28.00")

    def test_deduction_type_rejected_as_earning(self):
        with pytest.raises(ValueError):
            LineItemBuilder.create_earning_line(LineType.INCIDENT_DEDUCTION, Decimal("50"))

    def test_create_deduction_line(self):
        """Test creating incident deduction line (negative amount)."""
        line = LineItemBuilder.create_deduction_line(
            Decimal("75.50"),
            quantity=Decimal("2"),
            explanation="2 outstanding incident(s)",
        )

        assert line.line_type == LineType.INCIDENT_DEDUCTION
        assert line.amount == Decimal("-75.50")
        assert line.quantity == Decimal("2")

    def test_performance_pay_excludes_supplement(self):
        """Test performance pay sums every line but the wage floor top-up."""
        lines = [
            LineCandidate(line_type=LineType.BASE_SHARE, amount=Decimal("100.00")),
            LineCandidate(line_type=LineType.TRAINING_BONUS, amount=Decimal("28.00")),
            LineCandidate(line_type=LineType.REVIEW_BONUS, amount=Decimal("25.00")),
            LineCandidate(line_type=LineType.INCIDENT_DEDUCTION, amount=Decimal("-50.00")),
            LineCandidate(
                line_type=LineType.WAGE_FLOOR_SUPPLEMENT, amount=Decimal("41.00")
            ),  # Not in P4P
        ]

        total = LineItemBuilder.calculate_performance_pay_from_lines(lines)

        # 100 + 28 + 25 - 50 = 103
        assert total == Decimal("103.00")

    def test_validate_line_signs(self):
        """Test sign validation for line items."""
        valid_lines = [
            LineCandidate(line_type=LineType.BASE_SHARE, amount=Decimal("100.00")),
            LineCandidate(line_type=LineType.INCIDENT_DEDUCTION, amount=Decimal("-10.00")),
            LineCandidate(line_type=LineType.WAGE_FLOOR_SUPPLEMENT, amount=Decimal("5.00")),
        ]
        assert LineItemBuilder.validate_line_signs(valid_lines) == []

        invalid_lines = [
            LineCandidate(line_type=LineType.BASE_SHARE, amount=Decimal("-100.00")),
            LineCandidate(line_type=LineType.INCIDENT_DEDUCTION, amount=Decimal("10.00")),
        ]
        errors = LineItemBuilder.validate_line_signs(invalid_lines)

        assert len(errors) == 2
        assert "BASE_SHARE" in errors[0]
        assert "INCIDENT_DEDUCTION" in errors[1]

    def test_sum_by_type(self):
        lines = [
            LineCandidate(line_type=LineType.BASE_SHARE, amount=Decimal("100.00")),
            LineCandidate(line_type=LineType.INCIDENT_DEDUCTION, amount=Decimal("-10.00")),
            LineCandidate(line_type=LineType.INCIDENT_DEDUCTION, amount=Decimal("-5.00")),
        ]

        totals = LineItemBuilder.sum_by_type(lines)

        assert totals[LineType.BASE_SHARE] == Decimal("100.00")
        assert totals[LineType.INCIDENT_DEDUCTION] == Decimal("-15.00")
        assert totals[LineType.SEASONAL_BONUS] == Decimal("0")


class TestLineHashing:
    """Test deterministic line hashing."""

    def test_same_line_same_hash(self):
        source_id = uuid4()
        line1 = LineCandidate(
            line_type=LineType.BASE_SHARE, amount=Decimal("396.00"), source_id=source_id
        )
        line2 = LineCandidate(
            line_type=LineType.BASE_SHARE, amount=Decimal("396.00"), source_id=source_id
        )

        assert LineItemBuilder.compute_line_hash(line1) == LineItemBuilder.compute_line_hash(
            line2
        )

    def test_explanation_does_not_affect_hash(self):
        line1 = LineCandidate(
            line_type=LineType.BASE_SHARE, amount=Decimal("396.00"), explanation="first"
        )
        line2 = LineCandidate(
            line_type=LineType.BASE_SHARE, amount=Decimal("396.00"), explanation="second"
        )

        assert LineItemBuilder.compute_line_hash(line1) == LineItemBuilder.compute_line_hash(
            line2
        )

    def test_different_amount_different_hash(self):
        line1 = LineCandidate(line_type=LineType.BASE_SHARE, amount=Decimal("396.00"))
        line2 = LineCandidate(line_type=LineType.BASE_SHARE, amount=Decimal("396.01"))

        assert LineItemBuilder.compute_line_hash(line1) != LineItemBuilder.compute_line_hash(
            line2
        )

    def test_built_lines_carry_their_hash(self):
        earning = LineItemBuilder.create_earning_line(LineType.BASE_SHARE, Decimal("396.004"))
        deduction = LineItemBuilder.create_deduction_line(Decimal("50"))

        assert earning.line_hash == LineItemBuilder.compute_line_hash(earning)
        assert deduction.line_hash == LineItemBuilder.compute_line_hash(deduction)
        assert earning.line_hash != deduction.line_hash
