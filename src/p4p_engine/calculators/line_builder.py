"""Pay line builder with idempotent hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from p4p_engine.calculators.types import ZERO, LineCandidate, LineType

# Line types that make up performance pay
P4P_LINE_TYPES = frozenset(LineType) - {LineType.WAGE_FLOOR_SUPPLEMENT}

POSITIVE_LINE_TYPES = frozenset(
    {
        LineType.BASE_SHARE,
        LineType.SEASONAL_BONUS,
        LineType.TRAINING_BONUS,
        LineType.LARGE_JOB_BONUS,
        LineType.REVIEW_BONUS,
        LineType.WAGE_FLOOR_SUPPLEMENT,
    }
)


class LineItemBuilder:
    """Builds pay lines with deterministic hashing for idempotency.

    Sign conventions (non-negotiable):
    - shares and bonuses: positive
    - INCIDENT_DEDUCTION: negative
    - WAGE_FLOOR_SUPPLEMENT: positive, reported beside performance pay,
      never part of it

    Rounding:
    - USD to 2 decimals per line
    - Internal compute at full Decimal precision
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: LineCandidate) -> str:
        """Compute deterministic hash for a line.

        Identical defining fields always produce identical hashes.
        """
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def create_earning_line(
        line_type: LineType,
        amount: Decimal,
        quantity: Decimal | None = None,
        rate: Decimal | None = None,
        source_id: UUID | None = None,
        explanation: str | None = None,
    ) -> LineCandidate:
        """Create a share or bonus line (positive amount)."""
        if line_type not in POSITIVE_LINE_TYPES:
            raise ValueError(f"{line_type.value} is not an earning line type")
        line = LineCandidate(
            line_type=line_type,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            quantity=quantity,
            rate=rate,
            source_id=source_id,
            explanation=explanation,
        )
        line.line_hash = LineItemBuilder.compute_line_hash(line)
        return line

    @staticmethod
    def create_deduction_line(
        amount: Decimal,
        quantity: Decimal | None = None,
        explanation: str | None = None,
    ) -> LineCandidate:
        """Create an incident deduction line (negative amount)."""
        line = LineCandidate(
            line_type=LineType.INCIDENT_DEDUCTION,
            amount=-LineItemBuilder.round_to_cents(abs(amount)),
            quantity=quantity,
            explanation=explanation,
        )
        line.line_hash = LineItemBuilder.compute_line_hash(line)
        return line

    @staticmethod
    def calculate_performance_pay_from_lines(lines: list[LineCandidate]) -> Decimal:
        """Sum of all lines except the wage-floor supplement."""
        total = ZERO
        for line in lines:
            if line.line_type in P4P_LINE_TYPES:
                total += line.amount
        return LineItemBuilder.round_to_cents(total)

    @staticmethod
    def validate_line_signs(lines: list[LineCandidate]) -> list[str]:
        """Validate that all lines have correct signs.

        Returns list of error messages (empty if all valid).
        """
        errors: list[str] = []

        for i, line in enumerate(lines):
            if line.line_type in POSITIVE_LINE_TYPES:
                if line.amount < 0:
                    errors.append(
                        f"Line {i} ({line.line_type.value}) has negative amount "
                        f"{line.amount}, expected positive"
                    )
            elif line.amount > 0:
                errors.append(
                    f"Line {i} ({line.line_type.value}) has positive amount "
                    f"{line.amount}, expected negative"
                )

        return errors

    @staticmethod
    def sum_by_type(lines: list[LineCandidate]) -> dict[LineType, Decimal]:
        """Sum line amounts by type."""
        totals: dict[LineType, Decimal] = {lt: ZERO for lt in LineType}
        for line in lines:
            totals[line.line_type] += line.amount
        return totals
