"""Incident model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from p4p_engine.calculators.types import IncidentRecord
from p4p_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from p4p_engine.models.employee import Employee


class Incident(Base, TimestampMixin):
    """Quality or damage incident, or a review/estimate credit."""

    __tablename__ = "incident"

    incident_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("job.job_id", ondelete="SET NULL")
    )
    incident_type: Mapped[str] = mapped_column(String, nullable=False)
    cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    description: Mapped[str | None] = mapped_column(String)
    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    occurred_on: Mapped[date | None] = mapped_column(Date)

    __table_args__ = (
        CheckConstraint(
            "incident_type IN ('quality_issue', 'property_damage', 'equipment_damage', "
            "'customer_review', 'estimate_completed')",
            name="incident_type_check",
        ),
        CheckConstraint("cost >= 0", name="incident_cost_check"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="incidents")

    def to_record(self) -> IncidentRecord:
        return IncidentRecord(
            incident_id=self.incident_id,
            employee_id=self.employee_id,
            job_id=self.job_id,
            incident_type=self.incident_type,
            cost=self.cost,
            resolved=self.is_resolved,
            occurred_on=self.occurred_on,
        )
