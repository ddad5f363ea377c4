"""Employee model."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from p4p_engine.calculators.types import EmployeeRecord
from p4p_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from p4p_engine.models.incident import Incident
    from p4p_engine.models.job import JobAssignment


class Employee(Base, TimestampMixin):
    """Crew member."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[str] = mapped_column(String, nullable=False, default="")
    base_hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("18.00")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("base_hourly_rate >= 0", name="employee_base_rate_check"),
    )

    # Relationships
    assignments: Mapped[list[JobAssignment]] = relationship(back_populates="employee")
    incidents: Mapped[list[Incident]] = relationship(back_populates="employee")

    def to_record(self) -> EmployeeRecord:
        return EmployeeRecord(
            employee_id=self.employee_id,
            name=self.name,
            position=self.position,
            base_hourly_rate=self.base_hourly_rate,
            active=self.is_active,
        )
