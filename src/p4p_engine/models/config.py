"""P4P configuration model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from p4p_engine.calculators.types import P4PRules
from p4p_engine.config import get_settings
from p4p_engine.models.base import Base


def _default_minimum_hourly_rate() -> Decimal:
    return get_settings().default_minimum_hourly_rate


class P4PConfiguration(Base):
    """Pay-for-performance policy for one job type.

    Only one active row per job type is expected; the resolver reports
    duplicates instead of picking one.
    """

    __tablename__ = "p4p_configuration"

    config_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    job_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
    revenue_share_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("33.00")
    )
    seasonal_bonus_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("7.00")
    )
    minimum_hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=_default_minimum_hourly_rate
    )
    training_bonus_per_hour: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("4.00")
    )
    large_job_hour_threshold: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("49.00")
    )
    large_job_bonus_per_hour: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("1.50")
    )
    seasonal_start_month: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    seasonal_end_month: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "revenue_share_percent BETWEEN 0 AND 100",
            name="p4p_configuration_revenue_share_check",
        ),
        CheckConstraint(
            "seasonal_start_month BETWEEN 1 AND 12 AND seasonal_end_month BETWEEN 1 AND 12",
            name="p4p_configuration_season_check",
        ),
    )

    def to_rules(self) -> P4PRules:
        return P4PRules(
            job_type=self.job_type,
            minimum_hourly_rate=self.minimum_hourly_rate,
            revenue_share_percent=self.revenue_share_percent,
            seasonal_bonus_percent=self.seasonal_bonus_percent,
            training_bonus_per_hour=self.training_bonus_per_hour,
            large_job_hour_threshold=self.large_job_hour_threshold,
            large_job_bonus_per_hour=self.large_job_bonus_per_hour,
            seasonal_start_month=self.seasonal_start_month,
            seasonal_end_month=self.seasonal_end_month,
            active=self.is_active,
            config_id=self.config_id,
        )
