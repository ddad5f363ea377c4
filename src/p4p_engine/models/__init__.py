"""ORM models for the P4P engine."""

from p4p_engine.models.base import Base, TimestampMixin
from p4p_engine.models.config import P4PConfiguration
from p4p_engine.models.employee import Employee
from p4p_engine.models.incident import Incident
from p4p_engine.models.job import Job, JobAssignment

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "Incident",
    "Job",
    "JobAssignment",
    "P4PConfiguration",
]
