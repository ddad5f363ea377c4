"""Job state machine with transition validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from p4p_engine.calculators.types import JobStatus
from p4p_engine.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    from p4p_engine.calculators.types import AssignmentRecord, JobRecord


class JobStateMachine:
    """State machine for job status transitions.

    Allowed transitions:
    - pending → in_progress, on_hold, completed
    - in_progress → completed, on_hold, flagged
    - on_hold → pending, in_progress
    - flagged → in_progress, completed
    - completed → flagged (sent back for review)
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        JobStatus.PENDING: [JobStatus.IN_PROGRESS, JobStatus.ON_HOLD, JobStatus.COMPLETED],
        JobStatus.IN_PROGRESS: [JobStatus.COMPLETED, JobStatus.ON_HOLD, JobStatus.FLAGGED],
        JobStatus.ON_HOLD: [JobStatus.PENDING, JobStatus.IN_PROGRESS],
        JobStatus.FLAGGED: [JobStatus.IN_PROGRESS, JobStatus.COMPLETED],
        JobStatus.COMPLETED: [JobStatus.FLAGGED],
    }

    # Statuses where performance pay is calculated
    CALCULATION_ALLOWED = {JobStatus.COMPLETED}

    # Statuses where crew and hours can still change
    ASSIGNMENTS_MUTABLE = {
        JobStatus.PENDING,
        JobStatus.IN_PROGRESS,
        JobStatus.ON_HOLD,
        JobStatus.FLAGGED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            allowed = [JobStatus(s).value for s in cls.get_next_statuses(from_status)]
            raise InvalidTransitionError(
                JobStatus(from_status).value,
                JobStatus(to_status).value,
                f"allowed next statuses: {', '.join(allowed) or 'none'}",
            )

    @classmethod
    def can_calculate(cls, status: str) -> bool:
        """Check if performance pay can be calculated in this status."""
        return status in cls.CALCULATION_ALLOWED

    @classmethod
    def can_modify_assignments(cls, status: str) -> bool:
        """Check if assignments can be added or edited."""
        return status in cls.ASSIGNMENTS_MUTABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def validate_job_for_transition(
        cls,
        job: JobRecord,
        to_status: str,
        assignments: list[AssignmentRecord],
    ) -> list[str]:
        """Validate a job for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = job.status

        if not cls.can_transition(from_status, to_status):
            errors.append(
                f"Cannot transition from '{JobStatus(from_status).value}' "
                f"to '{JobStatus(to_status).value}'"
            )
            return errors

        if to_status == JobStatus.COMPLETED:
            if not assignments:
                errors.append("Job has no crew assigned")
            elif all(a.jobsite_hours <= 0 for a in assignments):
                errors.append("No jobsite hours recorded for any crew member")

        return errors
