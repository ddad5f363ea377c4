"""Typed exceptions for the P4P engine.

    P4PError (base)
    +-- ConfigurationError
    |   +-- ConfigurationNotFoundError
    |   +-- AmbiguousConfigurationError
    +-- RecordNotFoundError
    +-- InvalidTransitionError
    +-- JobLockedError

Every exception carries a machine-readable ``code`` and the structured data
that produced it, so callers catch by type instead of parsing messages.
"""

from __future__ import annotations

from uuid import UUID


class P4PError(Exception):
    """Base class for all P4P engine errors."""

    code: str = "P4P_ERROR"


class ConfigurationError(P4PError):
    """The P4P configuration for a job type cannot be used."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, job_type: str, message: str):
        self.job_type = job_type
        super().__init__(message)


class ConfigurationNotFoundError(ConfigurationError):
    """Raised when no active configuration exists for a job type."""

    code = "CONFIGURATION_NOT_FOUND"

    def __init__(self, job_type: str):
        super().__init__(
            job_type, f"No active P4P configuration for job type '{job_type}'"
        )


class AmbiguousConfigurationError(ConfigurationError):
    """Raised when several configurations are active for one job type."""

    code = "AMBIGUOUS_CONFIGURATION"

    def __init__(self, job_type: str, config_ids: list[UUID]):
        self.config_ids = config_ids
        super().__init__(
            job_type,
            f"{len(config_ids)} active P4P configurations for job type "
            f"'{job_type}': {', '.join(str(c) for c in config_ids)}",
        )


class RecordNotFoundError(P4PError):
    """Raised when a job, assignment or employee does not exist."""

    code = "RECORD_NOT_FOUND"

    def __init__(self, record_type: str, record_id: UUID):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(f"{record_type} {record_id} not found")


class InvalidTransitionError(P4PError):
    """Raised when an invalid job status transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class JobLockedError(P4PError):
    """Raised when the crew of a job can no longer be changed."""

    code = "JOB_LOCKED"

    def __init__(self, job_id: UUID, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job {job_id} is '{status}' and no longer accepts assignments")
