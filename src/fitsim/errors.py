# Copyright (c) Syntropy Systems
"""Exception hierarchy for fitsim."""
from __future__ import annotations


class FitsimError(Exception):
    """Base class for all fitsim errors."""


class ConfigurationError(FitsimError):
    """Invalid study configuration. Aborts the whole run."""


class ReplicationError(FitsimError):
    """Recoverable failure scoped to a single replication."""


class NonConvergenceError(ReplicationError):
    """Model estimation did not converge or could not be evaluated."""


class InvalidCovarianceError(ReplicationError):
    """The population structure did not yield a valid covariance matrix."""


class ConditionFailure(FitsimError):
    """Every replication of a condition failed."""

    def __init__(self, condition_index: int, failed: int) -> None:
        self.condition_index = condition_index
        self.failed = failed
        super().__init__(
            f"Condition #{condition_index}: all {failed} replications failed"
        )


class ResumeStateError(FitsimError):
    """Persisted partial state is unreadable or does not match the study."""
