class LeanAbError(Exception):
    """Base class for every error raised by the assignment core."""


class InvalidWeights(LeanAbError):
    """Group configuration rejected at experiment creation; nothing was created."""

    def __init__(self, experiment_name: str, reason: str):
        self.experiment_name = experiment_name
        self.reason = reason
        super().__init__(f"Invalid weights for experiment '{experiment_name}': {reason}")


class StorageError(LeanAbError):
    """The store was unavailable or a write failed for a reason other than a duplicate key."""


class AssignmentError(LeanAbError):
    """Stored configuration could not produce a group for a valid random draw."""


class UnknownExperiment(LeanAbError):
    def __init__(self, experiment_name: str):
        self.experiment_name = experiment_name
        super().__init__(
            f"There was no experiment found with the name '{experiment_name}'. "
            "Please check the spelling."
        )


class DuplicateAssignment(LeanAbError):
    """Another request already persisted an assignment for this (user, experiment) pair."""
