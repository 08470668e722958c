"""
Error taxonomy for the group message job store.
"""

from typing import List


class JobStoreError(Exception):
    """Base class for job store errors."""
    pass


class InvalidJobError(JobStoreError, ValueError):
    """Raised when a job payload fails validation before insert."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("Invalid job: " + "; ".join(errors))


class FatalStoreError(JobStoreError):
    """
    Raised when a read the queue cannot do without fails.

    Not meant to be handled by callers: the application is expected to let it
    terminate the process. By the time it is raised the corruption flag has
    already been updated if the storage error indicated corruption.
    """

    def __init__(self, operation: str, corruption_suspected: bool = False):
        self.operation = operation
        self.corruption_suspected = corruption_suspected
        message = f"Fatal storage failure in {operation}"
        if corruption_suspected:
            message += " (database corruption suspected)"
        super().__init__(message)
