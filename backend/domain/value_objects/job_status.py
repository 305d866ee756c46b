"""
JobStatus Value Object

Immutable representation of a video job's status in the processing pipeline.
"""

from enum import Enum


class JobStatus(str, Enum):
    """
    Immutable job status enum.

    Lifecycle: UPLOADING -> PROCESSING -> COMPLETED, with FAILED reachable
    from any non-terminal status.
    """

    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        """Check if this status is terminal (no further transitions)."""
        return self in {JobStatus.COMPLETED, JobStatus.FAILED}

    def is_active(self) -> bool:
        """Check if this status represents work that has not finished."""
        return not self.is_terminal()

    def can_transition_to(self, new_status: "JobStatus") -> bool:
        """
        Check if transition to new status is valid.

        A status may transition to itself while a run moves through the
        sub-stages of PROCESSING.

        Args:
            new_status: Target status

        Returns:
            True if transition is allowed
        """
        valid_transitions = {
            JobStatus.UPLOADING: {JobStatus.PROCESSING, JobStatus.FAILED},
            JobStatus.PROCESSING: {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED},
            JobStatus.COMPLETED: set(),  # Terminal state
            JobStatus.FAILED: set(),  # Terminal state
        }

        return new_status in valid_transitions.get(self, set())

    @classmethod
    def from_string(cls, value: str) -> "JobStatus":
        """
        Create JobStatus from string value.

        Args:
            value: String representation

        Returns:
            JobStatus instance

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid job status: {value}")
