"""
Domain Value Objects

Value objects are immutable types that represent descriptive aspects of the domain.
They have no conceptual identity and are compared by their values, not by ID.

Examples:
- JobStatus: Status of a video job (immutable enum-like value)
- Principal: Authenticated actor with organization and role
"""

from .job_status import JobStatus
from .principal import Principal

__all__ = ["JobStatus", "Principal"]
