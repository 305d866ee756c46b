"""
Job-specific Specifications

Concrete specifications for querying video jobs.
"""

from datetime import datetime
from typing import Iterable

from sqlalchemy import func

from models import Job
from domain.value_objects import JobStatus
from .specifications import Specification


class JobsByOrganizationSpec(Specification[Job]):
    """Jobs belonging to one tenant. Every listing starts from this."""

    def __init__(self, organization: str):
        self.organization = organization

    def is_satisfied_by(self, job: Job) -> bool:
        return job.organization == self.organization

    def to_sql_filter(self):
        return Job.organization == self.organization


class JobsByStatusSpec(Specification[Job]):
    def __init__(self, status: str):
        self.status = status

    def is_satisfied_by(self, job: Job) -> bool:
        return job.status == self.status

    def to_sql_filter(self):
        return Job.status == self.status


class JobsBySensitivitySpec(Specification[Job]):
    def __init__(self, sensitivity_status: str):
        self.sensitivity_status = sensitivity_status

    def is_satisfied_by(self, job: Job) -> bool:
        return job.sensitivity_status == self.sensitivity_status

    def to_sql_filter(self):
        return Job.sensitivity_status == self.sensitivity_status


class JobsMatchingSearchSpec(Specification[Job]):
    """
    Case-insensitive substring match on the original or stored filename.

    LIKE wildcards in the search term are matched literally.
    """

    def __init__(self, term: str):
        self.term = term.lower()

    def is_satisfied_by(self, job: Job) -> bool:
        return (
            self.term in (job.original_name or '').lower()
            or self.term in (job.filename or '').lower()
        )

    def to_sql_filter(self):
        return (
            func.lower(Job.original_name).contains(self.term, autoescape=True)
            | func.lower(Job.filename).contains(self.term, autoescape=True)
        )


class JobsInActiveStatusSpec(Specification[Job]):
    """Jobs whose run has not reached a terminal status."""

    def __init__(self):
        self.active_statuses = [s.value for s in JobStatus if s.is_active()]

    def is_satisfied_by(self, job: Job) -> bool:
        return job.status in self.active_statuses

    def to_sql_filter(self):
        return Job.status.in_(self.active_statuses)


class JobsUpdatedBeforeSpec(Specification[Job]):
    def __init__(self, cutoff: datetime):
        self.cutoff = cutoff

    def is_satisfied_by(self, job: Job) -> bool:
        return job.updated_at is not None and job.updated_at < self.cutoff

    def to_sql_filter(self):
        return Job.updated_at < self.cutoff


class JobsExcludingIdsSpec(Specification[Job]):
    def __init__(self, job_ids: Iterable[str]):
        self.job_ids = list(job_ids)

    def is_satisfied_by(self, job: Job) -> bool:
        return job.id not in self.job_ids

    def to_sql_filter(self):
        return Job.id.notin_(self.job_ids)
