"""
Job repository for video job data access operations.
"""

from datetime import datetime
from functools import reduce
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from exceptions import DatabaseError
from models import Job as JobModel
from .base_repository import BaseRepository
from .specifications import MatchAllSpecification
from .job_specifications import (
    JobsByOrganizationSpec,
    JobsByStatusSpec,
    JobsBySensitivitySpec,
    JobsMatchingSearchSpec,
    JobsInActiveStatusSpec,
    JobsUpdatedBeforeSpec,
    JobsExcludingIdsSpec,
)


class JobRepository(BaseRepository[JobModel]):
    """Repository for Job model operations."""

    def __init__(self, db: Session):
        super().__init__(db, JobModel)

    def list_for_organization(
        self,
        organization: str,
        status: Optional[str] = None,
        sensitivity_status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[JobModel]:
        """
        List one organization's jobs, newest first.

        Args:
            organization: Tenant whose jobs are listed
            status: Optional exact status filter
            sensitivity_status: Optional exact sensitivity filter
            search: Optional case-insensitive filename substring

        Returns:
            Matching jobs ordered by created_at descending
        """
        specs = [JobsByOrganizationSpec(organization)]
        if status:
            specs.append(JobsByStatusSpec(status))
        if sensitivity_status:
            specs.append(JobsBySensitivitySpec(sensitivity_status))
        if search:
            specs.append(JobsMatchingSearchSpec(search))

        spec = reduce(lambda acc, s: acc & s, specs, MatchAllSpecification())
        return self.db.query(self.model).filter(
            spec.to_sql_filter()
        ).order_by(self.model.created_at.desc()).all()

    def find_stale(
        self,
        cutoff: datetime,
        organization: Optional[str] = None,
        exclude_ids: Iterable[str] = (),
    ) -> List[JobModel]:
        """
        Find non-terminal jobs not updated since the cutoff.

        Args:
            cutoff: Jobs last updated before this moment are stale
            organization: Optional tenant to limit the search to
            exclude_ids: Jobs with a live run in this process

        Returns:
            Stale jobs, oldest update first
        """
        spec = JobsInActiveStatusSpec() & JobsUpdatedBeforeSpec(cutoff)
        if organization:
            spec = spec & JobsByOrganizationSpec(organization)
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            spec = spec & JobsExcludingIdsSpec(exclude_ids)
        return self.db.query(self.model).filter(
            spec.to_sql_filter()
        ).order_by(self.model.updated_at.asc()).all()

    def update_if_status(self, job: JobModel, expected_status: str, values: dict) -> bool:
        """
        Apply values to a job only while its stored status is still expected_status.

        Pending changes on the session are flushed first, in the same
        transaction. The in-session job is updated to match on success.

        Returns:
            True if the row was updated, False if its status had moved on

        Raises:
            DatabaseError: If the statement fails; the session is rolled back
        """
        try:
            self.db.flush()
            updated = self.db.query(self.model).filter(
                self.model.id == job.id,
                self.model.status == expected_status,
            ).update(values, synchronize_session=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("update job status", f"Failed to update job status: {e}") from e
        if updated != 1:
            return False

        for column, value in values.items():
            set_committed_value(job, column.key, value)
        return True
