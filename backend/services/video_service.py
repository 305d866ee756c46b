"""
Video Service

Tenant-guarded reads and deletes of video jobs. Every operation resolves
the job, asks the access guard once, and only then returns or mutates it.
Reads never modify a record.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from constants import SensitivityStatus
from domain.value_objects import JobStatus, Principal
from exceptions import StorageError, ValidationError
from models import Job
from repositories import JobRepository
from services.access_guard import Operation, require_access
from services.interfaces import IStorageProvider
from services.staging import release_staged_upload

logger = logging.getLogger(__name__)


@dataclass
class StreamTarget:
    """Where playback should be served from: a local file or a redirect URL."""
    path: Optional[Path] = None
    url: Optional[str] = None
    mime_type: str = 'video/mp4'


class VideoService:
    """Service for video job queries and deletion."""

    def __init__(self, db: Session, storage: IStorageProvider):
        self.db = db
        self.storage = storage
        self.job_repo = JobRepository(db)

    def get(self, principal: Principal, job_id: str) -> Job:
        """
        Get one job visible to the principal.

        Raises:
            JobNotFoundError: If the job is missing or belongs to another organization
        """
        job = self.job_repo.get_by_id(job_id)
        return require_access(principal, job, Operation.READ, job_id)

    def list(
        self,
        principal: Principal,
        status: Optional[str] = None,
        sensitivity_status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Job]:
        """
        List the principal's organization's jobs, newest first.

        Args:
            status: Exact job status filter
            sensitivity_status: Exact sensitivity filter
            search: Case-insensitive substring of the original or stored filename

        Raises:
            ValidationError: If a filter value is not a known status
        """
        if status:
            try:
                JobStatus.from_string(status)
            except ValueError:
                raise ValidationError(f"Invalid status filter: {status}", {"status": status})
        if sensitivity_status:
            try:
                SensitivityStatus(sensitivity_status)
            except ValueError:
                raise ValidationError(
                    f"Invalid sensitivity filter: {sensitivity_status}",
                    {"sensitivityStatus": sensitivity_status},
                )

        search = search.strip() if search else None
        return self.job_repo.list_for_organization(
            principal.organization,
            status=status or None,
            sensitivity_status=sensitivity_status or None,
            search=search or None,
        )

    async def delete(self, principal: Principal, job_id: str) -> None:
        """
        Delete a job and release its stored media.

        Storage failures are logged and do not stop the record deletion.

        Raises:
            JobNotFoundError: If the job is missing or belongs to another organization
            PermissionDeniedError: If the principal is neither admin nor owner
        """
        job = self.job_repo.get_by_id(job_id)
        require_access(principal, job, Operation.DELETE, job_id)

        if job.storage_reference:
            try:
                await self.storage.delete(job.storage_reference)
            except StorageError as e:
                logger.warning(f"Could not delete stored media for job {job_id}: {e.message}")
            except Exception as e:
                logger.warning(f"Unexpected error deleting stored media for job {job_id}: {e}")

        release_staged_upload(job.staging_path)

        self.job_repo.delete(job)
        self.job_repo.commit("delete video job")
        logger.info(f"Deleted job {job_id} ({job.original_name}) by user {principal.id}")

    def stream_target(self, principal: Principal, job_id: str) -> StreamTarget:
        """
        Resolve where a completed video can be played from.

        Raises:
            JobNotFoundError: If the job is missing or belongs to another organization
            ValidationError: If the job has not completed processing
            StorageError: If the stored media cannot be located
        """
        job = self.get(principal, job_id)

        if job.status != JobStatus.COMPLETED.value:
            raise ValidationError("Video is still processing", {"status": job.status})
        if not job.storage_reference:
            raise StorageError("stream", "Stored media reference is missing")

        path = self.storage.local_path(job.storage_reference)
        if path is not None:
            return StreamTarget(path=path, mime_type=job.mime_type)
        return StreamTarget(url=self.storage.signed_url(job.storage_reference), mime_type=job.mime_type)
