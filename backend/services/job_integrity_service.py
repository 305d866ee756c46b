"""
Job Integrity Service - detects pipeline runs that were abandoned

A job is stale when it is still uploading or processing, has not been
updated for longer than the threshold, and no task in this process is
running it. That happens when the server stops mid-run: the task dies with
the process and the record is left non-terminal.

Provides:
1. Stale job detection (for the /api/tasks/stale view)
2. Startup recovery: mark abandoned jobs failed so clients stop waiting
3. A periodic sweep doing the same while the server runs
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import Session

from constants import PipelineStage
from domain.value_objects import JobStatus
from exceptions import ApplicationError
from models import Job
from repositories import JobRepository
from services.staging import release_staged_upload
from services.task_registry import TaskRegistry, task_registry

logger = logging.getLogger(__name__)

ABANDONED_MESSAGE = "Processing was interrupted before completion"


class JobIntegrityService:
    """Service for maintaining job record integrity"""

    def __init__(self, registry: TaskRegistry):
        self.registry = registry

    def find_stale_jobs(
        self,
        db: Session,
        threshold_minutes: int,
        organization: Optional[str] = None,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[Job]:
        """
        Find non-terminal jobs with no recent update and no live run.

        Args:
            db: Database session
            threshold_minutes: Minimum age of the last update
            organization: Optional tenant filter
            exclude_ids: Job ids to ignore; defaults to the registry's running jobs
        """
        cutoff = datetime.utcnow() - timedelta(minutes=threshold_minutes)
        if exclude_ids is None:
            exclude_ids = self.registry.active_job_ids()
        return JobRepository(db).find_stale(cutoff, organization=organization, exclude_ids=exclude_ids)

    def startup_recovery(self, db: Session, threshold_minutes: int) -> int:
        """
        Mark jobs abandoned by a previous process failed.

        Called once at startup before any upload is accepted.

        Returns the number of jobs recovered.
        """
        recovered = self.fail_stale_jobs(db, threshold_minutes)
        if not recovered:
            logger.info("No abandoned jobs found")
        return recovered

    def fail_stale_jobs(self, db: Session, threshold_minutes: int) -> int:
        """
        Mark stale jobs failed, keeping their last persisted progress.

        Returns the number of jobs marked failed.
        """
        stale_jobs = self.find_stale_jobs(db, threshold_minutes)
        if not stale_jobs:
            return 0

        logger.warning(f"Found {len(stale_jobs)} abandoned jobs")

        repo = JobRepository(db)
        failed_paths = []
        for job in stale_jobs:
            staged = job.staging_path
            # Skip jobs that moved on since they were selected
            marked = repo.update_if_status(job, job.status, {
                Job.status: JobStatus.FAILED.value,
                Job.processing_stage: PipelineStage.FAILED.value,
                Job.error_message: ABANDONED_MESSAGE,
                Job.staging_path: None,
            })
            if marked:
                failed_paths.append(staged)
                logger.info(f"  Marked job {job.id} ({job.original_name}) failed at {job.processing_progress}%")

        repo.commit("recover abandoned jobs")
        for staged in failed_paths:
            release_staged_upload(staged)
        return len(failed_paths)

    async def sweep_loop(
        self,
        session_factory: Callable[[], Session],
        threshold_minutes: int,
        interval_seconds: float,
    ):
        """
        Fail stale jobs every interval_seconds until cancelled.

        Picks up jobs abandoned less than threshold_minutes before startup,
        which startup recovery leaves alone.
        """
        logger.info(
            f"Stale job sweep started - every {interval_seconds:g}s, threshold {threshold_minutes} min"
        )
        while True:
            await asyncio.sleep(interval_seconds)

            db = session_factory()
            try:
                recovered = self.fail_stale_jobs(db, threshold_minutes)
                if recovered:
                    logger.warning(f"Stale job sweep marked {recovered} jobs failed")
            except ApplicationError as e:
                logger.error(f"Stale job sweep failed: {e.message}")
            finally:
                db.close()


# Global singleton
job_integrity_service = JobIntegrityService(task_registry)
