"""
Job Orchestrator

Drives one video job through the pipeline:

    uploading 0 -> processing 10 -> processing 50 (transferred)
    -> analyzing 70 -> finalizing 90 -> completed 100

Each checkpoint is committed before its progress event is published, so a
client never sees progress the database does not hold. Any failure aborts
the remaining stages and marks the job failed, keeping the progress of the
last committed checkpoint.
"""
import asyncio
from pathlib import Path
from typing import Callable, Optional

from sqlalchemy.orm import Session

from constants import CheckpointProgress, PipelineStage, SensitivityStatus
from domain.value_objects import JobStatus
from exceptions import ApplicationError, ClassifierError, InvalidTransitionError
from models import Job
from repositories import JobRepository
from services.interfaces import IContentClassifier, IStorageProvider
from services.progress_publisher import ProgressPublisher
from services.staging import release_staged_upload
from utils.logging_utils import StructuredLogger, clear_logging_context, log_operation, set_logging_context

logger = StructuredLogger(__name__)


class JobOrchestrator:
    """
    Runs the processing pipeline for a single job id.

    Collaborators are injected so tests can substitute fakes. One database
    session is opened per run and closed when the run ends.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        storage: IStorageProvider,
        classifier: IContentClassifier,
        publisher: ProgressPublisher,
    ):
        self.session_factory = session_factory
        self.storage = storage
        self.classifier = classifier
        self.publisher = publisher

    @log_operation("video pipeline run")
    async def run(self, job_id: str) -> Optional[str]:
        """
        Process a job to a terminal status.

        Never raises; failures are recorded on the job.

        Returns:
            Final status value, or None when the job does not exist
        """
        set_logging_context(job_id=job_id)
        db = self.session_factory()
        repo = JobRepository(db)
        staged_path = None
        try:
            job = repo.get_by_id(job_id)
            if job is None:
                logger.warning("Job not found, nothing to process")
                return None

            set_logging_context(organization=job.organization)
            staged_path = job.staging_path

            try:
                await self._advance(repo, job)
            except Exception as e:
                return await self._fail(repo, job_id, e)
            return job.status
        finally:
            release_staged_upload(staged_path)
            db.close()
            clear_logging_context()

    async def _advance(self, repo: JobRepository, job: Job):
        await self._checkpoint(repo, job, JobStatus.PROCESSING, CheckpointProgress.PROCESSING, PipelineStage.PROCESSING)

        data = await self._read_staged(job)
        result = await self.storage.transfer(data, job.filename)
        job.storage_reference = result.reference
        job.storage_url = result.url
        job.size_bytes = result.size_bytes or len(data)
        job.duration_seconds = result.duration_seconds
        job.width = result.width
        job.height = result.height
        job.codec = result.codec
        job.bitrate = result.bitrate
        job.container_format = result.container_format
        job.staging_path = None
        await self._checkpoint(repo, job, JobStatus.PROCESSING, CheckpointProgress.METADATA, PipelineStage.PROCESSING)

        await self._checkpoint(repo, job, JobStatus.PROCESSING, CheckpointProgress.ANALYZING, PipelineStage.ANALYZING)
        verdict = await self.classifier.classify(job.storage_reference)
        try:
            verdict = SensitivityStatus(verdict)
        except ValueError:
            raise ClassifierError(f"Unexpected classifier verdict: {verdict!r}", job.storage_reference)
        if verdict is SensitivityStatus.PENDING:
            raise ClassifierError("Classifier returned no verdict", job.storage_reference)

        job.sensitivity_status = verdict.value
        await self._checkpoint(repo, job, JobStatus.PROCESSING, CheckpointProgress.FINALIZING, PipelineStage.FINALIZING)

        job.error_message = None
        await self._checkpoint(repo, job, JobStatus.COMPLETED, CheckpointProgress.COMPLETED, PipelineStage.COMPLETED)

    async def _checkpoint(self, repo: JobRepository, job: Job, status: JobStatus, progress: int, stage: PipelineStage):
        """
        Apply, commit, then publish one checkpoint.

        Raises:
            InvalidTransitionError: If the status move is illegal, progress would decrease,
                or another run changed the stored status
            DatabaseError: If the commit fails
        """
        current = JobStatus.from_string(job.status)
        if not current.can_transition_to(status):
            raise InvalidTransitionError(job.id, f"Cannot move job from {current.value} to {status.value}")
        if progress < (job.processing_progress or 0):
            raise InvalidTransitionError(
                job.id, f"Progress cannot decrease from {job.processing_progress} to {progress}"
            )

        moved = repo.update_if_status(job, current.value, {
            Job.status: status.value,
            Job.processing_progress: progress,
            Job.processing_stage: stage.value,
        })
        if not moved:
            raise InvalidTransitionError(job.id, f"Job left {current.value} before the {stage.value} checkpoint")
        repo.commit(f"persist {stage.value} checkpoint")
        logger.info(f"Checkpoint {stage.value} {progress}%")

        if status is JobStatus.COMPLETED:
            await self.publisher.publish_complete(job.organization, job.id, job.sensitivity_status)
        else:
            await self.publisher.publish_progress(job.organization, job.id, progress, stage.value)

    async def _read_staged(self, job: Job) -> bytes:
        if not job.staging_path:
            raise ApplicationError("Uploaded file is no longer available for processing")
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, Path(job.staging_path).read_bytes)
        except FileNotFoundError:
            raise ApplicationError("Uploaded file is no longer available for processing")

    async def _fail(self, repo: JobRepository, job_id: str, error: Exception) -> Optional[str]:
        message = _describe(error)
        logger.error(f"Pipeline failed: {message}", exc_info=not isinstance(error, ApplicationError))

        # Discard anything not committed and start again from the durable record
        db = repo.db
        db.rollback()
        db.expire_all()
        try:
            job = repo.get_by_id(job_id)
        except Exception as e:
            logger.error(f"Could not reload job to record failure: {e}")
            return JobStatus.FAILED.value
        if job is None:
            logger.warning("Job disappeared during processing")
            return None
        if JobStatus.from_string(job.status).is_terminal():
            return job.status

        try:
            marked = repo.update_if_status(job, job.status, {
                Job.status: JobStatus.FAILED.value,
                Job.processing_stage: PipelineStage.FAILED.value,
                Job.error_message: message,
                Job.staging_path: None,
            })
            if not marked:
                db.rollback()
                return repo.refresh(job).status
            repo.commit("mark job failed")
        except ApplicationError as e:
            logger.error(f"Could not record failure: {e.message}")
            return JobStatus.FAILED.value

        await self.publisher.publish_error(job.organization, job.id, message)
        return JobStatus.FAILED.value


def _describe(error: Exception) -> str:
    if isinstance(error, ApplicationError):
        return error.message
    return str(error) or type(error).__name__
