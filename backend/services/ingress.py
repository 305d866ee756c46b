"""
Ingress Gateway

Accepts an upload from an authenticated principal, stages the bytes,
creates the job record and launches its pipeline run in the background.
Nothing is persisted for a rejected upload.
"""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from sqlalchemy.orm import Session

from constants import CheckpointProgress, PipelineStage, Role, SensitivityStatus, UploadLimits
from domain.value_objects import JobStatus, Principal
from exceptions import ApplicationError, PermissionDeniedError, StorageError, ValidationError
from models import Job, generate_uuid
from repositories import JobRepository
from services.orchestrator import JobOrchestrator
from services.staging import release_staged_upload, safe_filename, stage_upload
from services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def format_size(num_bytes: int) -> str:
    """Human readable size, e.g. 500MB, 1.5KB, 100 bytes"""
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):g}MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:g}KB"
    return f"{num_bytes} bytes"


@dataclass
class UploadDescriptor:
    filename: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class IngressGateway:

    def __init__(
        self,
        db: Session,
        registry: TaskRegistry,
        orchestrator: JobOrchestrator,
        staging_dir: Union[str, Path],
        max_upload_bytes: int,
    ):
        self.db = db
        self.job_repo = JobRepository(db)
        self.registry = registry
        self.orchestrator = orchestrator
        self.staging_dir = Path(staging_dir)
        self.max_upload_bytes = max_upload_bytes

    def validate(self, descriptor: UploadDescriptor):
        """
        Check an upload against the ingress limits.

        Raises:
            ValidationError: Describing the first problem found
        """
        filename = (descriptor.filename or '').strip()
        if not filename:
            raise ValidationError("No video file provided", {"filename": "required"})
        if len(filename) > UploadLimits.MAX_FILENAME_LENGTH:
            raise ValidationError("Filename is too long", {"filename": "too long"})
        if not descriptor.content:
            raise ValidationError("Uploaded file is empty", {"video": "empty"})
        if descriptor.mime_type not in UploadLimits.ALLOWED_MIME_TYPES:
            raise ValidationError(
                "Invalid file type. Only video files are allowed.",
                {"mime_type": descriptor.mime_type},
            )
        self.check_size(descriptor.size)

    def check_size(self, size: int):
        if size > self.max_upload_bytes:
            raise ValidationError(
                f"File exceeds maximum upload size of {format_size(self.max_upload_bytes)}",
                {"size": size},
            )

    async def submit(self, principal: Principal, descriptor: UploadDescriptor) -> Job:
        """
        Accept an upload and start processing it.

        Returns:
            The new job, status uploading and progress 0

        Raises:
            PermissionDeniedError: If the principal's role cannot upload
            ValidationError: If the upload is rejected
            StorageError: If the bytes could not be staged
            DatabaseError: If the job record could not be created
        """
        if not Role.can_upload(principal.role):
            raise PermissionDeniedError("Only editors and admins can upload videos", operation="upload")

        self.validate(descriptor)

        job_id = generate_uuid()
        original_name = descriptor.filename.strip()
        stored_name = f"{job_id}{Path(safe_filename(original_name)).suffix.lower()}"

        loop = asyncio.get_running_loop()
        try:
            staged = await loop.run_in_executor(
                None, stage_upload, self.staging_dir, job_id, stored_name, descriptor.content
            )
        except OSError as e:
            raise StorageError("stage", f"Failed to stage upload: {e}") from e

        job = Job(
            id=job_id,
            filename=stored_name,
            original_name=original_name,
            mime_type=descriptor.mime_type,
            size_bytes=descriptor.size,
            status=JobStatus.UPLOADING.value,
            sensitivity_status=SensitivityStatus.PENDING.value,
            processing_progress=CheckpointProgress.CREATED,
            processing_stage=PipelineStage.UPLOADING.value,
            owner_id=principal.id,
            organization=principal.organization,
            staging_path=str(staged),
        )
        try:
            self.job_repo.create(job)
            self.job_repo.commit("create video job")
        except ApplicationError:
            release_staged_upload(staged)
            raise
        except Exception:
            self.db.rollback()
            release_staged_upload(staged)
            raise

        self.job_repo.refresh(job)
        logger.info(
            f"Accepted upload {original_name} as job {job.id} "
            f"for {principal.organization} ({descriptor.size} bytes)"
        )

        self.registry.launch(job.id, job.organization, self.orchestrator.run(job.id))
        return job
