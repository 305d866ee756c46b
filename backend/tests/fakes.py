"""In-memory stand-ins for the pipeline's external collaborators."""
from pathlib import Path
from typing import Optional

from constants import Role
from domain.value_objects import Principal
from exceptions import ClassifierError, NotificationError, StorageError
from services.interfaces import (
    IContentClassifier,
    INotificationTransport,
    IStorageProvider,
    TransferResult,
)
from services.task_registry import TaskRegistry


class FakeStorage(IStorageProvider):

    def __init__(self, fail_transfer=False, fail_delete=False, local_dir: Optional[Path] = None):
        self.fail_transfer = fail_transfer
        self.fail_delete = fail_delete
        self.local_dir = local_dir
        self.transfers = []
        self.deleted = []

    async def transfer(self, data: bytes, name: str) -> TransferResult:
        if self.fail_transfer:
            raise StorageError("transfer", "bucket unavailable")
        self.transfers.append((name, data))
        return TransferResult(
            reference=f"videos/{name}",
            url=f"https://storage.test/videos/{name}",
            size_bytes=len(data),
            duration_seconds=12.5,
            width=1920,
            height=1080,
            codec="h264",
            bitrate=4_000_000,
            container_format="mp4",
        )

    async def delete(self, reference: str) -> None:
        if self.fail_delete:
            raise StorageError("delete", "bucket unavailable")
        self.deleted.append(reference)

    def local_path(self, reference: str):
        if self.local_dir is None:
            return None
        path = self.local_dir / Path(reference).name
        return path if path.is_file() else None

    def signed_url(self, reference: str) -> str:
        return f"https://storage.test/{reference}?signature=abc"


class FakeClassifier(IContentClassifier):

    def __init__(self, verdict="safe", error: Optional[Exception] = None):
        self.verdict = verdict
        self.error = error
        self.calls = []

    async def classify(self, reference: str) -> str:
        self.calls.append(reference)
        if self.error is not None:
            raise self.error
        return self.verdict


class RecordingTransport(INotificationTransport):
    """
    Records published events.

    With a session_factory, also records the job's persisted progress at the
    moment each event is published.
    """

    def __init__(self, session_factory=None, fail=False):
        self.session_factory = session_factory
        self.fail = fail
        self.events = []
        self.persisted_progress = []

    async def publish(self, channel: str, event: str, payload: dict) -> None:
        if self.fail:
            raise NotificationError(channel, "transport down")
        self.events.append((channel, event, payload))

        if self.session_factory is not None:
            from models import Job
            session = self.session_factory()
            try:
                job = session.query(Job).filter(Job.id == payload["jobId"]).first()
                self.persisted_progress.append((job.status, job.processing_progress))
            finally:
                session.close()

    def names(self):
        return [event for _, event, _ in self.events]


def failing_classifier() -> FakeClassifier:
    return FakeClassifier(error=ClassifierError("moderation service timeout"))


def principal_for(user) -> Principal:
    return Principal(id=user.id, organization=user.organization, role=Role(user.role))


class RecordingRegistry(TaskRegistry):
    """Registry that records launches without running them."""

    def __init__(self):
        super().__init__()
        self.launched = []

    def launch(self, job_id, organization, coro):
        coro.close()
        self.launched.append((job_id, organization))
