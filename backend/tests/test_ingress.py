import asyncio

import pytest

from exceptions import PermissionDeniedError, ValidationError
from models import Job
from services.ingress import IngressGateway, UploadDescriptor, format_size
from services.orchestrator import JobOrchestrator
from services.progress_publisher import ProgressPublisher
from services.task_registry import TaskRegistry
from fakes import FakeClassifier, FakeStorage, RecordingRegistry, RecordingTransport, principal_for

MP4 = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 128


def _gateway(db_session, session_factory, staging_dir, registry=None, transport=None, max_upload_bytes=1024 * 1024):
    transport = transport or RecordingTransport()
    orchestrator = JobOrchestrator(session_factory, FakeStorage(), FakeClassifier("safe"), ProgressPublisher(transport))
    registry = registry or RecordingRegistry()
    return IngressGateway(db_session, registry, orchestrator, staging_dir, max_upload_bytes), registry, transport


def test_editor_upload_runs_pipeline_to_completion(db_session, session_factory, make_user, staging_dir):
    editor = make_user(organization="acme", role="editor")
    registry = TaskRegistry()
    gateway, _, transport = _gateway(db_session, session_factory, staging_dir, registry=registry)

    async def scenario():
        job = await gateway.submit(principal_for(editor), UploadDescriptor("Team Demo.mp4", "video/mp4", MP4))
        accepted = (job.id, job.status, job.processing_progress, job.sensitivity_status)
        await registry.join(timeout=5)
        return accepted

    job_id, status, progress, sensitivity = asyncio.run(scenario())

    assert (status, progress, sensitivity) == ("uploading", 0, "pending")
    progress_events = [p["progress"] for _, e, p in transport.events if e == "video:progress"]
    assert progress_events == [10, 50, 70, 90]
    assert transport.names()[-1] == "video:complete"

    db_session.expire_all()
    job = db_session.query(Job).filter(Job.id == job_id).first()
    assert job.status == "completed"
    assert job.processing_progress == 100
    assert job.sensitivity_status in ("safe", "flagged")
    assert job.organization == "acme"
    assert job.owner_id == editor.id
    assert job.original_name == "Team Demo.mp4"
    assert job.filename == f"{job_id}.mp4"
    assert list(staging_dir.iterdir()) == []


def test_submit_stages_upload_and_launches_run(db_session, session_factory, make_user, staging_dir):
    admin = make_user(organization="acme", role="admin")
    gateway, registry, _ = _gateway(db_session, session_factory, staging_dir)

    job = asyncio.run(gateway.submit(principal_for(admin), UploadDescriptor("clip.webm", "video/webm", MP4)))

    assert registry.launched == [(job.id, "acme")]
    assert job.size_bytes == len(MP4)
    staged = staging_dir / job.id / f"{job.id}.webm"
    assert job.staging_path == str(staged)
    assert staged.read_bytes() == MP4


def test_viewer_cannot_upload(db_session, session_factory, make_user, staging_dir):
    viewer = make_user(organization="acme", role="viewer")
    gateway, registry, _ = _gateway(db_session, session_factory, staging_dir)

    with pytest.raises(PermissionDeniedError):
        asyncio.run(gateway.submit(principal_for(viewer), UploadDescriptor("clip.mp4", "video/mp4", MP4)))

    assert db_session.query(Job).count() == 0
    assert registry.launched == []
    assert list(staging_dir.iterdir()) == []


@pytest.mark.parametrize(
    "descriptor",
    [
        UploadDescriptor("", "video/mp4", MP4),
        UploadDescriptor("clip.mp4", "video/mp4", b""),
        UploadDescriptor("notes.pdf", "application/pdf", MP4),
        UploadDescriptor("x" * 300 + ".mp4", "video/mp4", MP4),
    ],
    ids=["no-filename", "empty", "wrong-type", "long-name"],
)
def test_invalid_uploads_create_nothing(db_session, session_factory, make_user, staging_dir, descriptor):
    editor = make_user(role="editor")
    gateway, registry, _ = _gateway(db_session, session_factory, staging_dir)

    with pytest.raises(ValidationError):
        asyncio.run(gateway.submit(principal_for(editor), descriptor))

    assert db_session.query(Job).count() == 0
    assert registry.launched == []


def test_oversized_upload_is_rejected(db_session, session_factory, make_user, staging_dir):
    editor = make_user(role="editor")
    gateway, _, _ = _gateway(db_session, session_factory, staging_dir, max_upload_bytes=16)

    with pytest.raises(ValidationError) as exc:
        asyncio.run(gateway.submit(principal_for(editor), UploadDescriptor("clip.mp4", "video/mp4", MP4)))

    assert exc.value.details["invalid_fields"]["size"] == len(MP4)
    assert db_session.query(Job).count() == 0


@pytest.mark.parametrize("mime_type", ["video/mp4", "video/webm", "video/ogg", "video/quicktime", "video/x-msvideo"])
def test_allowed_video_types_pass_validation(db_session, session_factory, staging_dir, mime_type):
    gateway, _, _ = _gateway(db_session, session_factory, staging_dir)
    gateway.validate(UploadDescriptor("clip", mime_type, MP4))


@pytest.mark.parametrize("num_bytes, expected", [
    (100, "100 bytes"),
    (1024, "1KB"),
    (1536, "1.5KB"),
    (500 * 1024 * 1024, "500MB"),
])
def test_format_size(num_bytes, expected):
    assert format_size(num_bytes) == expected


def test_small_limit_is_reported_in_bytes(db_session, session_factory, staging_dir):
    gateway, _, _ = _gateway(db_session, session_factory, staging_dir, max_upload_bytes=16)

    with pytest.raises(ValidationError, match="maximum upload size of 16 bytes"):
        gateway.check_size(17)
    gateway.check_size(16)
