import asyncio
from datetime import datetime, timedelta

import pytest

from exceptions import JobNotFoundError, PermissionDeniedError, ValidationError
from models import Job
from services.video_service import VideoService
from fakes import FakeStorage, principal_for


@pytest.fixture
def acme(make_user):
    return {
        "admin": make_user(organization="acme", role="admin"),
        "owner": make_user(organization="acme", role="editor"),
        "other": make_user(organization="acme", role="editor"),
        "viewer": make_user(organization="acme", role="viewer"),
    }


def test_get_returns_job_in_same_organization(db_session, acme, make_job):
    job = make_job(acme["owner"])
    service = VideoService(db_session, FakeStorage())

    assert service.get(principal_for(acme["viewer"]), job.id).id == job.id


def test_cross_tenant_get_looks_like_missing_job(db_session, acme, make_user, make_job):
    job = make_job(acme["owner"])
    outsider = make_user(organization="beta", role="admin")
    service = VideoService(db_session, FakeStorage())

    with pytest.raises(JobNotFoundError) as cross:
        service.get(principal_for(outsider), job.id)
    with pytest.raises(JobNotFoundError) as missing:
        service.get(principal_for(outsider), "no-such-id")

    assert str(cross.value) == str(missing.value) == "Video not found"


def test_reads_do_not_modify_job(db_session, acme, make_job):
    job = make_job(acme["owner"], status="processing", processing_progress=50)
    before = (job.updated_at, job.status, job.processing_progress)
    service = VideoService(db_session, FakeStorage())

    service.get(principal_for(acme["viewer"]), job.id)
    service.list(principal_for(acme["viewer"]))

    assert not db_session.dirty
    db_session.expire_all()
    reloaded = db_session.query(Job).filter(Job.id == job.id).first()
    assert (reloaded.updated_at, reloaded.status, reloaded.processing_progress) == before


def test_list_is_scoped_to_organization_newest_first(db_session, acme, make_user, make_job):
    now = datetime.utcnow()
    older = make_job(acme["owner"], created_at=now - timedelta(hours=2))
    newer = make_job(acme["other"], created_at=now - timedelta(hours=1))
    make_job(make_user(organization="beta"), created_at=now)
    service = VideoService(db_session, FakeStorage())

    jobs = service.list(principal_for(acme["viewer"]))

    assert [j.id for j in jobs] == [newer.id, older.id]


def test_list_filters(db_session, acme, make_job):
    done_safe = make_job(acme["owner"], status="completed", sensitivity_status="safe", processing_progress=100)
    make_job(acme["owner"], status="completed", sensitivity_status="flagged", processing_progress=100)
    make_job(acme["owner"], status="processing", processing_progress=50)
    service = VideoService(db_session, FakeStorage())
    principal = principal_for(acme["viewer"])

    assert len(service.list(principal, status="completed")) == 2
    assert [j.id for j in service.list(principal, status="completed", sensitivity_status="safe")] == [done_safe.id]


def test_list_search_matches_either_filename_case_insensitively(db_session, acme, make_job):
    by_original = make_job(acme["owner"], original_name="Quarterly REVIEW.mp4", filename="a1.mp4")
    by_stored = make_job(acme["owner"], original_name="x.mp4", filename="review-b2.mp4")
    make_job(acme["owner"], original_name="holiday.mp4", filename="c3.mp4")
    service = VideoService(db_session, FakeStorage())

    found = {j.id for j in service.list(principal_for(acme["viewer"]), search="review")}

    assert found == {by_original.id, by_stored.id}


def test_list_search_treats_wildcards_literally(db_session, acme, make_job):
    make_job(acme["owner"], original_name="plain.mp4", filename="p.mp4")
    service = VideoService(db_session, FakeStorage())

    assert service.list(principal_for(acme["viewer"]), search="%") == []


def test_list_rejects_unknown_filter_values(db_session, acme):
    service = VideoService(db_session, FakeStorage())
    with pytest.raises(ValidationError):
        service.list(principal_for(acme["viewer"]), status="done")
    with pytest.raises(ValidationError):
        service.list(principal_for(acme["viewer"]), sensitivity_status="nsfw")


def test_non_owner_editor_cannot_delete(db_session, acme, make_job):
    job = make_job(acme["owner"], storage_reference="videos/a.mp4")
    storage = FakeStorage()
    service = VideoService(db_session, storage)

    with pytest.raises(PermissionDeniedError):
        asyncio.run(service.delete(principal_for(acme["other"]), job.id))

    assert storage.deleted == []
    assert db_session.query(Job).count() == 1


def test_admin_delete_removes_record_and_stored_media(db_session, acme, make_job):
    job = make_job(acme["owner"], storage_reference="videos/a.mp4")
    storage = FakeStorage()
    service = VideoService(db_session, storage)

    asyncio.run(service.delete(principal_for(acme["admin"]), job.id))

    assert storage.deleted == ["videos/a.mp4"]
    assert db_session.query(Job).count() == 0


def test_owner_delete_succeeds_when_storage_delete_fails(db_session, acme, make_job):
    job = make_job(acme["owner"], storage_reference="videos/a.mp4")
    service = VideoService(db_session, FakeStorage(fail_delete=True))

    asyncio.run(service.delete(principal_for(acme["owner"]), job.id))

    assert db_session.query(Job).count() == 0


def test_delete_releases_staged_upload(db_session, acme, make_job, staging_dir):
    staged = staging_dir / "job" / "a.mp4"
    staged.parent.mkdir()
    staged.write_bytes(b"data")
    job = make_job(acme["owner"], staging_path=str(staged))
    service = VideoService(db_session, FakeStorage())

    asyncio.run(service.delete(principal_for(acme["owner"]), job.id))

    assert not staged.exists()


def test_cross_tenant_delete_is_not_found(db_session, acme, make_user, make_job):
    job = make_job(acme["owner"])
    service = VideoService(db_session, FakeStorage())

    with pytest.raises(JobNotFoundError):
        asyncio.run(service.delete(principal_for(make_user(organization="beta", role="admin")), job.id))


def test_stream_target_requires_completed_job(db_session, acme, make_job):
    job = make_job(acme["owner"], status="processing", processing_progress=70)
    service = VideoService(db_session, FakeStorage())

    with pytest.raises(ValidationError, match="still processing"):
        service.stream_target(principal_for(acme["viewer"]), job.id)


def test_stream_target_prefers_local_file(db_session, acme, make_job, tmp_path):
    (tmp_path / "a.mp4").write_bytes(b"data")
    job = make_job(acme["owner"], status="completed", processing_progress=100, storage_reference="videos/a.mp4")
    service = VideoService(db_session, FakeStorage(local_dir=tmp_path))

    target = service.stream_target(principal_for(acme["viewer"]), job.id)

    assert target.path == tmp_path / "a.mp4"
    assert target.url is None


def test_stream_target_falls_back_to_signed_url(db_session, acme, make_job):
    job = make_job(acme["owner"], status="completed", processing_progress=100, storage_reference="videos/a.mp4")
    service = VideoService(db_session, FakeStorage())

    target = service.stream_target(principal_for(acme["viewer"]), job.id)

    assert target.path is None
    assert target.url == "https://storage.test/videos/a.mp4?signature=abc"
