from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from exceptions import DatabaseError
from models import Job
from repositories import JobRepository
from repositories.job_specifications import (
    JobsByOrganizationSpec,
    JobsInActiveStatusSpec,
    JobsMatchingSearchSpec,
)


def test_specifications_match_in_memory_jobs():
    job = Job(organization="acme", status="processing", original_name="Launch Party.MP4", filename="f1.mp4")

    assert JobsByOrganizationSpec("acme").is_satisfied_by(job)
    assert JobsInActiveStatusSpec().is_satisfied_by(job)
    assert JobsMatchingSearchSpec("party").is_satisfied_by(job)
    assert not (JobsByOrganizationSpec("beta") & JobsMatchingSearchSpec("party")).is_satisfied_by(job)
    assert (JobsByOrganizationSpec("acme") & JobsMatchingSearchSpec("f1")).is_satisfied_by(job)


def test_find_stale_skips_terminal_recent_and_running_jobs(db_session, make_user, make_job):
    owner = make_user()
    old = datetime.utcnow() - timedelta(hours=2)
    stale = make_job(owner, status="processing", processing_progress=50)
    running = make_job(owner, status="processing", processing_progress=10)
    make_job(owner, status="completed", processing_progress=100)
    make_job(owner, status="uploading")
    # updated_at is refreshed on every update, so set it with a bulk update
    db_session.query(Job).filter(Job.status != "uploading").update(
        {Job.updated_at: old}, synchronize_session=False
    )
    db_session.commit()

    repo = JobRepository(db_session)
    found = repo.find_stale(datetime.utcnow() - timedelta(minutes=30), exclude_ids=[running.id])

    assert [j.id for j in found] == [stale.id]


def test_find_stale_filters_by_organization(db_session, make_user, make_job):
    acme_job = make_job(make_user(organization="acme"), status="processing")
    make_job(make_user(organization="beta"), status="processing")
    cutoff = datetime.utcnow() + timedelta(minutes=1)

    found = JobRepository(db_session).find_stale(cutoff, organization="acme")

    assert [j.id for j in found] == [acme_job.id]


def test_commit_failure_raises_database_error(db_session, monkeypatch):
    repo = JobRepository(db_session)

    def broken_commit():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(DatabaseError) as exc:
        repo.commit("save job")
    assert exc.value.details == {"operation": "save job"}


def test_update_if_status_only_applies_to_expected_status(db_session, make_user, make_job):
    job = make_job(make_user(), status="processing", processing_progress=50)
    repo = JobRepository(db_session)

    assert repo.update_if_status(job, "processing", {Job.processing_progress: 70})
    assert job.processing_progress == 70
    repo.commit("advance")

    assert not repo.update_if_status(job, "uploading", {Job.status: "completed"})
    db_session.rollback()
    db_session.expire_all()
    assert job.status == "processing"
    assert job.processing_progress == 70
