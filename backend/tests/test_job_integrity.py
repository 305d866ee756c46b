import asyncio
from datetime import datetime, timedelta

from models import Job
from services.job_integrity_service import ABANDONED_MESSAGE, JobIntegrityService
from services.task_registry import TaskRegistry


def _age(db_session, job, hours=2):
    db_session.query(Job).filter(Job.id == job.id).update(
        {Job.updated_at: datetime.utcnow() - timedelta(hours=hours)}, synchronize_session=False
    )
    db_session.commit()


def test_startup_recovery_fails_abandoned_jobs_keeping_progress(db_session, make_user, make_job, staging_dir):
    owner = make_user()
    staged = staging_dir / "j" / "a.mp4"
    staged.parent.mkdir()
    staged.write_bytes(b"data")
    abandoned = make_job(owner, status="processing", processing_progress=70, staging_path=str(staged))
    fresh = make_job(owner, status="processing", processing_progress=10)
    _age(db_session, abandoned)

    recovered = JobIntegrityService(TaskRegistry()).startup_recovery(db_session, threshold_minutes=30)

    assert recovered == 1
    db_session.expire_all()
    assert abandoned.status == "failed"
    assert abandoned.processing_progress == 70
    assert abandoned.error_message == ABANDONED_MESSAGE
    assert not staged.exists()
    assert fresh.status == "processing"


def test_jobs_with_live_runs_are_not_stale(db_session, make_user, make_job):
    job = make_job(make_user(), status="processing", processing_progress=50)
    _age(db_session, job)

    async def scenario():
        registry = TaskRegistry()
        gate = asyncio.Event()
        registry.launch(job.id, "acme", gate.wait())
        found = JobIntegrityService(registry).find_stale_jobs(db_session, 30)
        gate.set()
        await registry.join(timeout=1)
        return found

    assert asyncio.run(scenario()) == []


def test_nothing_to_recover(db_session):
    assert JobIntegrityService(TaskRegistry()).startup_recovery(db_session, 30) == 0


def test_sweep_loop_fails_jobs_abandoned_after_startup(session_factory, db_session, make_user, make_job):
    job = make_job(make_user(), status="processing", processing_progress=50)
    _age(db_session, job, hours=1)
    service = JobIntegrityService(TaskRegistry())

    async def scenario():
        sweep = asyncio.create_task(service.sweep_loop(session_factory, threshold_minutes=30, interval_seconds=0.01))
        await asyncio.sleep(0.1)
        sweep.cancel()
        try:
            await sweep
        except asyncio.CancelledError:
            pass

    asyncio.run(scenario())

    db_session.expire_all()
    assert job.status == "failed"
    assert job.processing_progress == 50
    assert job.error_message == ABANDONED_MESSAGE


def test_sweep_skips_jobs_that_finished_after_selection(session_factory, db_session, make_user, make_job, monkeypatch):
    job = make_job(make_user(), status="processing", processing_progress=90)
    _age(db_session, job)
    service = JobIntegrityService(TaskRegistry())
    selected = service.find_stale_jobs(db_session, 30)

    other = session_factory()
    other.query(Job).filter(Job.id == job.id).update(
        {Job.status: "completed", Job.processing_progress: 100}, synchronize_session=False
    )
    other.commit()
    other.close()
    monkeypatch.setattr(service, "find_stale_jobs", lambda db, threshold: selected)

    assert service.fail_stale_jobs(db_session, 30) == 0
    db_session.expire_all()
    assert job.status == "completed"
    assert job.processing_progress == 100
