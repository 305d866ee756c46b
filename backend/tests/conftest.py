import os
import sys
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment must be ready first
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="video-sentinel-tests-")
os.environ["VSP_DATA_DIR"] = _TEST_DATA_DIR
os.environ["VSP_DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR}/app.db"
os.environ["VSP_JWT_SECRET"] = "test-secret"
os.environ["VSP_CLASSIFIER_DELAY_SECONDS"] = "0"
os.environ["VSP_RECOVER_STALE_JOBS_ON_STARTUP"] = "false"
os.environ["VSP_STORAGE_BACKEND"] = "local"

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Now import after path is set
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from database import Base
from models import Job, User


@pytest.fixture
def engine():
    """In-memory database shared by every session of one test"""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(organization="acme", role="editor", username=None) -> User:
        counter["n"] += 1
        username = username or f"{role}-{organization}-{counter['n']}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            organization=organization,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_job(db_session):
    def _make_job(owner: User, **overrides) -> Job:
        fields = dict(
            filename="stored.mp4",
            original_name="clip.mp4",
            mime_type="video/mp4",
            size_bytes=1024,
            owner_id=owner.id,
            organization=owner.organization,
        )
        fields.update(overrides)
        job = Job(**fields)
        db_session.add(job)
        db_session.commit()
        return job

    return _make_job


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path
