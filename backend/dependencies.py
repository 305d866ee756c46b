"""
Dependency injection providers for FastAPI.

This module provides factory functions for the services and collaborators
used by the routes. Process-wide collaborators are built once and cached;
request-scoped services get the request's database session. Tests swap any
of them through app.dependency_overrides.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from config import settings
from constants import HTTPStatus
from database import SessionLocal, get_db
from domain.value_objects import Principal
from exceptions import AuthenticationError
from models import User
from services.classifier import SimulatedClassifier
from services.credentials import JWTCredentialVerifier
from services.ingress import IngressGateway
from services.interfaces import ICredentialVerifier, IContentClassifier, IStorageProvider
from services.job_integrity_service import JobIntegrityService
from services.orchestrator import JobOrchestrator
from services.progress_publisher import ProgressPublisher
from services.storage import create_storage_provider
from services.task_registry import TaskRegistry, task_registry
from services.user_service import UserService
from services.video_service import VideoService
from services.websocket import manager

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_credential_verifier() -> ICredentialVerifier:
    return JWTCredentialVerifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


@lru_cache(maxsize=1)
def get_storage_provider() -> IStorageProvider:
    return create_storage_provider()


@lru_cache(maxsize=1)
def get_classifier() -> IContentClassifier:
    return SimulatedClassifier(
        delay_seconds=settings.CLASSIFIER_DELAY_SECONDS,
        flag_rate=settings.CLASSIFIER_FLAG_RATE,
    )


@lru_cache(maxsize=1)
def get_progress_publisher() -> ProgressPublisher:
    return ProgressPublisher(manager)


def get_task_registry() -> TaskRegistry:
    return task_registry


def get_orchestrator(
    storage: IStorageProvider = Depends(get_storage_provider),
    classifier: IContentClassifier = Depends(get_classifier),
    publisher: ProgressPublisher = Depends(get_progress_publisher),
) -> JobOrchestrator:
    """
    Factory for the pipeline orchestrator.

    Runs open their own sessions from SessionLocal since they outlive the
    request that launched them.
    """
    return JobOrchestrator(SessionLocal, storage, classifier, publisher)


def resolve_user(db: Session, verifier: ICredentialVerifier, token: Optional[str]) -> User:
    """
    Map a bearer token to its user.

    Raises:
        AuthenticationError: If the token is invalid or its user no longer exists
    """
    user_id = verifier.verify(token)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise AuthenticationError("User not found")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    verifier: ICredentialVerifier = Depends(get_credential_verifier),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return resolve_user(db, verifier, credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(user)


def get_ingress_gateway(
    db: Session = Depends(get_db),
    registry: TaskRegistry = Depends(get_task_registry),
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> IngressGateway:
    return IngressGateway(
        db,
        registry,
        orchestrator,
        staging_dir=settings.STAGING_DIR,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
    )


def get_video_service(
    db: Session = Depends(get_db),
    storage: IStorageProvider = Depends(get_storage_provider),
) -> VideoService:
    return VideoService(db, storage)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_job_integrity_service(registry: TaskRegistry = Depends(get_task_registry)) -> JobIntegrityService:
    return JobIntegrityService(registry)
