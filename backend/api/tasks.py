"""
Tasks API - in-flight pipeline runs and abandoned jobs (admins only)
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from dependencies import get_current_principal, get_job_integrity_service, get_task_registry
from domain.value_objects import Principal
from exceptions import PermissionDeniedError
from schemas import StaleJobsResponse, TaskListResponse, TaskResponse, VideoResponse
from services.job_integrity_service import JobIntegrityService
from services.task_registry import TaskRegistry
from utils import handle_api_errors

router = APIRouter()


def _require_admin(principal: Principal):
    if not principal.is_admin:
        raise PermissionDeniedError("Admin access required", operation="tasks")


@router.get("/tasks", response_model=TaskListResponse)
@handle_api_errors("List tasks")
def list_tasks(
    principal: Principal = Depends(get_current_principal),
    registry: TaskRegistry = Depends(get_task_registry),
):
    """Pipeline runs currently executing for the admin's organization."""
    _require_admin(principal)
    records = registry.snapshot(principal.organization)
    return {
        "count": len(records),
        "tasks": [TaskResponse.model_validate(r) for r in records],
    }


@router.get("/tasks/stale", response_model=StaleJobsResponse)
@handle_api_errors("List stale jobs")
def list_stale_jobs(
    threshold_minutes: int = Query(settings.STALE_JOB_THRESHOLD_MINUTES, alias="thresholdMinutes", ge=1),
    principal: Principal = Depends(get_current_principal),
    integrity: JobIntegrityService = Depends(get_job_integrity_service),
    db: Session = Depends(get_db),
):
    """Unfinished jobs of the organization that no task is running."""
    _require_admin(principal)
    jobs = integrity.find_stale_jobs(db, threshold_minutes, organization=principal.organization)
    return {
        "threshold_minutes": threshold_minutes,
        "count": len(jobs),
        "videos": [VideoResponse.model_validate(j) for j in jobs],
    }
