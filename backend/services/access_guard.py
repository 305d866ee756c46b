"""
Tenant Access Guard

Pure authorization policy for operations on a video job. Every read and
delete is evaluated here exactly once per request, before the job is
returned or mutated.
"""
from enum import Enum
from typing import Optional

from domain.value_objects import Principal
from exceptions import JobNotFoundError, PermissionDeniedError
from models import Job


class Operation(str, Enum):
    READ = 'read'
    DELETE = 'delete'


class AccessDecision(str, Enum):
    ALLOWED = 'allowed'
    DENIED_CROSS_TENANT = 'denied_cross_tenant'
    DENIED_FORBIDDEN = 'denied_forbidden'

    @property
    def allowed(self) -> bool:
        return self is AccessDecision.ALLOWED


def authorize(principal: Principal, job: Job, operation) -> AccessDecision:
    """
    Decide whether a principal may perform an operation on a job.

    read: same organization.
    delete: same organization, and the principal is an admin or the owner.
    Any other operation is denied.
    """
    if job.organization != principal.organization:
        return AccessDecision.DENIED_CROSS_TENANT

    try:
        operation = Operation(operation)
    except ValueError:
        return AccessDecision.DENIED_FORBIDDEN

    if operation is Operation.READ:
        return AccessDecision.ALLOWED

    if principal.is_admin or job.owner_id == principal.id:
        return AccessDecision.ALLOWED
    return AccessDecision.DENIED_FORBIDDEN


def require_access(
    principal: Principal,
    job: Optional[Job],
    operation,
    job_id: str,
) -> Job:
    """
    Authorize and translate the decision into the caller-facing error.

    A missing job and a job of another organization raise the same
    JobNotFoundError, so existence never leaks across tenants.

    Returns:
        The job, when access is allowed
    """
    if job is None:
        raise JobNotFoundError(job_id)

    decision = authorize(principal, job, operation)
    if decision is AccessDecision.DENIED_CROSS_TENANT:
        raise JobNotFoundError(job_id)
    if decision is AccessDecision.DENIED_FORBIDDEN:
        raise PermissionDeniedError(
            "You do not have permission to perform this action",
            operation=str(getattr(operation, 'value', operation)),
        )
    return job
