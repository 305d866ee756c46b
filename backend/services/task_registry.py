"""
Task Registry

Holds the detached asyncio tasks that run the pipeline for each accepted
upload. Keeping a reference prevents the event loop from garbage-collecting
running tasks, and gives shutdown and the API a view of what is in flight.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Coroutine, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class TaskRecord:
    job_id: str
    organization: str
    started_at: datetime = field(default_factory=datetime.utcnow)


class TaskRegistry:
    """Registry of in-flight pipeline runs for this process."""

    def __init__(self):
        self._tasks: Dict[asyncio.Task, TaskRecord] = {}

    def launch(self, job_id: str, organization: str, coro: Coroutine) -> asyncio.Task:
        """
        Start a pipeline run without awaiting it.

        Must be called from within a running event loop.
        """
        if self.is_running(job_id):
            # No lock against a second run; both proceed
            logger.warning(f"Job {job_id} already has a running task; launching another")

        task = asyncio.create_task(coro, name=f"pipeline-{job_id}")
        self._tasks[task] = TaskRecord(job_id=job_id, organization=organization)
        task.add_done_callback(self._on_done)
        logger.info(f"Launched pipeline task for job {job_id} ({len(self._tasks)} active)")
        return task

    def _on_done(self, task: asyncio.Task):
        record = self._tasks.pop(task, None)
        job_id = record.job_id if record else task.get_name()

        if task.cancelled():
            logger.warning(f"Pipeline task for job {job_id} was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Pipeline task for job {job_id} raised unexpectedly: {error}",
                exc_info=error,
            )
        else:
            logger.debug(f"Pipeline task for job {job_id} finished ({len(self._tasks)} active)")

    def is_running(self, job_id: str) -> bool:
        return any(r.job_id == job_id for r in self._tasks.values())

    def active_job_ids(self) -> List[str]:
        return [r.job_id for r in self._tasks.values()]

    def snapshot(self, organization: Optional[str] = None) -> List[TaskRecord]:
        """Records of running tasks, optionally limited to one organization."""
        records = sorted(self._tasks.values(), key=lambda r: r.started_at)
        if organization is not None:
            records = [r for r in records if r.organization == organization]
        return records

    async def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the currently running tasks to finish."""
        pending = [t for t in self._tasks if not t.done()]
        if pending:
            await asyncio.wait(pending, timeout=timeout)

    async def shutdown(self, timeout: float = 5.0) -> int:
        """
        Cancel outstanding runs and wait for them to unwind.

        Jobs whose run is cancelled stay non-terminal and are picked up by
        the stale job sweep on the next start.

        Returns:
            Number of tasks that were cancelled
        """
        pending = [t for t in self._tasks if not t.done()]
        if not pending:
            return 0

        logger.info(f"Cancelling {len(pending)} pipeline tasks")
        for task in pending:
            task.cancel()
        await asyncio.wait(pending, timeout=timeout)
        return len(pending)


# Global registry instance
task_registry = TaskRegistry()
