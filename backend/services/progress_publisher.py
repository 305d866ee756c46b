"""
Progress Publisher

Fans job lifecycle events out to every client of the job's organization.
Delivery is best effort: a transport failure is logged and discarded so it
can never fail the pipeline run that produced the event.
"""
import logging
from typing import Any, Dict, Optional

from constants import EventKind, PipelineStage, CheckpointProgress, organization_channel
from domain.value_objects import JobStatus
from services.interfaces import INotificationTransport

logger = logging.getLogger(__name__)


class ProgressPublisher:
    """Builds event payloads and hands them to the notification transport."""

    def __init__(self, transport: INotificationTransport):
        self.transport = transport

    async def publish(self, organization: str, kind: EventKind, payload: Dict[str, Any]) -> bool:
        """
        Send one event on the organization's channel.

        Returns:
            True if the transport accepted the event, False otherwise
        """
        kind = EventKind(kind)
        channel = organization_channel(organization)
        try:
            await self.transport.publish(channel, kind.event_name, payload)
        except Exception as e:
            logger.warning(
                f"Failed to publish {kind.event_name} for job {payload.get('jobId')} on {channel}: {e}"
            )
            return False
        return True

    async def publish_progress(self, organization: str, job_id: str, progress: int, stage: str) -> bool:
        return await self.publish(organization, EventKind.PROGRESS, {
            "jobId": job_id,
            "progress": progress,
            "status": PipelineStage(stage).value,
        })

    async def publish_complete(self, organization: str, job_id: str, sensitivity_status: str) -> bool:
        return await self.publish(organization, EventKind.COMPLETE, {
            "jobId": job_id,
            "status": JobStatus.COMPLETED.value,
            "sensitivityStatus": sensitivity_status,
            "progress": CheckpointProgress.COMPLETED,
        })

    async def publish_error(self, organization: str, job_id: str, message: Optional[str]) -> bool:
        return await self.publish(organization, EventKind.ERROR, {
            "jobId": job_id,
            "status": JobStatus.FAILED.value,
            "message": message or "Processing failed",
        })
