"""
Application-wide constants.

This module centralizes the magic strings and numbers used throughout the
application to improve maintainability and reduce duplication.
"""
from enum import Enum


class Role(str, Enum):
    """Principal roles, lowest privilege first"""

    VIEWER = 'viewer'
    EDITOR = 'editor'
    ADMIN = 'admin'

    @classmethod
    def can_upload(cls, role: 'Role') -> bool:
        """Check if this role may submit new videos"""
        return role in (cls.EDITOR, cls.ADMIN)


class SensitivityStatus(str, Enum):
    """Content-moderation verdict attached to a video job"""

    PENDING = 'pending'
    SAFE = 'safe'
    FLAGGED = 'flagged'


class PipelineStage(str, Enum):
    """
    Label of a pipeline checkpoint.

    Sent as the `status` field of progress events; ANALYZING and FINALIZING
    are sub-stages of the PROCESSING job status.
    """

    UPLOADING = 'uploading'
    PROCESSING = 'processing'
    ANALYZING = 'analyzing'
    FINALIZING = 'finalizing'
    COMPLETED = 'completed'
    FAILED = 'failed'


class CheckpointProgress:
    """Fixed progress value of each pipeline checkpoint"""

    CREATED = 0
    PROCESSING = 10
    METADATA = 50
    ANALYZING = 70
    FINALIZING = 90
    COMPLETED = 100


class EventKind(str, Enum):
    """Kinds of progress notifications"""

    PROGRESS = 'progress'
    COMPLETE = 'complete'
    ERROR = 'error'

    @property
    def event_name(self) -> str:
        """Name of the event on the wire, e.g. video:progress"""
        return f"video:{self.value}"


def organization_channel(organization: str) -> str:
    """Notification channel shared by every job of an organization"""
    return f"org-{organization}"


class UploadLimits:
    """Ingress validation limits"""

    ALLOWED_MIME_TYPES = frozenset({
        'video/mp4',
        'video/webm',
        'video/ogg',
        'video/quicktime',
        'video/x-msvideo',
    })
    MAX_FILENAME_LENGTH = 255


class ServerConfig:
    """Server configuration constants"""

    API_PREFIX = "/api"
    SERVICE_NAME = "Video Sentinel API"
    VERSION = "1.0.0"


class WebSocketConfig:
    """WebSocket configuration constants"""

    SEND_QUEUE_SIZE = 1000  # Messages buffered per client before dropping


class HTTPStatus:
    """HTTP status codes used throughout the application"""

    # Success
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204
    PARTIAL_CONTENT = 206

    # Redirects
    TEMPORARY_REDIRECT = 307

    # Client Errors
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    CONFLICT = 409
    REQUEST_ENTITY_TOO_LARGE = 413
    UNPROCESSABLE_ENTITY = 422

    # Server Errors
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
