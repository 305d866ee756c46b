"""
Service Interfaces

Abstract base classes for the pipeline's external collaborators. The
orchestrator and the API depend only on these, so concrete adapters can be
swapped through dependency injection and replaced with fakes in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class TransferResult:
    """
    Outcome of handing a staged upload to durable storage.

    All metadata fields are optional; a provider that cannot probe the
    media returns only the reference and URL.
    """
    reference: str
    url: str
    size_bytes: Optional[int] = None
    duration_seconds: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    codec: Optional[str] = None
    bitrate: Optional[int] = None
    container_format: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class IStorageProvider(ABC):
    """
    Durable media storage.
    """

    @abstractmethod
    async def transfer(self, data: bytes, name: str) -> TransferResult:
        """
        Store the uploaded bytes.

        Args:
            data: Full file content
            name: Stored filename chosen by the gateway

        Returns:
            TransferResult with the storage reference, a playback URL and
            whatever technical metadata the provider could read

        Raises:
            StorageError: If the bytes could not be stored
        """
        pass

    @abstractmethod
    async def delete(self, reference: str) -> None:
        """
        Remove a stored object.

        Raises:
            StorageError: If the object could not be removed
        """
        pass

    @abstractmethod
    def signed_url(self, reference: str) -> str:
        """
        Time-limited URL a client can be redirected to for playback.

        Args:
            reference: Storage reference returned by transfer()
        """
        pass

    def local_path(self, reference: str) -> Optional[Path]:
        """Filesystem path when the provider serves from local disk, else None."""
        return None


class IContentClassifier(ABC):
    """
    Content sensitivity classification.
    """

    @abstractmethod
    async def classify(self, reference: str) -> str:
        """
        Classify stored media.

        Args:
            reference: Storage reference of the media

        Returns:
            'safe' or 'flagged'

        Raises:
            ClassifierError: If classification could not be performed
        """
        pass


class INotificationTransport(ABC):
    """
    Delivery channel for organization-scoped realtime events.
    """

    @abstractmethod
    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        """
        Deliver one event to every subscriber of a channel.

        Raises:
            NotificationError: If the event could not be delivered
        """
        pass


class ICredentialVerifier(ABC):
    """
    Bearer credential verification.
    """

    @abstractmethod
    def verify(self, token: str) -> str:
        """
        Verify a bearer token.

        Returns:
            The user id the token was issued to

        Raises:
            AuthenticationError: If the token is missing, malformed or expired
        """
        pass
