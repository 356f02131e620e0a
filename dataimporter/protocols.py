"""
Protocols (Interfaces) for Dependency Inversion.

Small, focused interfaces so the pipeline can run against stubs.
"""
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, runtime_checkable

from .models import ArchiveHandle, ClusterInfo, ServerResponse, Session, UploadOptions


LogCallback = Callable[[str], None]


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for blocking HTTP calls."""

    def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET request."""
        ...

    def post(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        content: Any = None,
    ) -> Any:
        """POST request."""
        ...


@runtime_checkable
class IArchiver(Protocol):
    """Interface for archive construction."""

    def create_archive(self, paths: Sequence[Path]) -> ArchiveHandle:
        """Bundle files into one temporary archive."""
        ...


@runtime_checkable
class IEndpointResolver(Protocol):
    """Interface for cluster lookup."""

    def resolve(self, organization_id: str) -> ClusterInfo:
        """Resolve the cluster serving an organization."""
        ...


@runtime_checkable
class ISessionAuthenticator(Protocol):
    """Interface for login."""

    def authenticate(
        self,
        cluster: Optional[ClusterInfo],
        organization_id: str,
        user_name: str,
        password: str,
    ) -> Session:
        """Log in and return a session."""
        ...


@runtime_checkable
class IUploadSubmitter(Protocol):
    """Interface for the archive upload."""

    def submit(
        self,
        session: Session,
        archive: ArchiveHandle,
        options: UploadOptions,
    ) -> ServerResponse:
        """Upload the archive with the given options."""
        ...
