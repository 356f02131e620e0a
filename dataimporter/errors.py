"""
Exceptions for the data import client.

Every failure of the upload pipeline is raised as a subclass of
DataImportError so callers can catch the whole family in one place.
"""
from pathlib import Path
from typing import Optional


class DataImportError(Exception):
    """Base exception for all data import errors."""

    pass


class ConfigurationError(DataImportError):
    """
    Raised when the client configuration is incomplete or invalid.

    Covers:
    - Missing organization, user or file paths
    - Unreadable or malformed XML config files
    - Invalid option values (unknown action, bad timeout)
    """

    pass


class SourceFileNotFoundError(DataImportError, FileNotFoundError):
    """Raised when an input file is missing, unreadable or not a regular file."""

    def __init__(self, path: Path, reason: str = "file not found"):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class ArchiveError(DataImportError):
    """
    Raised when the upload archive cannot be built or written.

    The partially written archive (if any) is left at ``path``.
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class ResolutionError(DataImportError):
    """
    Raised when the cluster lookup fails.

    Covers:
    - Directory service unreachable or returning a non-OK status
    - Malformed lookup document
    - Missing cluster host or protocol
    """

    pass


class AuthenticationError(DataImportError):
    """Raised when login fails or the session cookie is missing."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class UploadError(DataImportError):
    """
    Raised when the import service rejects the upload.

    ``body`` holds the service's response text verbatim.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Upload failed with HTTP {status_code}: {body}")


class TransportError(DataImportError):
    """Raised for network-level faults (connect errors, timeouts, broken streams)."""

    pass
