"""Services for dataimporter module."""
from .api_client import HTTPAPIClient, redact_url
from .archiver import ArchiverService
from .authenticator import SessionAuthenticator
from .multipart import FilePart, MultipartBody
from .resolver import CachingResolver, EndpointResolver
from .submitter import UploadSubmitter

__all__ = [
    "HTTPAPIClient",
    "ArchiverService",
    "SessionAuthenticator",
    "EndpointResolver",
    "CachingResolver",
    "UploadSubmitter",
    "FilePart",
    "MultipartBody",
    "redact_url",
]
