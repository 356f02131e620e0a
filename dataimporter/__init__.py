"""
dataimporter - client for a remote dataset import API.

One upload = resolve the organization's cluster, log in, zip the data file
with its descriptor, POST the archive, remove the archive.

Usage:
    from dataimporter import DataImporter, ImportRequest, ImportAction

    request = ImportRequest(
        organization_id="acme",
        user_name="jane@example.com",
        password="secret",
        data_path="sales.csv",
        descriptor_path="sales.xml",
        action=ImportAction.APPEND,
    )

    with DataImporter(log=print) as importer:
        result = importer.upload_data(request)
        print(result.body)
"""
from .config import ImporterConfig, load_config_file
from .errors import (
    ArchiveError,
    AuthenticationError,
    ConfigurationError,
    DataImportError,
    ResolutionError,
    SourceFileNotFoundError,
    TransportError,
    UploadError,
)
from .models import (
    ArchiveHandle,
    ClusterInfo,
    ImportAction,
    ImportRequest,
    ImportResult,
    ImportStatus,
    ServerResponse,
    Session,
    UploadOptions,
)
from .orchestrator import DataImporter, ImportPipeline, PipelineStage

__version__ = "1.0.0"
__all__ = [
    # Main
    "DataImporter",
    "ImportPipeline",
    "PipelineStage",
    # Config
    "ImporterConfig",
    "load_config_file",
    # Models
    "ImportRequest",
    "ImportAction",
    "ImportResult",
    "ImportStatus",
    "UploadOptions",
    "ClusterInfo",
    "Session",
    "ArchiveHandle",
    "ServerResponse",
    # Errors
    "DataImportError",
    "ConfigurationError",
    "SourceFileNotFoundError",
    "ArchiveError",
    "ResolutionError",
    "AuthenticationError",
    "UploadError",
    "TransportError",
]
