"""Core orchestrator - wires services and runs import pipelines."""
import logging
from pathlib import Path
from typing import Dict, Optional, Union
from zipfile import BadZipFile, ZipFile

import httpx

from ..config import ImporterConfig
from ..errors import ArchiveError, SourceFileNotFoundError
from ..models import ArchiveHandle, ClusterInfo, ImportRequest, ImportResult
from ..protocols import LogCallback
from ..services.api_client import HTTPAPIClient
from ..services.archiver import ArchiverService
from ..services.authenticator import SessionAuthenticator
from ..services.resolver import CachingResolver, EndpointResolver, cache_key
from ..services.submitter import UploadSubmitter
from .pipeline import ImportPipeline

logger = logging.getLogger(__name__)


class DataImporter:
    """
    Client for the data import API.

    Owns the HTTP client, the services and the per-organization cluster
    cache. Every upload runs in a fresh ImportPipeline, so no session or
    archive state is shared between uploads. Not safe for concurrent
    uploads from several threads; use one instance per thread.

    Usage:
        with DataImporter(ImporterConfig(), log=print) as importer:
            result = importer.upload_data(request)
            print(result.body)
    """

    def __init__(
        self,
        config: Optional[ImporterConfig] = None,
        log: Optional[LogCallback] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize importer.

        Args:
            config: Deployment settings (endpoints, timeout, temp dir)
            log: Optional callback receiving human-readable progress lines
            transport: Optional httpx transport (tests, proxies)
        """
        self._config = config or ImporterConfig()
        self._log = log
        self._transport = transport
        self._clusters: Dict[str, ClusterInfo] = {}

        # Initialized in __enter__
        self._api_client: Optional[HTTPAPIClient] = None
        self._archiver: Optional[ArchiverService] = None
        self._resolver: Optional[CachingResolver] = None
        self._authenticator: Optional[SessionAuthenticator] = None
        self._submitter: Optional[UploadSubmitter] = None

    def __enter__(self):
        """Initialize HTTP client and services."""
        config = self._config
        self._api_client = HTTPAPIClient(
            timeout=config.timeout,
            verify=config.verify_ssl,
            transport=self._transport,
        )
        self._api_client.__enter__()

        self._archiver = ArchiverService(temp_dir=config.temp_dir)
        self._resolver = CachingResolver(
            EndpointResolver(
                self._api_client,
                directory_domain=config.directory_domain,
                lookup_path=config.lookup_path,
            ),
            cache=self._clusters,
        )
        self._authenticator = SessionAuthenticator(
            self._api_client,
            self._resolver,
            api_path=config.api_path,
            cookie_name=config.cookie_name,
        )
        self._submitter = UploadSubmitter(
            self._api_client,
            api_path=config.api_path,
            upload_url=config.upload_url,
        )
        return self

    def __exit__(self, *args):
        """Close the HTTP client."""
        if self._api_client:
            self._api_client.__exit__(*args)
            self._api_client = None

    @property
    def config(self) -> ImporterConfig:
        return self._config

    def reset(self) -> None:
        """Forget every cached cluster; the next upload looks it up again."""
        if self._clusters:
            logger.info(f"Dropping cached clusters: {', '.join(sorted(self._clusters))}")
        self._clusters.clear()

    def cluster_info(self, organization_id: str) -> Optional[ClusterInfo]:
        return self._clusters.get(cache_key(organization_id))

    def resolve(self, organization_id: str) -> ClusterInfo:
        """Cached cluster lookup."""
        self._require_started()
        return self._resolver.resolve(organization_id)

    def create_pipeline(
        self,
        request: ImportRequest,
        archive: Optional[ArchiveHandle] = None,
    ) -> ImportPipeline:
        """Build a fresh pipeline for one request."""
        self._require_started()
        pipeline = ImportPipeline(
            request,
            archiver=self._archiver,
            authenticator=self._authenticator,
            submitter=self._submitter,
            cluster=self.cluster_info(request.organization_id),
            archive=archive,
        )
        if self._log:
            pipeline.on_log(self._log)
        return pipeline

    def upload_data(self, request: ImportRequest) -> ImportResult:
        """
        Zip the data and descriptor files and upload them.

        The temporary archive is removed before returning, whatever the outcome.

        Raises:
            DataImportError subclass of the first failing stage
        """
        return self.create_pipeline(request).run()

    def upload_archive(self, request: ImportRequest, archive_path: Union[str, Path]) -> ImportResult:
        """
        Upload an existing ZIP built by the caller.

        The archive stays on disk; the request's file paths are not read.
        """
        handle = self.open_archive(archive_path)
        return self.create_pipeline(request, archive=handle).run()

    def _require_started(self) -> None:
        if self._api_client is None:
            raise RuntimeError("DataImporter not initialized. Use 'with' context.")

    @staticmethod
    def open_archive(path: Union[str, Path]) -> ArchiveHandle:
        """Wrap a caller-owned ZIP; the pipeline will not delete it."""
        path = Path(path)
        if not path.is_file():
            raise SourceFileNotFoundError(path)
        try:
            with ZipFile(path) as zf:
                entries = tuple(zf.namelist())
        except (BadZipFile, OSError) as exc:
            raise ArchiveError(f"Not a readable ZIP archive: {path}: {exc}") from exc
        return ArchiveHandle(path=path, entries=entries, owned=False)
