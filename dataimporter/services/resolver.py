"""
Endpoint Resolver - Single Responsibility: find the cluster serving an organization.

The directory service answers with a small XML document:

    <organization>
        <cluster>cluster1.example.com</cluster>
        <protocol>https://</protocol>
    </organization>
"""
import logging
import xml.etree.ElementTree as ET
from typing import Dict, Optional

from ..errors import ResolutionError, TransportError
from ..models import ClusterInfo
from ..protocols import IAPIClient, IEndpointResolver

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY_DOMAIN = "spatialkey.com"
DEFAULT_LOOKUP_PATH = "/clusterlookup"
SUPPORTED_SCHEMES = ("http", "https")


def normalize_scheme(protocol: str) -> str:
    """Turn 'https://', 'HTTPS:' or 'https' into 'https'."""
    return protocol.strip().lower().rstrip("/").rstrip(":")


class EndpointResolver:
    """Looks up the cluster host and scheme for an organization."""

    def __init__(
        self,
        api_client: IAPIClient,
        directory_domain: str = DEFAULT_DIRECTORY_DOMAIN,
        lookup_path: str = DEFAULT_LOOKUP_PATH,
    ):
        self._api = api_client
        self._domain = directory_domain.strip(".")
        self._lookup_path = "/" + lookup_path.lstrip("/")

    def lookup_url(self, organization_id: str) -> str:
        return f"http://{organization_id}.{self._domain}{self._lookup_path}"

    def resolve(self, organization_id: str) -> ClusterInfo:
        """
        Resolve the cluster for ``organization_id``.

        Raises:
            ResolutionError: lookup unreachable, malformed or incomplete
        """
        organization_id = (organization_id or "").strip()
        if not organization_id:
            raise ResolutionError("Organization id is required for cluster lookup")

        url = self.lookup_url(organization_id)
        logger.info(f"ClusterLookup: {url}")

        try:
            response = self._api.get(url)
        except TransportError as exc:
            raise ResolutionError(f"Cluster lookup unreachable for '{organization_id}': {exc}") from exc

        if response.status_code != 200:
            raise ResolutionError(
                f"Cluster lookup for '{organization_id}' returned HTTP {response.status_code}"
            )

        logger.debug(response.text)
        cluster = self.parse(response.content, organization_id)
        logger.info(f"Cluster: {cluster.base_url}")
        return cluster

    @staticmethod
    def parse(document: bytes, organization_id: str = "") -> ClusterInfo:
        """Extract ClusterInfo from a lookup document."""
        try:
            root = ET.fromstring(document)
        except ET.ParseError as exc:
            raise ResolutionError(f"Malformed cluster lookup for '{organization_id}': {exc}") from exc

        host = (root.findtext("cluster") or "").strip()
        protocol = (root.findtext("protocol") or "").strip()
        if not host:
            raise ResolutionError(f"Cluster lookup for '{organization_id}' has no cluster element")
        if not protocol:
            raise ResolutionError(f"Cluster lookup for '{organization_id}' has no protocol element")

        scheme = normalize_scheme(protocol)
        if scheme not in SUPPORTED_SCHEMES:
            raise ResolutionError(f"Unsupported protocol in cluster lookup: {protocol!r}")

        return ClusterInfo(host=host, scheme=scheme)


class CachingResolver:
    """
    Remembers each organization's cluster as soon as it is resolved.

    Failed lookups cache nothing. ``cache`` may be shared with the owner so
    entries outlive this resolver.
    """

    def __init__(self, resolver: IEndpointResolver, cache: Optional[Dict[str, ClusterInfo]] = None):
        self._resolver = resolver
        self._clusters = cache if cache is not None else {}

    def get(self, organization_id: str) -> Optional[ClusterInfo]:
        return self._clusters.get(cache_key(organization_id))

    def resolve(self, organization_id: str) -> ClusterInfo:
        key = cache_key(organization_id)
        cluster = self._clusters.get(key)
        if cluster is None:
            cluster = self._resolver.resolve(organization_id)
            self._clusters[key] = cluster
        else:
            logger.debug(f"Cluster for '{key}' served from cache: {cluster.base_url}")
        return cluster


def cache_key(organization_id: str) -> str:
    return (organization_id or "").strip()
