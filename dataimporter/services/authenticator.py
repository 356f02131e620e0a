"""
Session Authenticator - Single Responsibility: log in and capture the session cookie.
"""
import logging
from typing import Optional

import httpx

from ..errors import AuthenticationError
from ..models import SESSION_COOKIE_NAME, ClusterInfo, Session
from ..protocols import IAPIClient, IEndpointResolver
from .api_client import redact_url

logger = logging.getLogger(__name__)

DEFAULT_API_PATH = "/SpatialKeyFramework/dataImportAPI"


class SessionAuthenticator:
    """
    Performs the login exchange against a cluster.

    Resolves the cluster first when none is known yet.
    """

    def __init__(
        self,
        api_client: IAPIClient,
        resolver: IEndpointResolver,
        api_path: str = DEFAULT_API_PATH,
        cookie_name: str = SESSION_COOKIE_NAME,
    ):
        self._api = api_client
        self._resolver = resolver
        self._api_path = "/" + api_path.lstrip("/")
        self._cookie_name = cookie_name

    def login_url(
        self,
        cluster: ClusterInfo,
        organization_id: str,
        user_name: str,
        password: str,
    ) -> httpx.URL:
        return httpx.URL(
            f"{cluster.base_url}{self._api_path}",
            params={
                "action": "login",
                "orgName": organization_id,
                "user": user_name,
                "password": password,
            },
        )

    def authenticate(
        self,
        cluster: Optional[ClusterInfo],
        organization_id: str,
        user_name: str,
        password: str,
    ) -> Session:
        """
        Log in and return the session issued by the cluster.

        Args:
            cluster: Resolved cluster, or None to resolve it first
            organization_id: Organization name
            user_name: Login user
            password: Login password (never logged)

        Raises:
            ResolutionError: lazy cluster lookup failed
            AuthenticationError: non-OK status or missing session cookie
            TransportError: network fault
        """
        if cluster is None:
            cluster = self._resolver.resolve(organization_id)

        url = self.login_url(cluster, organization_id, user_name, password)
        logger.info(f"Authenticate: {redact_url(url)}")

        response = self._api.get(str(url))
        if response.status_code != 200:
            raise AuthenticationError(
                f"Authentication failed for user '{user_name}' (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        token = response.cookies.get(self._cookie_name)
        if not token:
            raise AuthenticationError(
                f"Authentication response carried no {self._cookie_name} cookie",
                status_code=response.status_code,
            )

        logger.debug(response.text)
        logger.info(f"Authenticated as '{user_name}' on {cluster.host}")
        return Session(token=token, cluster=cluster, cookie_name=self._cookie_name)
