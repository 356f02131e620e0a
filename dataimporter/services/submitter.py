"""
Upload Submitter - Single Responsibility: POST the archive to the import API.
"""
import logging
from typing import Optional

from ..errors import UploadError
from ..models import ArchiveHandle, ServerResponse, Session, UploadOptions
from ..protocols import IAPIClient
from .authenticator import DEFAULT_API_PATH
from .multipart import FilePart, MultipartBody

logger = logging.getLogger(__name__)

FILE_FIELD = "file"


class UploadSubmitter:
    """
    Sends the archive as a multipart upload with the session cookie attached.

    ``upload_url`` overrides the cluster endpoint (deployment setting, e.g. a
    development host); the session cookie is sent either way.
    """

    def __init__(
        self,
        api_client: IAPIClient,
        api_path: str = DEFAULT_API_PATH,
        upload_url: Optional[str] = None,
    ):
        self._api = api_client
        self._api_path = "/" + api_path.lstrip("/")
        self._upload_url = upload_url

    def upload_url(self, session: Session) -> str:
        if self._upload_url:
            return self._upload_url
        return f"{session.cluster.base_url}{self._api_path}"

    def submit(
        self,
        session: Session,
        archive: ArchiveHandle,
        options: UploadOptions,
    ) -> ServerResponse:
        """
        Upload ``archive`` and return the service response.

        Raises:
            UploadError: non-OK status (body carried verbatim)
            TransportError: network fault
        """
        url = self.upload_url(session)
        params = options.to_params()
        logger.info(f"UploadZip: {url} {archive.path}")
        logger.info(", ".join(f"{key}={value}" for key, value in params.items()))

        body = MultipartBody(FilePart(name=FILE_FIELD, path=archive.path))
        headers = body.headers()
        headers["Cookie"] = session.cookie_header()

        response = self._api.post(url, params=params, headers=headers, content=iter(body))
        text = response.text

        if response.status_code != 200:
            logger.error(f"Upload rejected (HTTP {response.status_code}): {text}")
            raise UploadError(response.status_code, text)

        logger.info(text)
        return ServerResponse(status_code=response.status_code, body=text)
