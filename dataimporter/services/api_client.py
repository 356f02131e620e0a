"""HTTP adapter for data import API operations."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import TransportError

logger = logging.getLogger(__name__)

REDACTED = "XXX"
SECRET_PARAMS = ("password",)


def redact_url(url: httpx.URL) -> str:
    """Render a URL with its secret query parameters masked."""
    for name in SECRET_PARAMS:
        if name in url.params:
            url = url.copy_set_param(name, REDACTED)
    return str(url)


class RedactingFilter(logging.Filter):
    """Masks secret query parameters in URLs passed as log record arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple):
            record.args = tuple(
                redact_url(arg) if isinstance(arg, httpx.URL) else arg for arg in record.args
            )
        return True


_httpx_filter = RedactingFilter()


def install_log_redaction() -> None:
    """Attach the redacting filter to the httpx logger (it logs full request URLs at INFO)."""
    httpx_logger = logging.getLogger("httpx")
    if _httpx_filter not in httpx_logger.filters:
        httpx_logger.addFilter(_httpx_filter)


class HTTPAPIClient:
    """
    Blocking HTTP client adapter for API calls.

    Implements IAPIClient protocol. Responses are returned whatever their
    status; callers decide what a non-OK status means. Network faults are
    raised as TransportError. Nothing is retried.
    """

    def __init__(
        self,
        timeout: float = 60,
        verify: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._timeout = timeout
        self._verify = verify
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self):
        install_log_redaction()
        self._client = httpx.Client(
            timeout=self._timeout,
            verify=self._verify,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args):
        if self._client:
            self._client.close()
            self._client = None

    def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        return self._request("GET", url, params=params, headers=headers)

    def post(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        content: Any = None,
    ) -> httpx.Response:
        return self._request("POST", url, params=params, headers=headers, content=content)

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'with' context.")

        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {_display_url(url)} failed: {exc}") from exc

        # Session cookies travel only as explicit headers, never via the client jar
        self._client.cookies.clear()
        logger.debug(f"{method} {response.url.host}{response.url.path} -> {response.status_code}")
        return response


def _display_url(url: str) -> str:
    """URL without its query string (which may carry credentials)."""
    return url.split("?", 1)[0]
