"""Tests for the session authenticator."""
import logging
from unittest.mock import Mock

import httpx
import pytest

from dataimporter.errors import AuthenticationError, ResolutionError, TransportError
from dataimporter.models import ClusterInfo
from dataimporter.services.api_client import HTTPAPIClient
from dataimporter.services.authenticator import SessionAuthenticator, redact_url

from .stubs import API_PATH, StubImportService

CLUSTER = ClusterInfo(host="cluster1.example.com", scheme="https")
PASSWORD = "p@ss word&x=1"


def _authenticate(stub, cluster=CLUSTER, resolver=None, password=PASSWORD):
    with HTTPAPIClient(transport=stub.transport) as client:
        authenticator = SessionAuthenticator(client, resolver or Mock())
        return authenticator.authenticate(cluster, "acme", "jane@example.com", password)


def test_login_returns_session_for_cluster():
    stub = StubImportService(session_token="tok-123")
    session = _authenticate(stub)

    assert session.token == "tok-123"
    assert session.cluster == CLUSTER
    assert session.host == "cluster1.example.com"
    assert session.cookie_name == "JSESSIONID"


def test_login_request_shape():
    stub = StubImportService()
    _authenticate(stub)

    request = stub.requests["login"][0]
    assert request.method == "GET"
    assert request.url.scheme == "https"
    assert request.url.host == "cluster1.example.com"
    assert request.url.path == API_PATH
    assert dict(request.url.params) == {
        "action": "login",
        "orgName": "acme",
        "user": "jane@example.com",
        "password": PASSWORD,
    }
    # Reserved characters are percent-encoded on the wire
    assert b"p@ss word&x=1" not in request.url.query
    assert b"%26x%3D1" in request.url.query


def test_password_is_redacted_in_logs(caplog):
    caplog.set_level(logging.DEBUG, logger="dataimporter")
    _authenticate(StubImportService())

    assert "password=XXX" in caplog.text
    assert PASSWORD not in caplog.text
    assert "p%40ss" not in caplog.text


def test_redact_url_only_touches_password():
    url = httpx.URL("https://h/api", params={"user": "jane", "password": "secret"})
    redacted = redact_url(url)
    assert "secret" not in redacted
    assert "user=jane" in redacted
    assert redact_url(httpx.URL("https://h/api?action=login")) == "https://h/api?action=login"


@pytest.mark.parametrize("status", [401, 403, 500])
def test_non_ok_status_fails(status):
    stub = StubImportService(login_status=status)
    with pytest.raises(AuthenticationError) as exc_info:
        _authenticate(stub)
    assert exc_info.value.status_code == status


def test_missing_session_cookie_fails():
    stub = StubImportService(session_token=None)
    with pytest.raises(AuthenticationError, match="JSESSIONID"):
        _authenticate(stub)


def test_resolves_cluster_when_unknown():
    stub = StubImportService()
    resolver = Mock()
    resolver.resolve.return_value = ClusterInfo(host="cluster9.example.com", scheme="http")

    session = _authenticate(stub, cluster=None, resolver=resolver)

    resolver.resolve.assert_called_once_with("acme")
    assert session.cluster.host == "cluster9.example.com"
    assert str(stub.requests["login"][0].url).startswith("http://cluster9.example.com/")


def test_known_cluster_skips_resolution():
    resolver = Mock()
    _authenticate(StubImportService(), resolver=resolver)
    resolver.resolve.assert_not_called()


def test_resolution_failure_propagates():
    stub = StubImportService()
    resolver = Mock()
    resolver.resolve.side_effect = ResolutionError("no such organization")

    with pytest.raises(ResolutionError):
        _authenticate(stub, cluster=None, resolver=resolver)
    assert stub.count("login") == 0


def test_network_fault_is_transport_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with HTTPAPIClient(transport=httpx.MockTransport(handler)) as client:
        authenticator = SessionAuthenticator(client, Mock())
        with pytest.raises(TransportError) as exc_info:
            authenticator.authenticate(CLUSTER, "acme", "jane", PASSWORD)

    assert PASSWORD not in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)
