"""End-to-end tests for DataImporter and ImportPipeline against the stub service."""
import logging
import zipfile

import httpx
import pytest

from dataimporter import DataImporter
from dataimporter.errors import (
    ArchiveError,
    AuthenticationError,
    ResolutionError,
    SourceFileNotFoundError,
    TransportError,
    UploadError,
)
from dataimporter.models import ImportStatus
from dataimporter.orchestrator.models import PipelineStage
from dataimporter.protocols import IAPIClient, IArchiver, IEndpointResolver, ISessionAuthenticator, IUploadSubmitter

from .stubs import StubImportService


def _stages(pipeline):
    return [transition.stage for transition in pipeline.history]


def test_happy_path(stub_service, importer_config, make_request, archive_dir):
    lines = []
    with DataImporter(importer_config, log=lines.append, transport=stub_service.transport) as importer:
        pipeline = importer.create_pipeline(make_request())
        result = pipeline.run()

    assert result.success
    assert result.status == ImportStatus.SUCCESS
    assert result.body == "job-42 queued"
    assert (stub_service.count("lookup"), stub_service.count("login"), stub_service.count("upload")) == (1, 1, 1)

    upload = stub_service.uploads[0]
    assert upload["archive_existed"] is True
    assert upload["cookie"] == "JSESSIONID=stub-session-1"
    assert upload["params"]["action"] == "overwrite"
    assert list(archive_dir.iterdir()) == []

    with stub_service.uploaded_zip() as zf:
        assert sorted(zf.namelist()) == ["sales.csv", "sales.xml"]

    assert pipeline.state is PipelineStage.DONE
    assert _stages(pipeline) == [
        PipelineStage.IDLE,
        PipelineStage.ARCHIVING,
        PipelineStage.AUTHENTICATING,
        PipelineStage.UPLOADING,
        PipelineStage.CLEANUP,
        PipelineStage.DONE,
    ]
    assert lines[0].startswith("UploadData: ")
    assert lines[-1] == "UploadData: Complete"
    assert any(line.startswith("Cleanup: removed") for line in lines)


def test_password_never_reaches_logs(stub_service, importer_config, make_request, caplog):
    caplog.set_level(logging.DEBUG)
    caplog.set_level(logging.DEBUG, logger="httpx")

    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        importer.upload_data(make_request(password="Sup3rSecretPw"))

    request_lines = [record.getMessage() for record in caplog.records if record.name == "httpx"]
    assert any("action=login" in line and "password=XXX" in line for line in request_lines)
    assert "Sup3rSecretPw" not in caplog.text
    assert stub_service.requests["login"][0].url.params["password"] == "Sup3rSecretPw"


def test_login_uses_resolved_cluster(stub_service, importer_config, make_request):
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        importer.upload_data(make_request())

    login = stub_service.requests["login"][0]
    upload = stub_service.requests["upload"][0]
    assert login.url.host == upload.url.host == "cluster1.example.com"
    assert login.url.params["password"] == "s3cret&pass word"


def test_upload_rejection(archive_dir, importer_config, make_request):
    stub = StubImportService(archive_dir=archive_dir, upload_status=500, upload_body="quota exceeded")
    with DataImporter(importer_config, transport=stub.transport) as importer:
        pipeline = importer.create_pipeline(make_request())
        with pytest.raises(UploadError) as exc_info:
            pipeline.run()

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "quota exceeded"
    assert stub.uploads[0]["archive_existed"] is True
    assert list(archive_dir.iterdir()) == []
    assert pipeline.state is PipelineStage.FAILED
    assert _stages(pipeline)[-2:] == [PipelineStage.CLEANUP, PipelineStage.FAILED]
    assert pipeline.history[-1].error == str(exc_info.value)


def test_malformed_lookup(archive_dir, importer_config, make_request):
    stub = StubImportService(archive_dir=archive_dir, lookup_body="<organization></organization>")
    with DataImporter(importer_config, transport=stub.transport) as importer:
        with pytest.raises(ResolutionError):
            importer.upload_data(make_request())
        assert importer.cluster_info("acme") is None

    assert stub.count("login") == 0
    assert stub.count("upload") == 0
    assert list(archive_dir.iterdir()) == []


def test_authentication_failure(archive_dir, importer_config, make_request):
    stub = StubImportService(archive_dir=archive_dir, login_status=401)
    with DataImporter(importer_config, transport=stub.transport) as importer:
        with pytest.raises(AuthenticationError):
            importer.upload_data(make_request())

    assert stub.count("upload") == 0
    assert list(archive_dir.iterdir()) == []


def test_missing_source_file_makes_no_calls(stub_service, importer_config, make_request, tmp_path, archive_dir):
    request = make_request(data_path=tmp_path / "missing.csv")
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        pipeline = importer.create_pipeline(request)
        with pytest.raises(SourceFileNotFoundError):
            pipeline.run()

    assert (stub_service.count("lookup"), stub_service.count("login"), stub_service.count("upload")) == (0, 0, 0)
    assert list(archive_dir.iterdir()) == []
    assert _stages(pipeline) == [
        PipelineStage.IDLE,
        PipelineStage.ARCHIVING,
        PipelineStage.CLEANUP,
        PipelineStage.FAILED,
    ]


def test_network_fault_during_upload(stub_service, importer_config, make_request, archive_dir):
    stub_service.fail_upload_with = httpx.ConnectError("connection reset")
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        with pytest.raises(TransportError):
            importer.upload_data(make_request())

    assert list(archive_dir.iterdir()) == []


def test_cluster_is_cached_per_organization(stub_service, importer_config, make_request):
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        importer.upload_data(make_request())
        importer.upload_data(make_request(action="append"))
        assert stub_service.count("lookup") == 1
        assert importer.cluster_info("acme").host == "cluster1.example.com"

        importer.reset()
        assert importer.cluster_info("acme") is None
        importer.upload_data(make_request())

    assert stub_service.count("lookup") == 2
    assert stub_service.count("login") == 3
    assert stub_service.count("upload") == 3


def test_cluster_cached_even_when_login_fails(archive_dir, importer_config, make_request):
    stub = StubImportService(archive_dir=archive_dir, login_status=401)
    with DataImporter(importer_config, transport=stub.transport) as importer:
        with pytest.raises(AuthenticationError):
            importer.upload_data(make_request())
        assert importer.cluster_info("acme").host == "cluster1.example.com"

        stub.login_status = 200
        importer.upload_data(make_request())

    assert stub.count("lookup") == 1
    assert stub.count("login") == 2


def test_same_named_inputs_fail_before_any_call(stub_service, importer_config, make_request, tmp_path, archive_dir):
    for folder in ("a", "b"):
        (tmp_path / folder).mkdir()
        (tmp_path / folder / "data").write_text("x", encoding="utf-8")
    request = make_request(data_path=tmp_path / "a" / "data", descriptor_path=tmp_path / "b" / "data")

    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        pipeline = importer.create_pipeline(request)
        with pytest.raises(ArchiveError, match="Duplicate archive entry names"):
            pipeline.run()

    assert pipeline.state is PipelineStage.FAILED
    assert stub_service.count("lookup") == 0
    assert list(archive_dir.iterdir()) == []


def test_sessions_are_not_reused(archive_dir, importer_config, make_request):
    stub = StubImportService(archive_dir=archive_dir)
    with DataImporter(importer_config, transport=stub.transport) as importer:
        importer.upload_data(make_request())
        stub.session_token = "stub-session-2"
        importer.upload_data(make_request())

    assert [upload["cookie"] for upload in stub.uploads] == [
        "JSESSIONID=stub-session-1",
        "JSESSIONID=stub-session-2",
    ]
    # No cookie from the first login leaks into the second
    assert "cookie" not in stub.requests["login"][1].headers


def test_repeated_uploads_send_equivalent_archives(stub_service, importer_config, make_request):
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        importer.upload_data(make_request())
        importer.upload_data(make_request())

    first, second = stub_service.uploaded_zip(0), stub_service.uploaded_zip(1)
    with first, second:
        assert [(i.filename, i.file_size) for i in first.infolist()] == [
            (i.filename, i.file_size) for i in second.infolist()
        ]
    assert stub_service.uploads[0]["filename"] != stub_service.uploads[1]["filename"]


def test_failing_log_callback_does_not_break_upload(stub_service, importer_config, make_request):
    def broken(message):
        raise ValueError("listener bug")

    with DataImporter(importer_config, log=broken, transport=stub_service.transport) as importer:
        result = importer.upload_data(make_request())

    assert result.success


def test_stage_events(stub_service, importer_config, make_request):
    seen = []
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        pipeline = importer.create_pipeline(make_request())
        pipeline.events.on("stage_complete", lambda event: seen.append(event.stage))
        pipeline.run()

    assert seen == ["archiving", "authenticating", "uploading"]


def test_upload_existing_archive_is_kept(stub_service, importer_config, make_request, tmp_path):
    archive = tmp_path / "prebuilt.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("data.csv", "a,b\n1,2\n")
        zf.writestr("data.xml", "<dataset/>")

    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        result = importer.upload_archive(make_request(), archive)

    assert result.success
    assert archive.exists()
    assert stub_service.uploads[0]["filename"] == "prebuilt.zip"
    assert stub_service.uploads[0]["part"]["payload"] == archive.read_bytes()


def test_upload_archive_rejects_non_zip(stub_service, importer_config, make_request, source_files):
    data, _ = source_files
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        with pytest.raises(ArchiveError):
            importer.upload_archive(make_request(), data)
    assert stub_service.count("lookup") == 0


def test_pipeline_runs_once(stub_service, importer_config, make_request):
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        pipeline = importer.create_pipeline(make_request())
        pipeline.run()
        with pytest.raises(RuntimeError, match="run once"):
            pipeline.run()


def test_importer_requires_context(importer_config, make_request):
    importer = DataImporter(importer_config)
    with pytest.raises(RuntimeError, match="not initialized"):
        importer.upload_data(make_request())


def test_services_satisfy_protocols(stub_service, importer_config):
    with DataImporter(importer_config, transport=stub_service.transport) as importer:
        assert isinstance(importer._api_client, IAPIClient)
        assert isinstance(importer._archiver, IArchiver)
        assert isinstance(importer._resolver, IEndpointResolver)
        assert isinstance(importer._authenticator, ISessionAuthenticator)
        assert isinstance(importer._submitter, IUploadSubmitter)
