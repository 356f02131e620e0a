"""Shared fixtures."""
import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from dataimporter.config import ImporterConfig
from dataimporter.models import ImportRequest

from .stubs import StubImportService


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo logging changes made by the CLI (disable level, root handlers, httpx level)."""
    root_logger = logging.getLogger()
    httpx_logger = logging.getLogger("httpx")
    root_level = root_logger.level
    httpx_level = httpx_logger.level
    logging.disable(logging.NOTSET)
    yield
    logging.disable(logging.NOTSET)
    for handler in list(root_logger.handlers):
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)
    root_logger.setLevel(root_level)
    httpx_logger.setLevel(httpx_level)


@pytest.fixture
def archive_dir(tmp_path) -> Path:
    path = tmp_path / "archives"
    path.mkdir()
    return path


@pytest.fixture
def source_files(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    data = src / "sales.csv"
    data.write_text("region,amount\nnorth,10\nsouth,20\n", encoding="utf-8")
    descriptor = src / "sales.xml"
    descriptor.write_text("<dataset><name>sales</name></dataset>", encoding="utf-8")
    return data, descriptor


@pytest.fixture
def stub_service(archive_dir) -> StubImportService:
    return StubImportService(archive_dir=archive_dir)


@pytest.fixture
def importer_config(archive_dir) -> ImporterConfig:
    return ImporterConfig(temp_dir=archive_dir, timeout=5)


@pytest.fixture
def make_request(source_files):
    data, descriptor = source_files

    def _make(**overrides) -> ImportRequest:
        values = dict(
            organization_id="acme",
            user_name="jane@example.com",
            password="s3cret&pass word",
            data_path=data,
            descriptor_path=descriptor,
            action="overwrite",
            run_in_background=True,
            notify_by_email=False,
            share_with_all_users=False,
        )
        values.update(overrides)
        return ImportRequest(**values)

    return _make
