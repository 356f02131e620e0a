"""
Archiver Service - Single Responsibility: bundle files into one temporary ZIP.

Entries are stored by base name with their original modification time and
a precomputed size header, so the archive stays in the classic ZIP format
readable by older extractors.
"""
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Sequence, Union
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from ..errors import ArchiveError, SourceFileNotFoundError
from ..models import ArchiveHandle

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


class ArchiverService:
    """
    Creates the upload archive for an import request.

    Usage:
        archiver = ArchiverService()
        handle = archiver.create_archive([data_path, descriptor_path])
        ...
        handle.remove()
    """

    def __init__(
        self,
        temp_dir: Optional[Union[str, Path]] = None,
        suffix: str = ".zip",
    ):
        self._temp_dir = Path(temp_dir) if temp_dir else None
        self._suffix = suffix

    @property
    def temp_dir(self) -> Path:
        return self._temp_dir or Path(tempfile.gettempdir())

    def create_archive(self, paths: Sequence[Union[str, Path]]) -> ArchiveHandle:
        """
        Zip the given files into a freshly reserved temporary file.

        Args:
            paths: Files to include, in order

        Returns:
            ArchiveHandle owned by the caller

        Raises:
            SourceFileNotFoundError: a path is missing, unreadable or not a file
            ArchiveError: no paths, duplicate base names, or the archive could not be written
        """
        sources = self._validate(paths)
        logger.info(f"Archiving: {', '.join(str(p) for p in sources)}")

        archive_path = self._reserve_temp_file()
        entries: List[str] = []
        try:
            # strict_timestamps=False clamps pre-1980 mtimes instead of failing
            with ZipFile(archive_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
                for source in sources:
                    entries.append(self._add(zf, source))
        except OSError as exc:
            logger.error(f"Archive write failed, partial archive left at {archive_path}: {exc}")
            raise ArchiveError(f"Could not write archive {archive_path}: {exc}", path=archive_path) from exc

        logger.info(f"Archive ready: {archive_path} ({len(entries)} entries)")
        return ArchiveHandle(path=archive_path, entries=tuple(entries))

    @staticmethod
    def _validate(paths: Sequence[Union[str, Path]]) -> List[Path]:
        if not paths:
            raise ArchiveError("At least one file is required to build an archive")

        sources = [Path(p) for p in paths]
        for source in sources:
            if not source.exists():
                raise SourceFileNotFoundError(source)
            if not source.is_file():
                raise SourceFileNotFoundError(source, "not a regular file")
            if not os.access(source, os.R_OK):
                raise SourceFileNotFoundError(source, "file not readable")

        names = [source.name for source in sources]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ArchiveError(f"Duplicate archive entry names: {', '.join(duplicates)}")
        return sources

    def _reserve_temp_file(self) -> Path:
        """Create an empty, uniquely named file; retry on name collisions."""
        temp_dir = self.temp_dir
        while True:
            candidate = temp_dir / f"{uuid.uuid4()}{self._suffix}"
            try:
                with open(candidate, "xb"):
                    pass
            except FileExistsError:
                logger.debug(f"Temp name collision, retrying: {candidate}")
                continue
            except OSError as exc:
                raise ArchiveError(f"Could not create temporary archive in {temp_dir}: {exc}") from exc
            return candidate

    @staticmethod
    def _add(zf: ZipFile, source: Path) -> str:
        # from_file fills in the mtime and the size header
        info = ZipInfo.from_file(source, arcname=source.name, strict_timestamps=False)
        info.compress_type = ZIP_DEFLATED
        logger.debug(f"Adding {source} as {info.filename} ({info.file_size} bytes)")

        with open(source, "rb") as src, zf.open(info, "w") as dest:
            shutil.copyfileobj(src, dest, COPY_CHUNK_SIZE)
        return info.filename
