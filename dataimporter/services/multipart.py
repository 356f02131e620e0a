"""
Hand-assembled multipart/form-data body with a single streamed file part.

Wire layout (CRLF line endings):

    --{boundary}
    Content-Disposition: form-data; name="{field}"; filename="{filename}"
    Content-Type: {content_type}

    {file bytes}
    --{boundary}--
"""
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

CRLF = b"\r\n"
BOUNDARY_PREFIX = "-" * 27
DEFAULT_CONTENT_TYPE = "application/octet-stream"
CHUNK_SIZE = 64 * 1024


def generate_boundary() -> str:
    return BOUNDARY_PREFIX + secrets.token_hex(8)


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


@dataclass(frozen=True)
class FilePart:
    """One file field of a multipart body."""
    name: str
    path: Path
    filename: Optional[str] = None
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def upload_filename(self) -> str:
        return self.filename or self.path.name


class MultipartBody:
    """
    Streams a multipart/form-data body for a single file part.

    The body length is computed up front so the request carries an exact
    Content-Length instead of chunked transfer encoding.
    """

    def __init__(self, part: FilePart, boundary: Optional[str] = None, chunk_size: int = CHUNK_SIZE):
        self.part = part
        self.boundary = boundary or generate_boundary()
        self._chunk_size = chunk_size

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def preamble(self) -> bytes:
        delimiter = f"--{self.boundary}".encode("ascii")
        disposition = (
            f'Content-Disposition: form-data; name="{_quote(self.part.name)}"; '
            f'filename="{_quote(self.part.upload_filename)}"'
        ).encode("utf-8")
        content_type = f"Content-Type: {self.part.content_type}".encode("ascii")
        return delimiter + CRLF + disposition + CRLF + content_type + CRLF + CRLF

    def epilogue(self) -> bytes:
        return CRLF + f"--{self.boundary}--".encode("ascii")

    def content_length(self) -> int:
        return len(self.preamble()) + self.part.path.stat().st_size + len(self.epilogue())

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Length": str(self.content_length()),
        }

    def __iter__(self) -> Iterator[bytes]:
        yield self.preamble()
        with open(self.part.path, "rb") as f:
            while True:
                chunk = f.read(self._chunk_size)
                if not chunk:
                    break
                yield chunk
        yield self.epilogue()

    def to_bytes(self) -> bytes:
        return b"".join(self)
