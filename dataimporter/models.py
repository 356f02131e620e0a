"""
Models for the data import client.

Immutable dataclasses describing one import request and the values the
pipeline produces while serving it.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple


SESSION_COOKIE_NAME = "JSESSIONID"


class ImportAction(Enum):
    """Import mode requested from the service."""
    OVERWRITE = "overwrite"
    APPEND = "append"

    @classmethod
    def parse(cls, value) -> "ImportAction":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for action in cls:
            if action.value == text:
                return action
        raise ValueError(f"Unknown import action: {value!r} (expected 'overwrite' or 'append')")


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class UploadOptions:
    """Import options sent as query parameters of the upload request."""
    action: ImportAction = ImportAction.OVERWRITE
    run_in_background: bool = True
    notify_by_email: bool = False
    share_with_all_users: bool = False

    def to_params(self) -> Dict[str, str]:
        return {
            "action": self.action.value,
            "runAsBackground": _flag(self.run_in_background),
            "notifyByEmail": _flag(self.notify_by_email),
            "addAllUsers": _flag(self.share_with_all_users),
        }


@dataclass(frozen=True)
class ImportRequest:
    """Immutable description of a single upload attempt."""
    organization_id: str
    user_name: str
    password: str = field(repr=False)
    data_path: Path
    descriptor_path: Path
    action: ImportAction = ImportAction.OVERWRITE
    run_in_background: bool = True
    notify_by_email: bool = False
    share_with_all_users: bool = False

    def __post_init__(self):
        # Normalize loose inputs (str paths, "append") without breaking immutability
        object.__setattr__(self, "data_path", Path(self.data_path))
        object.__setattr__(self, "descriptor_path", Path(self.descriptor_path))
        object.__setattr__(self, "action", ImportAction.parse(self.action))

    @property
    def paths(self) -> Tuple[Path, Path]:
        return (self.data_path, self.descriptor_path)

    @property
    def options(self) -> UploadOptions:
        return UploadOptions(
            action=self.action,
            run_in_background=self.run_in_background,
            notify_by_email=self.notify_by_email,
            share_with_all_users=self.share_with_all_users,
        )


@dataclass(frozen=True)
class ClusterInfo:
    """Network location assigned to an organization."""
    host: str
    scheme: str = "https"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"


@dataclass(frozen=True)
class Session:
    """Authenticated session, valid only for the cluster that issued it."""
    token: str = field(repr=False)
    cluster: ClusterInfo
    cookie_name: str = SESSION_COOKIE_NAME

    @property
    def host(self) -> str:
        return self.cluster.host

    def cookie_header(self) -> str:
        return f"{self.cookie_name}={self.token}"


@dataclass(frozen=True)
class ArchiveHandle:
    """Temporary archive bundling the files of one request."""
    path: Path
    entries: Tuple[str, ...] = ()
    owned: bool = True

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def exists(self) -> bool:
        return self.path.exists()

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)


@dataclass(frozen=True)
class ServerResponse:
    """Raw response of the import service."""
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class ImportStatus(Enum):
    """Outcome of an import run."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportResult:
    """Immutable result of an import run."""
    organization_id: str
    status: ImportStatus = ImportStatus.SUCCESS
    response: Optional[ServerResponse] = None
    error: Optional[str] = None
    stage: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == ImportStatus.SUCCESS

    @property
    def body(self) -> Optional[str]:
        return self.response.body if self.response else None

    @classmethod
    def ok(cls, organization_id: str, response: ServerResponse, stage: str = "done"):
        return cls(
            organization_id=organization_id,
            status=ImportStatus.SUCCESS,
            response=response,
            stage=stage,
        )

    @classmethod
    def fail(cls, organization_id: str, error: str, stage: Optional[str] = None):
        return cls(
            organization_id=organization_id,
            status=ImportStatus.FAILED,
            error=error,
            stage=stage,
        )
