"""Single import run: archive, authenticate, upload, clean up."""
import logging
import time
from typing import Any, Callable, List, Optional

from ..errors import ArchiveError
from ..models import ArchiveHandle, ClusterInfo, ImportRequest, ImportResult, ServerResponse, Session
from ..protocols import IArchiver, ISessionAuthenticator, IUploadSubmitter, LogCallback
from ..utils.events import EventEmitter, StageEvent
from .models import PipelineStage, StageTransition

logger = logging.getLogger(__name__)


class ImportPipeline:
    """
    Runs one ImportRequest through the linear state machine

        IDLE -> ARCHIVING -> AUTHENTICATING -> UPLOADING -> CLEANUP -> DONE

    A failure in any working stage still routes through CLEANUP and ends in
    FAILED, carrying the first error, which is re-raised to the caller.

    The pipeline owns its Session and ArchiveHandle. A pipeline instance runs
    once; build a new one per upload.

    Events (all listeners are fire-and-forget):
        stage_start / stage_complete / stage_failed -> StageEvent
        log -> str (human-readable progress line)
    """

    def __init__(
        self,
        request: ImportRequest,
        archiver: IArchiver,
        authenticator: ISessionAuthenticator,
        submitter: IUploadSubmitter,
        cluster: Optional[ClusterInfo] = None,
        archive: Optional[ArchiveHandle] = None,
        events: Optional[EventEmitter] = None,
    ):
        self.request = request
        self.cluster = cluster
        self.archive = archive
        self.session: Optional[Session] = None
        self.response: Optional[ServerResponse] = None
        self.error: Optional[Exception] = None
        self.state = PipelineStage.IDLE
        self.history: List[StageTransition] = [StageTransition(PipelineStage.IDLE)]

        self._archiver = archiver
        self._authenticator = authenticator
        self._submitter = submitter
        self._events = events or EventEmitter()
        self._run_started: Optional[float] = None

    @property
    def events(self) -> EventEmitter:
        return self._events

    def on_log(self, callback: LogCallback) -> None:
        self._events.on("log", callback)

    def run(self) -> ImportResult:
        """
        Execute the pipeline.

        Returns:
            ImportResult with the service response

        Raises:
            DataImportError subclass of the first failing stage
        """
        if self.state is not PipelineStage.IDLE:
            raise RuntimeError("ImportPipeline instances run once; create a new pipeline per upload")

        self._run_started = time.monotonic()
        data_path, descriptor_path = self.request.paths
        self._log(f"UploadData: {data_path} {descriptor_path}")

        try:
            self.response = self._execute()
        except Exception as exc:
            self.error = exc
        finally:
            self._cleanup()

        if self.error is not None:
            self._enter(PipelineStage.FAILED, error=str(self.error))
            self._log(f"UploadData: Failed ({type(self.error).__name__}: {self.error})")
            raise self.error

        self._enter(PipelineStage.DONE)
        self._log("UploadData: Complete")
        return ImportResult.ok(self.request.organization_id, self.response)

    def _execute(self) -> ServerResponse:
        if self.archive is None:
            self.archive = self._run_stage(
                PipelineStage.ARCHIVING,
                self._archiver.create_archive,
                list(self.request.paths),
            )
        else:
            self._log(f"Archiving: skipped, using {self.archive.path}")

        self.session = self._run_stage(PipelineStage.AUTHENTICATING, self._authenticate)
        return self._run_stage(
            PipelineStage.UPLOADING,
            self._submitter.submit,
            self.session,
            self.archive,
            self.request.options,
        )

    def _authenticate(self) -> Session:
        request = self.request
        session = self._authenticator.authenticate(
            self.cluster,
            request.organization_id,
            request.user_name,
            request.password,
        )
        self.cluster = session.cluster
        return session

    def _cleanup(self) -> None:
        self._enter(PipelineStage.CLEANUP)
        archive = self.archive

        if archive is None:
            # A half-written archive is reported, not removed
            if isinstance(self.error, ArchiveError) and self.error.path:
                logger.warning(f"Partial archive left at {self.error.path}")
            self._log("Cleanup: nothing to remove")
            return

        if not archive.owned:
            self._log(f"Cleanup: keeping caller archive {archive.path}")
            return

        try:
            archive.remove()
        except OSError as exc:
            logger.error(f"Could not remove archive {archive.path}: {exc}")
            if self.error is None:
                self.error = ArchiveError(f"Could not remove archive {archive.path}: {exc}", path=archive.path)
            return
        self._log(f"Cleanup: removed {archive.path}")

    def _run_stage(self, stage: PipelineStage, func: Callable[..., Any], *args) -> Any:
        self._enter(stage)
        self._emit("stage_start", StageEvent(stage.value))
        started = time.monotonic()
        try:
            result = func(*args)
        except Exception as exc:
            elapsed = time.monotonic() - started
            self._emit("stage_failed", StageEvent(stage.value, "failed", elapsed, str(exc)))
            raise
        elapsed = time.monotonic() - started
        self._emit("stage_complete", StageEvent(stage.value, "completed", elapsed, _summarize(result)))
        return result

    def _enter(self, stage: PipelineStage, error: Optional[str] = None) -> None:
        self.state = stage
        elapsed = time.monotonic() - self._run_started if self._run_started else 0.0
        self.history.append(StageTransition(stage, elapsed, error))

    def _emit(self, event_name: str, event: StageEvent) -> None:
        self._events.emit(event_name, event)
        self._log(event.describe())

    def _log(self, message: str) -> None:
        logger.info(message)
        self._events.emit("log", message)


def _summarize(result: Any) -> Optional[str]:
    if isinstance(result, ArchiveHandle):
        return f"{result.name}, {len(result.entries)} entries"
    if isinstance(result, Session):
        return f"host {result.host}"
    if isinstance(result, ServerResponse):
        return f"HTTP {result.status_code}"
    return None
