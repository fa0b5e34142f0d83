import uuid
from collections.abc import Callable

from invoice_ingest.errors import ErrorCode, user_message_for
from invoice_ingest.imaging.models import CompressedImage
from invoice_ingest.pdf.models import RasterResult
from invoice_ingest.upload.models import SourceFile, UploadError, UploadStatus
from invoice_ingest.upload.progress import progress_for_status
from invoice_ingest.upload.state_machine import ensure_transition

JobListener = Callable[["UploadJob"], None]


class UploadJob:
    """One file moving through the ingestion stages.

    Status only changes through ``transition_to``/``fail``/``retry``, which
    consult the transition table. Progress never decreases within an attempt.
    """

    def __init__(
        self,
        user_id: str,
        source_file: SourceFile,
        *,
        job_id: str | None = None,
        listener: JobListener | None = None,
    ) -> None:
        self._id = job_id or uuid.uuid4().hex
        self.user_id = user_id
        self.source_file = source_file
        self.status = UploadStatus.NOT_UPLOADED
        self.progress = 0
        self.error: UploadError | None = None
        self.attempts = 0
        self.raster_result: RasterResult | None = None
        self.compressed_image: CompressedImage | None = None
        self.object_key: str | None = None
        self.invoice_id: str | None = None
        self._listener = listener
        self._abort_requested = False

    @property
    def id(self) -> str:
        return self._id

    @property
    def abort_requested(self) -> bool:
        return self._abort_requested

    def __repr__(self) -> str:
        return (
            f"UploadJob(id={self._id!r}, file={self.source_file.file_name!r}, "
            f"status={self.status}, progress={self.progress})"
        )

    def start_attempt(self) -> None:
        self.attempts += 1
        self._abort_requested = False

    def transition_to(self, status: UploadStatus) -> None:
        """Apply a table-checked transition and move progress to the stage start."""
        if status is UploadStatus.FAILED:
            raise ValueError("Use fail() to move a job to FAILED")
        ensure_transition(self.status, status)
        self.status = status
        self.progress = max(self.progress, progress_for_status(status))
        self._notify()

    def report_progress(self, stage_progress: float) -> None:
        """Report progress (0-100) within the current stage."""
        value = progress_for_status(self.status, stage_progress)
        if value > self.progress:
            self.progress = value
            self._notify()

    def fail(self, code: ErrorCode, message: str | None = None) -> None:
        ensure_transition(self.status, UploadStatus.FAILED)
        self.status = UploadStatus.FAILED
        self.error = UploadError(code=code, message=message or user_message_for(code))
        self._notify()

    def retry(self) -> None:
        """FAILED -> NOT_UPLOADED, dropping the previous attempt's artifacts."""
        ensure_transition(self.status, UploadStatus.NOT_UPLOADED)
        self.status = UploadStatus.NOT_UPLOADED
        self.progress = 0
        self.error = None
        self.raster_result = None
        self.compressed_image = None
        self.object_key = None
        self._notify()

    def abort(self) -> None:
        """Request an abort; honoured at the next stage boundary."""
        self._abort_requested = True

    def _notify(self) -> None:
        if self._listener is not None:
            self._listener(self)
