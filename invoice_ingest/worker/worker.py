import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from invoice_ingest.config.settings import Settings
from invoice_ingest.errors import ErrorCode
from invoice_ingest.logging.logger import Log
from invoice_ingest.upload.job import UploadJob
from invoice_ingest.upload.models import UploadStatus
from invoice_ingest.upload.progress import BulkProgress, calculate_bulk_progress
from invoice_ingest.worker.job_runner import JobRunner


@dataclass(frozen=True)
class JobOutcome:
    job_id: str
    file_name: str
    status: UploadStatus
    invoice_id: str | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None

    @classmethod
    def from_job(cls, job: UploadJob) -> "JobOutcome":
        return cls(
            job_id=job.id,
            file_name=job.source_file.file_name,
            status=job.status,
            invoice_id=job.invoice_id,
            error_code=job.error.code if job.error else None,
            error_message=job.error.message if job.error else None,
        )


@dataclass(frozen=True)
class BatchSummary:
    progress: BulkProgress
    outcomes: tuple[JobOutcome, ...]

    @property
    def all_completed(self) -> bool:
        return all(outcome.status is UploadStatus.COMPLETED for outcome in self.outcomes)


class BatchWorker:
    """Runs a batch of upload jobs with bounded concurrency."""

    def __init__(self, job_runner: JobRunner, settings: Settings) -> None:
        self._job_runner = job_runner
        self._settings = settings

    async def run(self, jobs: Sequence[UploadJob]) -> BatchSummary:
        """Process every job; at most ``max_concurrent_uploads`` run at once.

        Raises:
            ValueError: if the batch holds more than ``max_batch_files`` jobs.
        """
        if len(jobs) > self._settings.max_batch_files:
            raise ValueError(
                f"Batch of {len(jobs)} files exceeds the limit of {self._settings.max_batch_files}"
            )
        Log.info(
            f"Worker started: {len(jobs)} jobs, "
            f"concurrency {self._settings.max_concurrent_uploads}"
        )
        semaphore = asyncio.Semaphore(max(1, self._settings.max_concurrent_uploads))

        async def run_one(job: UploadJob) -> None:
            async with semaphore:
                try:
                    await self._job_runner.run(job)
                except Exception as exc:
                    Log.error(f"Job crashed: {exc!r}", job_id=job.id)

        await asyncio.gather(*(run_one(job) for job in jobs))

        summary = BatchSummary(
            progress=calculate_bulk_progress(jobs),
            outcomes=tuple(JobOutcome.from_job(job) for job in jobs),
        )
        Log.info(
            f"Batch finished: {summary.progress.completed_count}/{summary.progress.total} "
            f"completed, {summary.progress.failed_count} failed"
        )
        return summary
