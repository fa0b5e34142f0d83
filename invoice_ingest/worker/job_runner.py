from invoice_ingest.config.settings import Settings
from invoice_ingest.errors import TRANSIENT_CODES
from invoice_ingest.logging.logger import Log
from invoice_ingest.processor.processor import IngestionProcessor
from invoice_ingest.upload.job import UploadJob
from invoice_ingest.upload.models import UploadStatus


class JobRunner:
    """Run one upload job and apply retry logic for transient failures."""

    def __init__(self, processor: IngestionProcessor, settings: Settings) -> None:
        self._processor = processor
        self._settings = settings

    async def run(self, job: UploadJob) -> UploadJob:
        """Process ``job`` until it completes, fails permanently or runs out of attempts."""
        while True:
            Log.info("Running job", job_id=job.id, attempt=job.attempts + 1)
            await self._processor.process(job)
            if job.status is UploadStatus.COMPLETED:
                Log.info("Job completed successfully", job_id=job.id)
                return job
            if not self._should_retry(job):
                Log.error(
                    f"Permanently failed after {job.attempts} attempts",
                    job_id=job.id,
                    code=job.error.code if job.error else "unknown",
                )
                return job
            Log.warning("Job will be retried", job_id=job.id, attempt=job.attempts + 1)
            job.retry()

    def _should_retry(self, job: UploadJob) -> bool:
        if job.error is None or job.error.code not in TRANSIENT_CODES:
            return False
        return job.attempts < self._settings.max_job_attempts
