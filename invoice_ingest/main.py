import argparse
import asyncio
from collections.abc import Sequence

from invoice_ingest.config.settings import Settings
from invoice_ingest.database.connection import close_pool, init_pool
from invoice_ingest.logging.logger import Log
from invoice_ingest.processor.file_loader import FileLoader
from invoice_ingest.processor.processor import build_processor
from invoice_ingest.upload.job import UploadJob
from invoice_ingest.worker.job_runner import JobRunner
from invoice_ingest.worker.worker import BatchSummary, BatchWorker


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Ingest invoice PDFs and images for a user")
    p.add_argument("--user-id", required=True, help="owner of the uploaded invoices")
    p.add_argument("files", nargs="+", help="PDF, JPG or PNG files to ingest")
    return p.parse_args(argv)


def log_progress(job: UploadJob) -> None:
    Log.debug(f"Job {job.id} {job.status} {job.progress}%")


async def run_batch(settings: Settings, user_id: str, paths: Sequence[str]) -> BatchSummary:
    loader = FileLoader()
    jobs = [UploadJob(user_id, loader.load(path), listener=log_progress) for path in paths]
    processor = build_processor(settings)
    worker = BatchWorker(JobRunner(processor, settings), settings)
    return await worker.run(jobs)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse args -> initialize pool -> run the batch -> report."""
    args = parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    uses_database = settings.persistence_backend.lower() == "postgres"
    if uses_database:
        init_pool(settings)

    try:
        summary = asyncio.run(run_batch(settings, args.user_id, args.files))
    finally:
        if uses_database:
            close_pool()

    for outcome in summary.outcomes:
        if outcome.invoice_id:
            Log.info(f"{outcome.file_name}: {outcome.status} invoice={outcome.invoice_id}")
        else:
            Log.error(f"{outcome.file_name}: {outcome.status} {outcome.error_code}: {outcome.error_message}")
    return 0 if summary.all_completed else 1


if __name__ == "__main__":
    raise SystemExit(main())
