import asyncio
from dataclasses import dataclass

from invoice_ingest.anomaly.detector import AnomalyDetector
from invoice_ingest.categories.suggester import CategorySuggester
from invoice_ingest.config.settings import Settings
from invoice_ingest.database.repositories.invoice_repository import InvoiceRepository
from invoice_ingest.database.repositories.memory_repository import InMemoryInvoiceStore
from invoice_ingest.database.store import InvoiceStore
from invoice_ingest.errors import ErrorCode, IngestError
from invoice_ingest.extraction.factory import ExtractorFactory
from invoice_ingest.imaging.compressor import ImageCompressor
from invoice_ingest.imaging.models import CompressionOptions
from invoice_ingest.logging.logger import Log
from invoice_ingest.pdf.factory import PdfRendererFactory
from invoice_ingest.pdf.models import LongImageOptions
from invoice_ingest.pdf.rasterizer import DocumentRasterizer
from invoice_ingest.processor.pipeline import PipelineContext, PipelineStep
from invoice_ingest.processor.record_builder import RecordBuilder
from invoice_ingest.processor.steps import (
    CompressStep,
    DetectAnomaliesStep,
    ExtractStep,
    LoadHistoryStep,
    PersistStep,
    RasterizeStep,
    SuggestCategoryStep,
    UploadStep,
    ValidateStep,
)
from invoice_ingest.storage.base import BaseObjectStorage
from invoice_ingest.storage.exceptions import StorageError
from invoice_ingest.storage.factory import ObjectStorageFactory
from invoice_ingest.upload.admission import validate_source_file
from invoice_ingest.upload.job import UploadJob
from invoice_ingest.upload.models import UploadStatus
from invoice_ingest.upload.state_machine import InvalidStatusTransitionError
from invoice_ingest.validation.engine import ValidationEngine

# Code used for unexpected exceptions, by the stage they escaped from.
_STAGE_FAILURE_CODES: dict[UploadStatus, ErrorCode] = {
    UploadStatus.NOT_UPLOADED: ErrorCode.INVALID_FILE_TYPE,
    UploadStatus.PROCESSING_PDF: ErrorCode.PDF_PROCESSING_FAILED,
    UploadStatus.COMPRESSING_IMAGE: ErrorCode.IMAGE_COMPRESSION_FAILED,
    UploadStatus.UPLOADING_TO_S3: ErrorCode.UPLOAD_FAILED,
    UploadStatus.AI_PROCESSING: ErrorCode.AI_EXTRACTION_FAILED,
}


class UploadAbortedError(IngestError):
    default_code = ErrorCode.ABORTED


@dataclass(frozen=True)
class Stage:
    status: UploadStatus
    steps: tuple[PipelineStep, ...]


class IngestionProcessor:
    """Drives one upload job through every stage.

    PDF:    PROCESSING_PDF -> COMPRESSING_IMAGE -> UPLOADING_TO_S3 -> AI_PROCESSING -> COMPLETED
    Raster: COMPRESSING_IMAGE -> UPLOADING_TO_S3 -> AI_PROCESSING -> COMPLETED

    Any failure ends the attempt in FAILED with an error code; the stored
    object is removed when no invoice was persisted for it.
    """

    def __init__(
        self,
        *,
        rasterize: RasterizeStep,
        compress: CompressStep,
        upload: UploadStep,
        ai_steps: list[PipelineStep],
        storage: BaseObjectStorage,
        max_file_size_bytes: int,
    ) -> None:
        self._rasterize = rasterize
        self._compress = compress
        self._upload = upload
        self._ai_steps = tuple(ai_steps)
        self._storage = storage
        self._max_file_size_bytes = max_file_size_bytes

    def stages_for(self, job: UploadJob) -> list[Stage]:
        if job.source_file.is_pdf:
            stages = [
                Stage(UploadStatus.PROCESSING_PDF, (self._rasterize,)),
                Stage(UploadStatus.COMPRESSING_IMAGE, (self._compress,)),
            ]
        else:
            stages = [Stage(UploadStatus.COMPRESSING_IMAGE, (self._rasterize, self._compress))]
        stages.append(Stage(UploadStatus.UPLOADING_TO_S3, (self._upload,)))
        stages.append(Stage(UploadStatus.AI_PROCESSING, self._ai_steps))
        return stages

    async def process(self, job: UploadJob) -> PipelineContext:
        """Run one attempt of ``job``. The job ends COMPLETED or FAILED.

        Raises:
            asyncio.CancelledError: after the job is marked FAILED/ABORTED,
                or COMPLETED when its invoice was already saved.
            InvalidStatusTransitionError: if the job is not in NOT_UPLOADED.
        """
        job.start_attempt()
        context = PipelineContext(job=job)
        Log.info(
            f"Processing {job.source_file.file_name} ({job.source_file.size} bytes)",
            job_id=job.id,
            attempt=job.attempts,
        )
        try:
            validate_source_file(job.source_file, self._max_file_size_bytes)
            for stage in self.stages_for(job):
                self._check_abort(job)
                job.transition_to(stage.status)
                await self._run_stage(stage, context)
            job.transition_to(UploadStatus.COMPLETED)
            Log.info("Job completed", job_id=job.id, invoice_id=job.invoice_id)
        except IngestError as exc:
            Log.error(f"Failed in {job.status}: {exc}", job_id=job.id, code=exc.code)
            job.fail(exc.code)
        except asyncio.CancelledError:
            if job.invoice_id is not None:
                # The record is committed, so the attempt counts as done.
                job.transition_to(UploadStatus.COMPLETED)
                Log.warning(
                    "Cancelled after persisting, job completed",
                    job_id=job.id,
                    invoice_id=job.invoice_id,
                )
                raise
            Log.warning(f"Cancelled in {job.status}", job_id=job.id)
            job.fail(ErrorCode.ABORTED)
            await self._discard_orphan(job)
            raise
        except InvalidStatusTransitionError:
            raise
        except Exception as exc:
            code = _STAGE_FAILURE_CODES.get(job.status, ErrorCode.AI_EXTRACTION_FAILED)
            Log.error(f"Unexpected failure in {job.status}: {exc!r}", job_id=job.id, code=code)
            job.fail(code)

        if job.status is UploadStatus.FAILED:
            await self._discard_orphan(job)
        return context

    async def _run_stage(self, stage: Stage, context: PipelineContext) -> None:
        job = context.job
        total = len(stage.steps)
        for index, step in enumerate(stage.steps, start=1):
            self._check_abort(job)
            Log.debug(f"{stage.status} -> {step.name}", job_id=job.id)
            context = await step.run(context)
            job.report_progress(index / total * 100)

    @staticmethod
    def _check_abort(job: UploadJob) -> None:
        if job.abort_requested:
            raise UploadAbortedError(f"Job {job.id} aborted in {job.status}")

    async def _discard_orphan(self, job: UploadJob) -> None:
        if job.object_key is None or job.invoice_id is not None:
            return
        try:
            await self._storage.delete_object(job.object_key)
            Log.info(f"Removed stored object {job.object_key}", job_id=job.id)
        except StorageError as exc:
            Log.warning(f"Could not remove stored object {job.object_key}: {exc}", job_id=job.id)


def build_store(settings: Settings) -> InvoiceStore:
    backend = settings.persistence_backend.lower()
    if backend == "memory":
        return InMemoryInvoiceStore()
    if backend == "postgres":
        return InvoiceRepository()
    raise ValueError(f"Unknown persistence backend '{backend}'. Choose from: ['postgres', 'memory']")


def build_processor(
    settings: Settings,
    store: InvoiceStore | None = None,
    storage: BaseObjectStorage | None = None,
) -> IngestionProcessor:
    """Build an IngestionProcessor with all configured adapters."""
    store = store if store is not None else build_store(settings)
    storage = storage if storage is not None else ObjectStorageFactory.create(settings)

    rasterizer = DocumentRasterizer(PdfRendererFactory.create(settings))
    long_image_options = LongImageOptions(
        scale=settings.pdf_scale,
        quality=settings.pdf_output_quality,
        max_width=settings.pdf_max_width,
        max_height=settings.pdf_max_height,
        max_pages=settings.pdf_max_pages,
        page_spacing=settings.pdf_page_spacing,
        add_page_separator=settings.pdf_add_page_separator,
        separator_color=settings.pdf_separator_color,
        separator_thickness=settings.pdf_separator_thickness,
    )
    compression_options = CompressionOptions(
        target_size_bytes=settings.compression_target_bytes,
        quality=settings.compression_quality,
        max_width=settings.compression_max_width,
        max_height=settings.compression_max_height,
        max_attempts=settings.compression_max_attempts,
    )
    detector = AnomalyDetector(
        duplicate_window_days=settings.anomaly_duplicate_window_days,
        spike_factor=settings.anomaly_amount_spike_factor,
        min_history=settings.anomaly_min_history,
        old_date_days=settings.anomaly_old_date_days,
        supplier_similarity=settings.anomaly_supplier_similarity,
    )
    return IngestionProcessor(
        rasterize=RasterizeStep(rasterizer, long_image_options),
        compress=CompressStep(
            ImageCompressor(compression_options),
            compression_options,
            fallback_to_original=settings.compression_fallback_to_original,
        ),
        upload=UploadStep(storage),
        ai_steps=[
            LoadHistoryStep(store),
            ExtractStep(ExtractorFactory.create(settings)),
            ValidateStep(ValidationEngine(settings.anomaly_supplier_similarity)),
            DetectAnomaliesStep(detector),
            SuggestCategoryStep(CategorySuggester()),
            PersistStep(store, RecordBuilder()),
        ],
        storage=storage,
        max_file_size_bytes=settings.max_file_size_bytes,
    )
