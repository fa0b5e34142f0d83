import asyncio
from collections.abc import Callable
from typing import TypeVar

from invoice_ingest.anomaly.detector import AnomalyDetector
from invoice_ingest.anomaly.history import InMemoryInvoiceHistory, InvoiceHistory
from invoice_ingest.categories.suggester import CategorySuggester
from invoice_ingest.database.store import InvoiceStore
from invoice_ingest.extraction.base import BaseInvoiceExtractor
from invoice_ingest.imaging.compressor import ImageCompressor
from invoice_ingest.imaging.exceptions import ImageCompressionError
from invoice_ingest.imaging.models import CompressedImage, CompressionOptions, CompressionStats
from invoice_ingest.logging.logger import Log
from invoice_ingest.pdf.exceptions import PdfRasterizationError
from invoice_ingest.pdf.models import LongImageOptions
from invoice_ingest.pdf.rasterizer import DocumentRasterizer
from invoice_ingest.processor.pipeline import PipelineContext, PipelineStep
from invoice_ingest.processor.record_builder import RecordBuilder
from invoice_ingest.storage.base import BaseObjectStorage
from invoice_ingest.storage.keys import generate_object_key
from invoice_ingest.validation.engine import ValidationEngine

T = TypeVar("T")


def _require(value: T | None, name: str) -> T:
    if value is None:
        raise ValueError(f"{name} must be set before this step")
    return value


class RasterizeStep(PipelineStep):
    name = "rasterize"

    def __init__(self, rasterizer: DocumentRasterizer, options: LongImageOptions) -> None:
        self._rasterizer = rasterizer
        self._options = options

    async def run(self, context: PipelineContext) -> PipelineContext:
        job = context.job
        result = await self._rasterizer.rasterize(job.source_file, self._options)
        if not result.success:
            raise PdfRasterizationError(f"Rasterization of {job.source_file.file_name} failed: {result.error}")
        job.raster_result = result
        Log.info(
            f"Rasterized {job.source_file.file_name}",
            job_id=job.id,
            strategy=result.strategy,
            pages=f"{result.processed_pages}/{result.page_count}",
        )
        return context


class CompressStep(PipelineStep):
    name = "compress"

    def __init__(
        self,
        compressor: ImageCompressor,
        options: CompressionOptions,
        fallback_to_original: bool = False,
    ) -> None:
        self._compressor = compressor
        self._options = options
        self._fallback_to_original = fallback_to_original

    async def run(self, context: PipelineContext) -> PipelineContext:
        job = context.job
        raster = _require(job.raster_result, "UploadJob.raster_result")
        image = raster.image
        if image is None:
            raise ImageCompressionError(f"No raster image to compress for job {job.id}")

        options = self._options
        if raster.strategy.startswith("long-image"):
            options = options.scaled_for_pages(raster.processed_pages)
        try:
            job.compressed_image = await self._compressor.compress(image, options)
        except ImageCompressionError as exc:
            if not self._fallback_to_original:
                raise
            Log.warning(f"Compression failed, using uncompressed image: {exc}", job_id=job.id)
            job.compressed_image = CompressedImage(
                image=image,
                stats=CompressionStats(
                    original_size=image.size,
                    compressed_size=image.size,
                    compression_ratio=0.0,
                    attempts=0,
                    final_quality=1.0,
                ),
            )
        return context


class UploadStep(PipelineStep):
    name = "upload"

    def __init__(
        self,
        storage: BaseObjectStorage,
        key_factory: Callable[[str, str], str] = generate_object_key,
    ) -> None:
        self._storage = storage
        self._key_factory = key_factory

    async def run(self, context: PipelineContext) -> PipelineContext:
        job = context.job
        image = _require(job.compressed_image, "UploadJob.compressed_image").image
        key = self._key_factory(job.user_id, image.file_name)
        stored_key = await self._storage.put_object(key, image.data, image.mime_type)
        job.object_key = stored_key
        Log.info(f"Uploaded as {stored_key}", job_id=job.id)
        return context


class LoadHistoryStep(PipelineStep):
    """Reads the user's history once; later steps share this snapshot."""

    name = "load_history"

    def __init__(self, history: InvoiceHistory) -> None:
        self._history = history

    async def run(self, context: PipelineContext) -> PipelineContext:
        invoices = await asyncio.to_thread(self._history.for_user, context.job.user_id)
        context.history = InMemoryInvoiceHistory(invoices)
        Log.debug(
            f"Loaded {len(invoices)} historical invoices",
            job_id=context.job.id,
            user_id=context.job.user_id,
        )
        return context


class ExtractStep(PipelineStep):
    name = "extract"

    def __init__(self, extractor: BaseInvoiceExtractor) -> None:
        self._extractor = extractor

    async def run(self, context: PipelineContext) -> PipelineContext:
        job = context.job
        compressed = _require(job.compressed_image, "UploadJob.compressed_image")
        context.extracted = await self._extractor.extract([compressed.image])
        return context


class ValidateStep(PipelineStep):
    name = "validate"

    def __init__(self, engine: ValidationEngine) -> None:
        self._engine = engine

    async def run(self, context: PipelineContext) -> PipelineContext:
        extracted = _require(context.extracted, "PipelineContext.extracted")
        known_suppliers: list[str] = []
        if context.history is not None:
            known_suppliers = sorted(
                {
                    invoice.supplier_name
                    for invoice in context.history.for_user(context.job.user_id)
                    if invoice.supplier_name
                }
            )
        context.validation = self._engine.validate(extracted, known_suppliers=known_suppliers)
        Log.info(
            "Validated extracted invoice",
            job_id=context.job.id,
            valid=context.validation.is_valid,
            errors=len(context.validation.errors),
            warnings=len(context.validation.warnings),
        )
        return context


class DetectAnomaliesStep(PipelineStep):
    name = "detect_anomalies"

    def __init__(self, detector: AnomalyDetector) -> None:
        self._detector = detector

    async def run(self, context: PipelineContext) -> PipelineContext:
        extracted = _require(context.extracted, "PipelineContext.extracted")
        history = context.history or InMemoryInvoiceHistory()
        context.anomalies = self._detector.detect(extracted, history, context.job.user_id)
        return context


class SuggestCategoryStep(PipelineStep):
    name = "suggest_category"

    def __init__(self, suggester: CategorySuggester) -> None:
        self._suggester = suggester

    async def run(self, context: PipelineContext) -> PipelineContext:
        extracted = _require(context.extracted, "PipelineContext.extracted")
        past_categories: list[str | None] = []
        if context.history is not None and extracted.supplier_name:
            past_categories = [
                invoice.category
                for invoice in context.history.for_supplier(context.job.user_id, extracted.supplier_name)
            ]
        context.category = self._suggester.suggest(
            extracted.supplier_name,
            extracted.description,
            extracted.suggested_category,
            extracted.category_confidence,
            past_categories,
        )
        Log.info(
            f"Suggested category {context.category.suggested_category} ({context.category.confidence})",
            job_id=context.job.id,
        )
        return context


class PersistStep(PipelineStep):
    name = "persist"

    def __init__(self, store: InvoiceStore, record_builder: RecordBuilder) -> None:
        self._store = store
        self._record_builder = record_builder

    async def run(self, context: PipelineContext) -> PipelineContext:
        job = context.job
        if (
            context.extracted is None
            or context.validation is None
            or context.anomalies is None
            or context.category is None
        ):
            raise ValueError("PipelineContext AI results must be set before persist")
        record = self._record_builder.build(
            job, context.extracted, context.validation, context.anomalies, context.category
        )
        context.record = record
        save = asyncio.ensure_future(asyncio.to_thread(self._store.save, record))
        try:
            job.invoice_id = await asyncio.shield(save)
        except asyncio.CancelledError:
            # The save thread cannot be interrupted; record its outcome first.
            await asyncio.wait([save])
            if not save.cancelled() and save.exception() is None:
                job.invoice_id = save.result()
                Log.warning("Cancelled after invoice was saved", job_id=job.id, invoice_id=job.invoice_id)
            raise
        Log.info(f"Persisted invoice ({record.status})", job_id=job.id, invoice_id=job.invoice_id)
        return context
