"""Turns uploaded documents into raster images ready for compression.

Every public coroutine returns a result object instead of raising: callers
check ``success`` and read ``error`` on failure. Page rendering runs in a
worker thread so the event loop stays free while a job renders.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from pathlib import PurePath

from PIL import Image, ImageDraw

from invoice_ingest.imaging.codec import (
    EXTENSION_BY_FORMAT,
    MIME_BY_FORMAT,
    decode_image,
    encode_image,
    fit_within,
    resize_to,
)
from invoice_ingest.logging.logger import Log
from invoice_ingest.pdf.base import BasePdfRenderer
from invoice_ingest.pdf.exceptions import PdfRasterizationError
from invoice_ingest.pdf.models import (
    LongImageOptions,
    MultiPageOptions,
    PageCountResult,
    RasterImage,
    RasterResult,
    RenderOptions,
    SinglePageOptions,
)
from invoice_ingest.upload.models import SourceFile


class DocumentRasterizer:
    """PDF to image conversion with single-page, multi-page and long-image modes."""

    def __init__(self, renderer: BasePdfRenderer) -> None:
        self._renderer = renderer

    async def page_count(self, pdf_bytes: bytes) -> PageCountResult:
        try:
            count = await asyncio.to_thread(self._renderer.page_count, pdf_bytes)
        except Exception as exc:
            Log.error(f"Failed to count PDF pages: {exc}")
            return PageCountResult(success=False, error=str(exc))
        return PageCountResult(success=True, page_count=count)

    async def convert_page(
        self,
        pdf_bytes: bytes,
        file_name: str,
        options: SinglePageOptions | None = None,
    ) -> RasterResult:
        options = options or SinglePageOptions()
        return await self._guarded(
            lambda: self._convert_page_sync(pdf_bytes, file_name, options), "single-page"
        )

    async def convert_pages(
        self,
        pdf_bytes: bytes,
        file_name: str,
        options: MultiPageOptions | None = None,
    ) -> RasterResult:
        options = options or MultiPageOptions()
        return await self._guarded(
            lambda: self._convert_pages_sync(pdf_bytes, file_name, options), "multi-page"
        )

    async def convert_long_image(
        self,
        pdf_bytes: bytes,
        file_name: str,
        options: LongImageOptions | None = None,
    ) -> RasterResult:
        options = options or LongImageOptions()
        return await self._guarded(
            lambda: self._convert_long_image_sync(pdf_bytes, file_name, options), "long-image"
        )

    async def smart_convert(
        self,
        pdf_bytes: bytes,
        file_name: str,
        options: LongImageOptions | None = None,
    ) -> RasterResult:
        """Pick a strategy from the page count.

        One page renders as a single image, up to ``max_pages`` pages are
        stitched into a long image, anything longer keeps only the first page.
        """
        options = options or LongImageOptions()
        counted = await self.page_count(pdf_bytes)
        if not counted.success:
            return RasterResult.failure(counted.error or "Failed to read PDF", strategy="smart")
        if counted.page_count == 0:
            return RasterResult.failure("PDF has no pages", strategy="smart")

        single = SinglePageOptions(
            scale=options.scale,
            output_format=options.output_format,
            quality=options.quality,
            max_width=options.max_width,
            max_height=options.max_height,
            page_number=1,
        )
        if counted.page_count == 1:
            result = await self.convert_page(pdf_bytes, file_name, single)
            return _with_strategy(result, "single-page")
        if counted.page_count <= options.max_pages:
            result = await self.convert_long_image(pdf_bytes, file_name, options)
            return _with_strategy(result, f"long-image-{counted.page_count}-pages")
        Log.info(
            f"{file_name} has {counted.page_count} pages (limit {options.max_pages}), "
            "using first page only"
        )
        result = await self.convert_page(pdf_bytes, file_name, single)
        return _with_strategy(result, "first-page")

    async def rasterize(
        self,
        source: SourceFile,
        options: LongImageOptions | None = None,
    ) -> RasterResult:
        """Rasterize a PDF, or pass an already-raster upload through untouched."""
        if source.is_pdf:
            return await self.smart_convert(source.data, source.file_name, options)
        return await self._guarded(lambda: self._passthrough_sync(source), "passthrough")

    async def _guarded(self, work: Callable[[], RasterResult], strategy: str) -> RasterResult:
        try:
            return await asyncio.to_thread(work)
        except Exception as exc:
            Log.error(f"Rasterization failed ({strategy}): {exc}")
            return RasterResult.failure(str(exc), strategy=strategy)

    def _convert_page_sync(
        self, pdf_bytes: bytes, file_name: str, options: SinglePageOptions
    ) -> RasterResult:
        total = self._renderer.page_count(pdf_bytes)
        if options.page_number > total:
            return RasterResult.failure(
                f"Page {options.page_number} is out of range (document has {total} pages)",
                page_count=total,
                strategy="single-page",
            )
        page = self._renderer.render_page(pdf_bytes, options.page_number - 1, options.scale)
        page = resize_to(page, fit_within(page.width, page.height, options.max_width, options.max_height))
        image = _encode(page, options, f"{_base_name(file_name)}_page{options.page_number}")
        return RasterResult(
            success=True,
            images=(image,),
            page_count=total,
            processed_pages=1,
            selected_page=options.page_number,
            total_height=image.height,
            strategy="single-page",
        )

    def _convert_pages_sync(
        self, pdf_bytes: bytes, file_name: str, options: MultiPageOptions
    ) -> RasterResult:
        total = self._renderer.page_count(pdf_bytes)
        base = _base_name(file_name)
        images: list[RasterImage] = []
        for index in range(min(total, options.max_pages)):
            page = self._render_or_skip(pdf_bytes, index, options.scale)
            if page is None:
                continue
            page = resize_to(page, fit_within(page.width, page.height, options.max_width, options.max_height))
            images.append(_encode(page, options, f"{base}_page{index + 1}"))
        if not images:
            return RasterResult.failure("No pages could be rendered", page_count=total, strategy="multi-page")
        return RasterResult(
            success=True,
            images=tuple(images),
            page_count=total,
            processed_pages=len(images),
            total_height=sum(image.height for image in images),
            strategy="multi-page",
        )

    def _convert_long_image_sync(
        self, pdf_bytes: bytes, file_name: str, options: LongImageOptions
    ) -> RasterResult:
        total = self._renderer.page_count(pdf_bytes)
        pages: list[Image.Image] = []
        for index in range(min(total, options.max_pages)):
            page = self._render_or_skip(pdf_bytes, index, options.scale)
            if page is None:
                continue
            # Stitched pages are fitted to width only; height grows with page count.
            pages.append(resize_to(page, fit_within(page.width, page.height, options.max_width, page.height)))
        if not pages:
            return RasterResult.failure("No pages could be rendered", page_count=total, strategy="long-image")

        canvas = _stitch(pages, options)
        image = _encode(canvas, options, f"{_base_name(file_name)}_long_{len(pages)}pages")
        Log.info(
            f"Stitched {len(pages)} of {total} pages of {file_name} into a "
            f"{image.width}x{image.height} image"
        )
        return RasterResult(
            success=True,
            images=(image,),
            page_count=total,
            processed_pages=len(pages),
            total_height=canvas.height,
            strategy="long-image",
        )

    def _passthrough_sync(self, source: SourceFile) -> RasterResult:
        decoded = decode_image(source.data)
        image = RasterImage(
            data=source.data,
            width=decoded.width,
            height=decoded.height,
            mime_type=source.mime_type,
            file_name=source.file_name,
        )
        return RasterResult(
            success=True,
            images=(image,),
            page_count=1,
            processed_pages=1,
            total_height=image.height,
            strategy="passthrough",
        )

    def _render_or_skip(self, pdf_bytes: bytes, index: int, scale: float) -> Image.Image | None:
        try:
            return self._renderer.render_page(pdf_bytes, index, scale)
        except PdfRasterizationError as exc:
            Log.warning(f"Skipping page {index + 1}: {exc}")
            return None


def _stitch(pages: list[Image.Image], options: LongImageOptions) -> Image.Image:
    width = max(page.width for page in pages)
    height = sum(page.height for page in pages) + options.page_gap * (len(pages) - 1)
    canvas = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(canvas)
    spacing_above = options.page_spacing // 2
    y = 0
    for index, page in enumerate(pages):
        if index > 0:
            y += spacing_above
            if options.add_page_separator:
                draw.rectangle(
                    (0, y, width - 1, y + options.separator_thickness - 1),
                    fill=options.separator_color,
                )
                y += options.separator_thickness
            y += options.page_spacing - spacing_above
        canvas.paste(page, ((width - page.width) // 2, y))
        y += page.height
    return canvas


def _encode(image: Image.Image, options: RenderOptions, stem: str) -> RasterImage:
    fmt = options.output_format
    return RasterImage(
        data=encode_image(image, fmt, options.quality),
        width=image.width,
        height=image.height,
        mime_type=MIME_BY_FORMAT[fmt],
        file_name=f"{stem}.{EXTENSION_BY_FORMAT[fmt]}",
    )


def _base_name(file_name: str) -> str:
    return PurePath(file_name).stem or "document"


def _with_strategy(result: RasterResult, strategy: str) -> RasterResult:
    if not result.success:
        return result
    return replace(result, strategy=strategy)
