"""Best-effort image compression towards a byte budget."""

import asyncio
import math
from pathlib import PurePath

from PIL import Image, UnidentifiedImageError

from invoice_ingest.imaging.codec import (
    EXTENSION_BY_FORMAT,
    MIME_BY_FORMAT,
    decode_image,
    encode_image,
    fit_within,
    flatten_to_rgb,
    resize_to,
)
from invoice_ingest.imaging.exceptions import ImageCompressionError
from invoice_ingest.imaging.models import CompressedImage, CompressionOptions, CompressionStats
from invoice_ingest.logging.logger import Log
from invoice_ingest.pdf.models import RasterImage

SMALL_TARGET_THRESHOLD_BYTES = 500 * 1024
QUALITY_REDUCTION_FACTOR = 0.8
MIN_QUALITY = 0.1


def target_dimensions(width: int, height: int, options: CompressionOptions) -> tuple[int, int]:
    """Fit within the max box, then pre-shrink when the byte target is small."""
    fitted_width, fitted_height = fit_within(width, height, options.max_width, options.max_height)
    target = options.target_size_bytes
    if target is not None and target < SMALL_TARGET_THRESHOLD_BYTES:
        factor = math.sqrt(target / SMALL_TARGET_THRESHOLD_BYTES)
        fitted_width = max(1, round(fitted_width * factor))
        fitted_height = max(1, round(fitted_height * factor))
    return fitted_width, fitted_height


class ImageCompressor:
    """Re-encodes images at decreasing quality until they fit a target size.

    Quality starts at ``options.quality`` and is multiplied by 0.8 (floor 0.1)
    after every attempt that is still over budget. When attempts run out the
    smallest encoding seen is returned; only unreadable input or an encoder
    error raises.
    """

    def __init__(self, default_options: CompressionOptions | None = None) -> None:
        self._default_options = default_options or CompressionOptions()

    @property
    def default_options(self) -> CompressionOptions:
        return self._default_options

    async def compress(
        self,
        image: RasterImage,
        options: CompressionOptions | None = None,
    ) -> CompressedImage:
        options = options or self._default_options
        result = await asyncio.to_thread(self._compress_sync, image, options)
        Log.info(
            f"Compressed {image.file_name}: {result.stats.original_size} -> "
            f"{result.stats.compressed_size} bytes in {result.stats.attempts} attempt(s)"
        )
        return result

    def _compress_sync(self, image: RasterImage, options: CompressionOptions) -> CompressedImage:
        original_size = image.size
        try:
            decoded = decode_image(image.data)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise ImageCompressionError(f"Failed to load image {image.file_name}: {exc}") from exc

        target = options.target_size_bytes
        if target is not None and original_size <= target:
            # Within budget: no pre-shrink, and the original stays unless one re-encode is smaller.
            size = fit_within(decoded.width, decoded.height, options.max_width, options.max_height)
            prepared = resize_to(self._prepare(decoded, options.output_format), size)
            return self._keep_if_smaller(image, prepared, options)

        size = target_dimensions(decoded.width, decoded.height, options)
        prepared = resize_to(self._prepare(decoded, options.output_format), size)

        quality = options.quality
        best: bytes | None = None
        best_quality = quality
        attempts = 0
        while attempts < options.max_attempts:
            attempts += 1
            encoded = self._encode(prepared, options.output_format, quality, image.file_name)
            if best is None or len(encoded) < len(best):
                best, best_quality = encoded, quality
            if target is None or len(encoded) <= target:
                break
            Log.debug(
                f"Attempt {attempts}: {len(encoded)} bytes at quality {quality:.2f} "
                f"exceeds target {target}"
            )
            quality = max(MIN_QUALITY, quality * QUALITY_REDUCTION_FACTOR)

        assert best is not None
        if target is not None and len(best) > target:
            Log.warning(
                f"Could not compress {image.file_name} below {target} bytes "
                f"after {attempts} attempts; best was {len(best)} bytes"
            )
        return CompressedImage(
            image=self._build_image(image, best, prepared, options.output_format),
            stats=_stats(original_size, len(best), attempts, best_quality),
        )

    def _keep_if_smaller(
        self, image: RasterImage, prepared: Image.Image, options: CompressionOptions
    ) -> CompressedImage:
        encoded = self._encode(prepared, options.output_format, options.quality, image.file_name)
        if len(encoded) < image.size:
            return CompressedImage(
                image=self._build_image(image, encoded, prepared, options.output_format),
                stats=_stats(image.size, len(encoded), 1, options.quality),
            )
        return CompressedImage(image=image, stats=_stats(image.size, image.size, 1, options.quality))

    @staticmethod
    def _prepare(decoded: Image.Image, output_format: str) -> Image.Image:
        if output_format == "png":
            return decoded if decoded.mode in ("RGB", "RGBA", "L", "LA", "P") else decoded.convert("RGBA")
        return flatten_to_rgb(decoded)

    @staticmethod
    def _encode(prepared: Image.Image, output_format: str, quality: float, file_name: str) -> bytes:
        try:
            return encode_image(prepared, output_format, quality)
        except (OSError, ValueError) as exc:
            raise ImageCompressionError(f"Failed to compress image {file_name}: {exc}") from exc

    @staticmethod
    def _build_image(
        original: RasterImage, data: bytes, prepared: Image.Image, output_format: str
    ) -> RasterImage:
        stem = PurePath(original.file_name).stem or "image"
        return RasterImage(
            data=data,
            width=prepared.width,
            height=prepared.height,
            mime_type=MIME_BY_FORMAT[output_format],
            file_name=f"{stem}.{EXTENSION_BY_FORMAT[output_format]}",
        )


def _stats(original_size: int, compressed_size: int, attempts: int, quality: float) -> CompressionStats:
    ratio = (original_size - compressed_size) / original_size * 100 if original_size else 0.0
    return CompressionStats(
        original_size=original_size,
        compressed_size=compressed_size,
        compression_ratio=round(ratio, 2),
        attempts=attempts,
        final_quality=round(quality, 4),
    )
