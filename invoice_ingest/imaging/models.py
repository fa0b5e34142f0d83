from dataclasses import dataclass

from invoice_ingest.imaging.codec import normalize_format
from invoice_ingest.pdf.models import RasterImage


@dataclass(frozen=True)
class CompressionOptions:
    target_size_bytes: int | None = 1024 * 1024
    quality: float = 0.8
    max_width: int = 1920
    max_height: int = 1080
    max_attempts: int = 5
    output_format: str = "jpeg"

    def __post_init__(self) -> None:
        if self.target_size_bytes is not None and self.target_size_bytes <= 0:
            raise ValueError("target_size_bytes must be positive")
        if not 0.1 <= self.quality <= 1.0:
            raise ValueError(f"quality must be between 0.1 and 1.0, got {self.quality}")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.max_width < 1 or self.max_height < 1:
            raise ValueError("max_width and max_height must be positive")
        object.__setattr__(self, "output_format", normalize_format(self.output_format))

    def scaled_for_pages(self, pages: int) -> "CompressionOptions":
        """Budget for a stitched image: size and height grow with page count."""
        if pages <= 1:
            return self
        return CompressionOptions(
            target_size_bytes=(
                self.target_size_bytes * pages if self.target_size_bytes is not None else None
            ),
            quality=self.quality,
            max_width=self.max_width,
            max_height=self.max_height * pages,
            max_attempts=self.max_attempts,
            output_format=self.output_format,
        )


@dataclass(frozen=True)
class CompressionStats:
    original_size: int
    compressed_size: int
    compression_ratio: float
    attempts: int
    final_quality: float


@dataclass(frozen=True)
class CompressedImage:
    image: RasterImage
    stats: CompressionStats
