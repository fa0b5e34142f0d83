import re
from dataclasses import dataclass, field

from invoice_ingest.imaging.codec import normalize_format

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class RasterImage:
    """Encoded raster image plus its pixel size."""

    data: bytes
    width: int
    height: int
    mime_type: str
    file_name: str

    @property
    def size(self) -> int:
        return len(self.data)


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class RenderOptions:
    scale: float = 2.0
    output_format: str = "jpeg"
    quality: float = 0.9
    max_width: int = 1920
    max_height: int = 1080

    def __post_init__(self) -> None:
        _check_range("scale", self.scale, 0.1, 10)
        _check_range("quality", self.quality, 0.1, 1.0)
        _check_range("max_width", self.max_width, 100, 4000)
        _check_range("max_height", self.max_height, 100, 4000)
        object.__setattr__(self, "output_format", normalize_format(self.output_format))


@dataclass(frozen=True)
class SinglePageOptions(RenderOptions):
    page_number: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {self.page_number}")


@dataclass(frozen=True)
class MultiPageOptions(RenderOptions):
    max_pages: int = 3

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_range("max_pages", self.max_pages, 1, 20)


@dataclass(frozen=True)
class LongImageOptions(RenderOptions):
    max_pages: int = 3
    page_spacing: int = 20
    add_page_separator: bool = True
    separator_color: str = "#e0e0e0"
    separator_thickness: int = 2

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_range("max_pages", self.max_pages, 1, 10)
        _check_range("page_spacing", self.page_spacing, 0, 100)
        _check_range("separator_thickness", self.separator_thickness, 1, 10)
        if not _HEX_COLOR.match(self.separator_color):
            raise ValueError(
                f"separator_color must be a #RRGGBB hex color, got {self.separator_color!r}"
            )

    @property
    def page_gap(self) -> int:
        """Vertical pixels inserted between two consecutive pages."""
        separator = self.separator_thickness if self.add_page_separator else 0
        return self.page_spacing + separator


@dataclass(frozen=True)
class RasterResult:
    """Outcome of a rasterizer call. Check ``success`` before anything else."""

    success: bool
    images: tuple[RasterImage, ...] = field(default_factory=tuple)
    page_count: int = 0
    processed_pages: int = 0
    selected_page: int | None = None
    total_height: int = 0
    strategy: str = ""
    error: str | None = None

    @property
    def image(self) -> RasterImage | None:
        return self.images[0] if self.images else None

    @classmethod
    def failure(cls, error: str, page_count: int = 0, strategy: str = "") -> "RasterResult":
        return cls(success=False, page_count=page_count, strategy=strategy, error=error)


@dataclass(frozen=True)
class PageCountResult:
    success: bool
    page_count: int = 0
    error: str | None = None
