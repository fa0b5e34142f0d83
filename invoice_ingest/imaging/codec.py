"""Pillow encode/decode helpers shared by the rasterizer and the compressor."""

import io

from PIL import Image

MIME_BY_FORMAT: dict[str, str] = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}
EXTENSION_BY_FORMAT: dict[str, str] = {"jpeg": "jpg", "png": "png", "webp": "webp"}
_PIL_FORMAT: dict[str, str] = {"jpeg": "JPEG", "png": "PNG", "webp": "WEBP"}


def normalize_format(output_format: str) -> str:
    fmt = output_format.lower().removeprefix("image/")
    if fmt == "jpg":
        fmt = "jpeg"
    if fmt not in _PIL_FORMAT:
        raise ValueError(f"Unsupported output format '{output_format}'. Choose from: {list(_PIL_FORMAT)}")
    return fmt


def decode_image(data: bytes) -> Image.Image:
    """Open and fully load an image from bytes.

    Raises:
        PIL.UnidentifiedImageError / OSError: when the bytes are not a readable image.
    """
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def flatten_to_rgb(image: Image.Image, background: str = "white") -> Image.Image:
    """Drop alpha onto a solid background; JPEG has no transparency."""
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, background)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        return canvas
    return image.convert("RGB")


def encode_image(image: Image.Image, output_format: str, quality: float) -> bytes:
    """Encode ``image`` with a 0.0-1.0 quality (ignored for PNG)."""
    fmt = normalize_format(output_format)
    buffer = io.BytesIO()
    if fmt == "png":
        image.save(buffer, format="PNG", optimize=True)
    else:
        pil_quality = max(1, min(100, round(quality * 100)))
        flatten_to_rgb(image).save(buffer, format=_PIL_FORMAT[fmt], quality=pil_quality)
    return buffer.getvalue()


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Aspect-preserving fit; never upscales."""
    ratio = min(max_width / width, max_height / height, 1.0)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def resize_to(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    if image.size == size:
        return image
    return image.resize(size, Image.Resampling.LANCZOS)
