import io
import random

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


def _pdf_with_pages(count: int) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for index in range(count):
        c.drawString(72, 720, f"Tax Invoice page {index + 1}")
        c.drawString(72, 700, "Supplier: Example Office Supplies Pty Ltd")
        c.drawString(72, 680, "Total: $110.00")
        c.showPage()
    c.save()
    return buf.getvalue()


def _image_bytes(image: Image.Image, fmt: str) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


def noisy_image(width: int, height: int, seed: int = 7) -> Image.Image:
    """Random pixels compress badly, which keeps JPEG output large."""
    rng = random.Random(seed)
    return Image.frombytes("RGB", (width, height), rng.randbytes(width * height * 3))


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a single-page letter PDF."""
    return _pdf_with_pages(1)


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    return _pdf_with_pages(3)


@pytest.fixture()
def five_page_pdf_bytes() -> bytes:
    return _pdf_with_pages(5)


@pytest.fixture()
def small_png_bytes() -> bytes:
    """A 200x100 solid PNG."""
    return _image_bytes(Image.new("RGB", (200, 100), (200, 30, 30)), "PNG")


@pytest.fixture()
def transparent_png_bytes() -> bytes:
    return _image_bytes(Image.new("RGBA", (64, 64), (0, 0, 255, 0)), "PNG")


@pytest.fixture()
def noisy_jpeg_bytes() -> bytes:
    """A 1200x900 noisy JPEG, well over 500 KiB at high quality."""
    buf = io.BytesIO()
    noisy_image(1200, 900).save(buf, format="JPEG", quality=95)
    return buf.getvalue()


@pytest.fixture()
def noisy_png_bytes() -> bytes:
    """A 400x300 noisy PNG; JPEG re-encoding makes it much smaller."""
    return _image_bytes(noisy_image(400, 300), "PNG")
