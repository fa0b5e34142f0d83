from pathlib import Path

import pytest

from invoice_ingest.processor.file_loader import FileLoader, guess_mime_type


class TestGuessMimeType:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("invoice.pdf", "application/pdf"),
            ("scan.PNG", "image/png"),
            ("photo.jpeg", "image/jpeg"),
            ("notes", "application/octet-stream"),
        ],
    )
    def test_guesses_from_extension(self, name: str, expected: str) -> None:
        assert guess_mime_type(Path(name)) == expected


class TestLoad:
    def test_returns_source_file(self, tmp_path: Path) -> None:
        path = tmp_path / "invoice.pdf"
        path.write_bytes(b"%PDF test content")

        source = FileLoader().load(path)

        assert source.file_name == "invoice.pdf"
        assert source.mime_type == "application/pdf"
        assert source.data == b"%PDF test content"
        assert source.is_pdf

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        path = tmp_path / "receipt.jpg"
        path.write_bytes(b"\xff\xd8")

        source = FileLoader().load(str(path))

        assert source.mime_type == "image/jpeg"
        assert not source.is_pdf

    def test_raises_when_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="File not found"):
            FileLoader().load(tmp_path / "missing.pdf")

    def test_raises_for_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            FileLoader().load(tmp_path)
