import mimetypes
from pathlib import Path

from invoice_ingest.upload.models import SourceFile

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or DEFAULT_MIME_TYPE


class FileLoader:
    """Reads a file from disk into a SourceFile ready for an upload job."""

    def load(self, path: Path | str) -> SourceFile:
        """Read file bytes and guess the MIME type from the extension.

        Raises:
            FileNotFoundError: if nothing exists at ``path``.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return SourceFile(
            file_name=path.name,
            mime_type=guess_mime_type(path),
            data=path.read_bytes(),
        )
