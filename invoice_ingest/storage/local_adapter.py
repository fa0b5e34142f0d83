import asyncio
import os
from pathlib import Path

from invoice_ingest.logging.logger import Log
from invoice_ingest.storage.base import BaseObjectStorage
from invoice_ingest.storage.exceptions import StorageError


class LocalObjectStorage(BaseObjectStorage):
    """Stores objects as files under a root directory. Used for local runs."""

    def __init__(self, root: Path) -> None:
        self._root = root

    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        path = self._resolve(key)
        try:
            await asyncio.to_thread(self._write_atomic, path, data)
        except OSError as exc:
            raise StorageError(f"Local upload of {key} failed: {exc}") from exc
        Log.info(f"Stored {len(data)} bytes ({content_type}) at {path}")
        return key

    async def delete_object(self, key: str) -> None:
        path = self._resolve(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Local delete of {key} failed: {exc}") from exc

    def _resolve(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise StorageError(f"Object key escapes storage root: {key}")
        return path

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        partial = path.with_name(f".{path.name}.part")
        partial.write_bytes(data)
        os.replace(partial, path)
