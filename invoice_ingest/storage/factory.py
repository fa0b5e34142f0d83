from pathlib import Path

from invoice_ingest.config.settings import Settings
from invoice_ingest.storage.base import BaseObjectStorage
from invoice_ingest.storage.local_adapter import LocalObjectStorage
from invoice_ingest.storage.s3_adapter import S3ObjectStorage


class ObjectStorageFactory:
    """Creates the configured object storage backend."""

    BACKENDS = ("local", "s3")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStorage:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalObjectStorage(Path(settings.storage_local_root))
        if backend == "s3":
            return S3ObjectStorage(
                bucket=settings.s3_bucket,
                region=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url,
                access_key_id=settings.aws_access_key_id,
                secret_access_key=settings.aws_secret_access_key,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
