import asyncio
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from invoice_ingest.logging.logger import Log
from invoice_ingest.storage.base import BaseObjectStorage
from invoice_ingest.storage.exceptions import StorageError


class S3ObjectStorage(BaseObjectStorage):
    """Stores objects in an S3 (or S3-compatible) bucket via boto3."""

    def __init__(
        self,
        *,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client: Any | None = None,
    ) -> None:
        if not bucket:
            raise ValueError("s3_bucket is required for storage_backend=s3")
        self._bucket = bucket
        if client is None:
            kwargs: dict[str, Any] = {"region_name": region}
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            if access_key_id and secret_access_key:
                kwargs["aws_access_key_id"] = access_key_id
                kwargs["aws_secret_access_key"] = secret_access_key
            client = boto3.client("s3", **kwargs)
        self._client = client

    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 upload of {key} failed: {exc}") from exc
        Log.info(f"Uploaded {len(data)} bytes to s3://{self._bucket}/{key}")
        return key

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 delete of {key} failed: {exc}") from exc
