from __future__ import annotations

from pathlib import Path

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from uploadsign.config.backend_config import BackendConfig
from uploadsign.credentials.models import DeleteResult, UploadedFile
from uploadsign.errors import ObjectStoreError
from uploadsign.keys.object_key import ObjectKeyGenerator, append_file_extension
from uploadsign.logging_config import get_logger


logger = get_logger(__name__)


class ObjectStore:
    """
    Server-mediated uploads and deletes against an S3-compatible backend.

    The boto3 client is owned by this instance; use it as a context manager
    (or call close()) so the client is released after the operation.
    """

    def __init__(self, config: BackendConfig, key_generator: ObjectKeyGenerator | None = None, client=None):
        self.config = config
        self.key_generator = key_generator or ObjectKeyGenerator(date_format=config.date_format)
        if client is None:
            client_kwargs = {
                "config": Config(signature_version="s3v4"),
                "region_name": config.region,
                "aws_access_key_id": config.access_key,
                "aws_secret_access_key": config.secret_key,
            }
            if config.endpoint:
                client_kwargs["endpoint_url"] = config.endpoint
            client = boto3.client("s3", **client_kwargs)
        self.client = client

    def __enter__(self) -> ObjectStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            close()

    def _new_key(self, file_name: str) -> str:
        return append_file_extension(file_name, self.key_generator.new_key(self.config.key_prefix))

    def _uploaded(self, file_name: str, key: str, size: int | None) -> UploadedFile:
        return UploadedFile(
            file_name=file_name,
            object_key=key,
            file_path=self.config.public_url(key),
            size_bytes=size,
        )

    def upload_file(self, source: Path | str, content_type: str | None = None) -> UploadedFile:
        source = Path(source)
        if not source.is_file():
            raise FileNotFoundError(f"Upload source not found at '{source}'")
        key = self._new_key(source.name)
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            self.client.upload_file(str(source), self.config.bucket, key, ExtraArgs=extra_args)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(f"Error uploading file '{source}' to '{key}': {e}") from e
        logger.info("Uploaded file: source=%s bucket=%s key=%s", source.name, self.config.bucket, key)
        return self._uploaded(source.name, key, source.stat().st_size)

    def upload_bytes(self, data: bytes, file_name: str, content_type: str = "application/octet-stream") -> UploadedFile:
        key = self._new_key(file_name)
        try:
            self.client.put_object(
                Bucket=self.config.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(f"Error putting object {key} to bucket {self.config.bucket}") from e
        logger.info("Uploaded object: file_name=%s bucket=%s key=%s size=%s", file_name, self.config.bucket, key, len(data))
        return self._uploaded(file_name, key, len(data))

    def delete_objects(self, keys: list[str]) -> DeleteResult:
        """
        Delete each key and report exactly which ones failed.
        A missing key counts as deleted, matching S3's idempotent DELETE.
        """
        result = DeleteResult()
        for key in keys:
            try:
                self.client.delete_object(Bucket=self.config.bucket, Key=key)
                result.deleted.append(key)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "Unknown")
                if code in {"404", "NoSuchKey", "NotFound"}:
                    result.deleted.append(key)
                    continue
                result.failed[key] = code
                logger.warning("Failed to delete object: bucket=%s key=%s code=%s", self.config.bucket, key, code)
            except BotoCoreError as e:
                result.failed[key] = type(e).__name__
                logger.warning("Failed to delete object: bucket=%s key=%s", self.config.bucket, key, exc_info=True)
        logger.info("Delete finished: bucket=%s deleted=%s failed=%s", self.config.bucket, len(result.deleted), len(result.failed))
        return result
