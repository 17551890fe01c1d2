"""Object store access used by the selector and the pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Mapping, Optional, Protocol, Sequence

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import RunConfig
from .errors import DownloadFailure, StorageError, UploadFailure
from .models import ContainerRef, StoredObject
from .utils import detect_mime_type, matches_any

logger = logging.getLogger("imgsqueeze")

S3_MAX_RETRIES = 3

# HeadObject fields that PutObject accepts under the same name; a replace
# sends them back so only the body and the marker change.
PRESERVED_HEADERS = (
    "CacheControl",
    "ContentDisposition",
    "ContentEncoding",
    "ContentLanguage",
    "ContentType",
    "StorageClass",
    "ServerSideEncryption",
    "SSEKMSKeyId",
    "WebsiteRedirectLocation",
)


class ObjectStore(Protocol):
    """Minimal surface the optimizer needs from a remote store."""

    def list(
        self, container: ContainerRef, patterns: Sequence[str]
    ) -> Iterator[StoredObject]: ...

    def get(self, container: ContainerRef, name: str, destination: Path) -> None: ...

    def put(
        self,
        container: ContainerRef,
        name: str,
        source: Path,
        metadata: Mapping[str, str],
        overwrite: bool = True,
        if_match: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None: ...


def resolve_container(config: RunConfig) -> ContainerRef:
    """Turn run configuration into the container the batch operates on."""
    if not config.bucket:
        raise StorageError("A bucket name is required")
    prefix = config.prefix.lstrip("/")
    return ContainerRef(bucket=config.bucket, prefix=prefix)


class S3ObjectStore:
    """``ObjectStore`` backed by an S3-compatible service via boto3."""

    def __init__(self, client) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: RunConfig) -> "S3ObjectStore":
        try:
            session = boto3.session.Session(
                profile_name=config.profile, region_name=config.region
            )
            client = session.client(
                "s3",
                endpoint_url=config.endpoint_url,
                config=BotoConfig(
                    retries={"max_attempts": S3_MAX_RETRIES, "mode": "standard"}
                ),
            )
        except BotoCoreError as exc:
            raise StorageError(f"Unable to create an S3 client: {exc}") from exc
        return cls(client)

    def list(
        self, container: ContainerRef, patterns: Sequence[str]
    ) -> Iterator[StoredObject]:
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(
                Bucket=container.bucket, Prefix=container.prefix
            ):
                for entry in page.get("Contents", []):
                    key = entry["Key"]
                    if not matches_any(key, patterns):
                        continue
                    head = self._head(container, key)
                    if head is None:
                        continue
                    yield StoredObject(
                        name=key,
                        size=int(entry.get("Size", head.get("ContentLength", 0))),
                        metadata=dict(head.get("Metadata", {})),
                        etag=head.get("ETag", entry.get("ETag")),
                        headers={
                            field: head[field]
                            for field in PRESERVED_HEADERS
                            if head.get(field)
                        },
                    )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(
                f"Failed to list s3://{container.bucket}/{container.prefix}: {exc}"
            ) from exc

    def _head(self, container: ContainerRef, key: str) -> Optional[dict]:
        """Fetch one object's headers; None when that object cannot be read."""
        try:
            return self._client.head_object(Bucket=container.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in ("404", "NoSuchKey", "NotFound"):
                logger.warning("Skipping s3://%s/%s: deleted while listing", container.bucket, key)
            else:
                logger.warning("Skipping s3://%s/%s: %s", container.bucket, key, exc)
            return None

    def get(self, container: ContainerRef, name: str, destination: Path) -> None:
        logger.debug("Downloading s3://%s/%s to %s", container.bucket, name, destination)
        try:
            self._client.download_file(container.bucket, name, str(destination))
        except (BotoCoreError, ClientError, Boto3Error, OSError) as exc:
            raise DownloadFailure(
                f"Failed to download s3://{container.bucket}/{name}: {exc}"
            ) from exc

    def put(
        self,
        container: ContainerRef,
        name: str,
        source: Path,
        metadata: Mapping[str, str],
        overwrite: bool = True,
        if_match: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        extra = {
            field: value
            for field, value in (headers or {}).items()
            if field in PRESERVED_HEADERS
        }
        if "ContentType" not in extra:
            extra["ContentType"] = detect_mime_type(source) or "application/octet-stream"
        if if_match:
            extra["IfMatch"] = if_match
        elif not overwrite:
            extra["IfNoneMatch"] = "*"
        logger.debug("Uploading %s to s3://%s/%s", source, container.bucket, name)
        try:
            with source.open("rb") as body:
                self._client.put_object(
                    Bucket=container.bucket,
                    Key=name,
                    Body=body,
                    Metadata=dict(metadata),
                    **extra,
                )
        except (BotoCoreError, ClientError, OSError) as exc:
            raise UploadFailure(
                f"Failed to upload s3://{container.bucket}/{name}: {exc}"
            ) from exc
