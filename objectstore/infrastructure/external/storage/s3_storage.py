"""S3-compatible record storage (AWS S3, MinIO, etc.) with secret-keyed placement."""

from __future__ import annotations

import asyncio
import hashlib
import tempfile
from collections.abc import AsyncIterable, AsyncIterator
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import ClientError

from objectstore.core.constants import DEFAULT_SNIFF_BYTES
from objectstore.domain.entities import ListPage, ObjectRecord
from objectstore.infrastructure.exceptions import (
    StorageAlreadyExistsError,
    StorageCorruptedError,
    StorageDeleteError,
    StorageDownloadError,
    StorageException,
    StorageUploadError,
)
from objectstore.infrastructure.external.storage.base import BaseStorageService
from objectstore.infrastructure.external.storage.placement import RecordPlacement
from objectstore.infrastructure.external.storage.record_codec import (
    decode_metadata,
    encode_metadata,
)
from objectstore.shared.telemetry.logging import get_logger
from objectstore.shared.utils.datetime import utc_now
from objectstore.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from objectstore.application.services.type_registry import TypeRegistry

logger = get_logger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
# Spill uploads to disk past this size instead of buffering in memory.
_SPOOL_MAX_SIZE = 8 * 1024 * 1024


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES


class S3ContentStream:
    """Restartable reader over one S3 object; each iteration issues a fresh GET."""

    def __init__(self, client: Any, bucket: str, key: str, chunk_size: int) -> None:
        self._client = client
        self.bucket = bucket
        self.key = key
        self.chunk_size = chunk_size

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        def _get() -> Any:
            return self._client.get_object(Bucket=self.bucket, Key=self.key)["Body"]

        try:
            body = await asyncio.to_thread(_get)
        except Exception as e:
            raise StorageDownloadError(self.key, str(e)) from e
        try:
            while True:
                try:
                    chunk = await asyncio.to_thread(body.read, self.chunk_size)
                except Exception as e:
                    raise StorageDownloadError(self.key, str(e)) from e
                if not chunk:
                    break
                yield chunk
        finally:
            body.close()

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self])

    def __repr__(self) -> str:
        return f"S3ContentStream({self.key!r})"


class S3StorageService(BaseStorageService):
    """S3-compatible storage with server-side encryption.

    Uses boto3 (sync) via asyncio.to_thread for async API. Keys mirror the
    local layout: <namespace prefix>/<fan-out>/<key>.meta.json, with content
    under <key>.<revision>.data so a replacement never overwrites live bytes.
    """

    def __init__(
        self,
        bucket: str,
        secret: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        types: TypeRegistry | None = None,
        default_limit: int = 10,
        max_limit: int = 100,
        chunk_size: int | None = None,
        sniff_bytes: int = DEFAULT_SNIFF_BYTES,
        client: Any | None = None,
    ) -> None:
        """Initialize S3 client.

        Args:
            bucket: Bucket name.
            secret: Key for record placement; never sent to S3.
            region: AWS region.
            endpoint_url: Custom endpoint (MinIO/Spaces).
            access_key: Optional; uses env/IAM if not set.
            secret_key: Optional.
            types: Type registry shared by Models on this store.
            default_limit: Page size when list() gets no limit.
            max_limit: Upper bound for list() page size.
            chunk_size: Download chunk size in bytes.
            sniff_bytes: Leading bytes Models hand to the content sniffer.
            client: Preconfigured boto3-compatible client.
        """
        super().__init__(
            secret, types, default_limit, max_limit, chunk_size, sniff_bytes
        )
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        if client is None:
            extra = {} if endpoint_url is None else {"endpoint_url": endpoint_url}
            client = boto3.client(
                "s3",
                region_name=region,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                **extra,
            )
        self._client = client

    def _head_exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise

    def _read_document_sync(self, key: str) -> dict[str, Any] | None:
        try:
            resp = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise StorageDownloadError(key, str(e)) from e
        body = resp["Body"]
        try:
            raw = body.read()
        finally:
            body.close()
        try:
            return decode_metadata(raw)
        except ValueError as e:
            raise StorageCorruptedError(key, str(e)) from e

    def _write_document_sync(self, key: str, document: dict[str, Any]) -> None:
        try:
            text = encode_metadata(document)
        except TypeError as e:
            raise StorageUploadError(key, str(e)) from e
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=text.encode("utf-8"),
            ContentType="application/json",
            ServerSideEncryption="AES256",
        )

    async def _read_document(self, key: str) -> dict[str, Any] | None:
        try:
            return await asyncio.to_thread(self._read_document_sync, key)
        except StorageException:
            raise
        except Exception as e:
            raise StorageDownloadError(key, str(e)) from e

    async def _write_document(self, key: str, document: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._write_document_sync, key, document)
        except StorageException:
            raise
        except Exception as e:
            raise StorageUploadError(key, str(e)) from e

    async def _upload_content(
        self, key: str, chunks: AsyncIterable[bytes]
    ) -> tuple[int, str]:
        """Spool chunks (memory, then disk) and upload. Returns (size, sha256)."""
        sha256 = hashlib.sha256()
        size = 0
        with tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_SIZE) as spool:
            async for chunk in chunks:
                sha256.update(chunk)
                size += len(chunk)
                await asyncio.to_thread(spool.write, chunk)
            await asyncio.to_thread(spool.seek, 0)
            checksum = sha256.hexdigest()

            def _upload() -> None:
                self._client.upload_fileobj(
                    spool,
                    self.bucket,
                    key,
                    ExtraArgs={
                        "ServerSideEncryption": "AES256",
                        "Metadata": {"sha256": checksum},
                    },
                )

            try:
                await asyncio.to_thread(_upload)
            except Exception as e:
                raise StorageUploadError(key, str(e)) from e
        return size, checksum

    async def _delete_key(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self.bucket, Key=key
            )
        except Exception as e:
            raise StorageDeleteError(key, str(e)) from e

    @staticmethod
    def _content_key(ref: str, document: dict[str, Any]) -> str:
        """Key of the content revision the sidecar points at."""
        revision = document.get("revision")
        suffix = RecordPlacement.CONTENT_SUFFIX
        return f"{ref}.{revision}{suffix}" if revision else ref + suffix

    def _to_record(self, ref: str, document: dict[str, Any]) -> ObjectRecord:
        data_key = self._content_key(ref, document)
        stream = (
            S3ContentStream(self._client, self.bucket, data_key, self.chunk_size)
            if document.get("has_data")
            else None
        )
        return self._record_from_document(data_key, document, stream)

    async def create(
        self,
        namespace: str,
        object_id: str,
        metadata: dict[str, Any],
        data: AsyncIterable[bytes] | None = None,
    ) -> ObjectRecord:
        ref = self.placement.record_ref(namespace, object_id)
        meta_key = ref + RecordPlacement.METADATA_SUFFIX
        try:
            exists = await asyncio.to_thread(self._head_exists, meta_key)
        except Exception as e:
            raise StorageDownloadError(meta_key, str(e)) from e
        if exists:
            raise StorageAlreadyExistsError(meta_key)

        size: int | None = None
        checksum: str | None = None
        revision = generate_cuid() if data is not None else None
        data_key = self._content_key(ref, {"revision": revision})
        if data is not None:
            size, checksum = await self._upload_content(data_key, data)

        document = self._new_document(
            namespace, object_id, metadata, self._next_timestamp(), size, checksum
        )
        document["revision"] = revision
        try:
            await self._write_document(meta_key, document)
        except StorageUploadError:
            if data is not None:
                await self._delete_key(data_key)
            raise
        logger.debug("Created %s/%s at s3://%s/%s", namespace, object_id, self.bucket, meta_key)
        return self._to_record(ref, document)

    async def get(self, namespace: str, object_id: str) -> ObjectRecord | None:
        ref = self.placement.record_ref(namespace, object_id)
        document = await self._read_document(ref + RecordPlacement.METADATA_SUFFIX)
        if document is None:
            return None
        return self._to_record(ref, document)

    async def patch(
        self,
        namespace: str,
        object_id: str,
        metadata: dict[str, Any],
        data: AsyncIterable[bytes] | None = None,
        drop_data: bool = False,
    ) -> ObjectRecord | None:
        """Merge metadata into the stored fields; optionally replace or drop content.

        New content goes to a fresh revision key. The old revision is deleted
        only after the updated sidecar is written, so a failed patch leaves
        the record as it was.
        """
        ref = self.placement.record_ref(namespace, object_id)
        meta_key = ref + RecordPlacement.METADATA_SUFFIX
        document = await self._read_document(meta_key)
        if document is None:
            return None
        old_key = self._content_key(ref, document) if document.get("has_data") else None

        new_key: str | None = None
        if data is not None:
            revision = generate_cuid()
            new_key = self._content_key(ref, {"revision": revision})
            size, checksum = await self._upload_content(new_key, data)
            document.update(has_data=True, size=size, checksum=checksum, revision=revision)
        elif drop_data:
            document.update(has_data=False, size=None, checksum=None, revision=None)

        document["fields"] = {**document.get("fields", {}), **metadata}
        document["updated_at"] = utc_now()
        try:
            await self._write_document(meta_key, document)
        except StorageUploadError:
            if new_key is not None:
                await self._delete_key(new_key)
            raise
        if old_key is not None and (new_key is not None or drop_data):
            await self._delete_key(old_key)
        logger.debug("Patched %s/%s", namespace, object_id)
        return self._to_record(ref, document)

    async def remove(self, namespace: str, object_id: str) -> ObjectRecord | None:
        ref = self.placement.record_ref(namespace, object_id)
        meta_key = ref + RecordPlacement.METADATA_SUFFIX
        document = await self._read_document(meta_key)
        if document is None:
            return None
        await self._delete_key(meta_key)
        if document.get("has_data"):
            await self._delete_key(self._content_key(ref, document))
        logger.debug("Removed %s/%s", namespace, object_id)
        return self._record_from_document(meta_key, document, None)

    def _list_metadata_keys_sync(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{prefix}/"):
            for item in page.get("Contents", []):
                if item["Key"].endswith(RecordPlacement.METADATA_SUFFIX):
                    keys.append(item["Key"])
        return keys

    async def list(
        self,
        namespace: str,
        limit: int | None = None,
        skip: int | None = None,
    ) -> ListPage:
        limit, skip = self._page_bounds(limit, skip)
        prefix = self.placement.namespace_prefix(namespace)
        try:
            keys = await asyncio.to_thread(self._list_metadata_keys_sync, prefix)
        except Exception as e:
            raise StorageDownloadError(prefix, str(e)) from e

        records: list[ObjectRecord] = []
        for meta_key in keys:
            document = await self._read_document(meta_key)
            if document is None:
                continue  # removed while listing
            ref = meta_key.removesuffix(RecordPlacement.METADATA_SUFFIX)
            records.append(self._to_record(ref, document))

        records.sort(key=self._sort_key)
        return ListPage(
            total=len(records),
            limit=limit,
            skip=skip,
            data=records[skip : skip + limit],
        )
