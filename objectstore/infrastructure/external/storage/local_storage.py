"""Local filesystem storage with secret-keyed placement and atomic writes."""

from __future__ import annotations

import asyncio
import hashlib
import os
import tempfile
from collections.abc import AsyncIterable, AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
import aiofiles.os

from objectstore.core.constants import DEFAULT_SNIFF_BYTES
from objectstore.domain.entities import ListPage, ObjectRecord
from objectstore.infrastructure.exceptions import (
    StorageAlreadyExistsError,
    StorageCorruptedError,
    StorageDeleteError,
    StorageDownloadError,
    StoragePermissionError,
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

if TYPE_CHECKING:
    from objectstore.application.services.type_registry import TypeRegistry

logger = get_logger(__name__)

_TEMP_PREFIX = ".tmp_"


class FileContentStream:
    """Restartable reader over one content file; each iteration reopens it."""

    def __init__(self, path: Path, storage_ref: str, chunk_size: int) -> None:
        self.path = path
        self.storage_ref = storage_ref
        self.chunk_size = chunk_size

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            async with aiofiles.open(self.path, "rb") as f:
                while True:
                    chunk = await f.read(self.chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise StorageDownloadError(self.storage_ref, str(e)) from e

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self])

    def __repr__(self) -> str:
        return f"FileContentStream({self.storage_ref!r})"


class LocalStorageService(BaseStorageService):
    """Local filesystem storage with atomic writes and path traversal protection.

    Each record is a JSON metadata sidecar (<key>.meta.json) plus, for
    content-bearing records, a <key>.data file. The metadata file is the
    commit point: it is written after content on create and removed before
    content on remove.
    """

    def __init__(
        self,
        storage_root: str,
        secret: str,
        types: TypeRegistry | None = None,
        default_limit: int = 10,
        max_limit: int = 100,
        chunk_size: int | None = None,
        sniff_bytes: int = DEFAULT_SNIFF_BYTES,
    ) -> None:
        """Initialize local storage.

        Args:
            storage_root: Base directory for all records.
            secret: Key for record placement; never written to disk.
            types: Type registry shared by Models on this store.
            default_limit: Page size when list() gets no limit.
            max_limit: Upper bound for list() page size.
            chunk_size: Read/write chunk size in bytes.
            sniff_bytes: Leading bytes Models hand to the content sniffer.
        """
        super().__init__(
            secret, types, default_limit, max_limit, chunk_size, sniff_bytes
        )
        self.storage_root = Path(storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _get_full_path(self, storage_ref: str) -> Path:
        """Resolve and validate path under storage_root. Raises StoragePermissionError if traversal."""
        full_path = (self.storage_root / storage_ref).resolve()
        try:
            full_path.relative_to(self.storage_root)
        except ValueError as e:
            raise StoragePermissionError(storage_ref, "path_validation") from e
        return full_path

    def _paths(self, namespace: str, object_id: str) -> tuple[str, Path, Path]:
        ref = self.placement.record_ref(namespace, object_id)
        meta_path = self._get_full_path(ref + RecordPlacement.METADATA_SUFFIX)
        data_path = self._get_full_path(ref + RecordPlacement.CONTENT_SUFFIX)
        return ref, meta_path, data_path

    @staticmethod
    def _make_temp(storage_ref: str, target: Path, suffix: str) -> str:
        """Create an empty temp file beside target (same filesystem for os.replace)."""
        try:
            target.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=target.parent, prefix=_TEMP_PREFIX, suffix=suffix
            )
            os.close(temp_fd)
        except OSError as e:
            raise StorageUploadError(storage_ref, str(e)) from e
        return temp_path

    @staticmethod
    async def _discard(path: str | Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass

    async def _stage_content(
        self, storage_ref: str, target: Path, chunks: AsyncIterable[bytes]
    ) -> tuple[str, int, str]:
        """Stream chunks to a temp file beside target. Returns (temp path, size, sha256)."""
        sha256 = hashlib.sha256()
        size = 0
        temp_path = self._make_temp(storage_ref, target, target.suffix)
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                async for chunk in chunks:
                    sha256.update(chunk)
                    size += len(chunk)
                    await f.write(chunk)
            os.chmod(temp_path, 0o640)
        except OSError as e:
            await self._discard(temp_path)
            raise StorageUploadError(storage_ref, str(e)) from e
        except BaseException:
            await self._discard(temp_path)
            raise
        return temp_path, size, sha256.hexdigest()

    async def _commit_content(self, storage_ref: str, temp_path: str, target: Path) -> None:
        """Atomically move a staged temp file over target."""
        try:
            await aiofiles.os.replace(temp_path, target)
        except OSError as e:
            await self._discard(temp_path)
            raise StorageUploadError(storage_ref, str(e)) from e

    async def _write_metadata(
        self, storage_ref: str, meta_path: Path, document: dict[str, Any]
    ) -> None:
        """Write the JSON sidecar atomically."""
        try:
            text = encode_metadata(document)
        except TypeError as e:
            raise StorageUploadError(storage_ref, str(e)) from e
        temp_path = self._make_temp(storage_ref, meta_path, ".json")
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(text)
            os.chmod(temp_path, 0o640)
            await aiofiles.os.replace(temp_path, meta_path)
        except OSError as e:
            raise StorageUploadError(storage_ref, str(e)) from e
        finally:
            await self._discard(temp_path)

    async def _read_metadata(self, storage_ref: str, meta_path: Path) -> dict[str, Any] | None:
        """Read JSON sidecar or None when the record does not exist."""
        try:
            async with aiofiles.open(meta_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageDownloadError(storage_ref, str(e)) from e
        try:
            return decode_metadata(content)
        except ValueError as e:
            raise StorageCorruptedError(storage_ref, str(e)) from e

    def _to_record(
        self, storage_ref: str, data_path: Path, document: dict[str, Any]
    ) -> ObjectRecord:
        stream = (
            FileContentStream(data_path, storage_ref, self.chunk_size)
            if document.get("has_data")
            else None
        )
        return self._record_from_document(storage_ref, document, stream)

    async def create(
        self,
        namespace: str,
        object_id: str,
        metadata: dict[str, Any],
        data: AsyncIterable[bytes] | None = None,
    ) -> ObjectRecord:
        """Write content (if any), then the metadata sidecar."""
        ref, meta_path, data_path = self._paths(namespace, object_id)
        if await aiofiles.os.path.exists(meta_path):
            raise StorageAlreadyExistsError(ref)

        size: int | None = None
        checksum: str | None = None
        if data is not None:
            staged, size, checksum = await self._stage_content(ref, data_path, data)
            await self._commit_content(ref, staged, data_path)

        document = self._new_document(
            namespace, object_id, metadata, self._next_timestamp(), size, checksum
        )
        try:
            await self._write_metadata(ref, meta_path, document)
        except StorageUploadError:
            if data is not None:
                await self._discard(data_path)
            raise
        logger.debug("Created %s/%s at %s", namespace, object_id, ref)
        return self._to_record(ref, data_path, document)

    async def get(self, namespace: str, object_id: str) -> ObjectRecord | None:
        ref, meta_path, data_path = self._paths(namespace, object_id)
        document = await self._read_metadata(ref, meta_path)
        if document is None:
            return None
        return self._to_record(ref, data_path, document)

    async def patch(
        self,
        namespace: str,
        object_id: str,
        metadata: dict[str, Any],
        data: AsyncIterable[bytes] | None = None,
        drop_data: bool = False,
    ) -> ObjectRecord | None:
        """Merge metadata into the stored fields; optionally replace or drop content.

        New content is staged beside the live file and only moved into place
        once the updated sidecar is written, so a failed patch leaves the
        record as it was.
        """
        ref, meta_path, data_path = self._paths(namespace, object_id)
        document = await self._read_metadata(ref, meta_path)
        if document is None:
            return None
        previous = dict(document)

        staged: str | None = None
        if data is not None:
            staged, size, checksum = await self._stage_content(ref, data_path, data)
            document.update(has_data=True, size=size, checksum=checksum)
        elif drop_data:
            document.update(has_data=False, size=None, checksum=None)

        document["fields"] = {**document.get("fields", {}), **metadata}
        document["updated_at"] = utc_now()
        try:
            await self._write_metadata(ref, meta_path, document)
        except StorageUploadError:
            if staged is not None:
                await self._discard(staged)
            raise

        if staged is not None:
            try:
                await self._commit_content(ref, staged, data_path)
            except StorageUploadError:
                await self._write_metadata(ref, meta_path, previous)
                raise
        elif drop_data:
            try:
                await aiofiles.os.remove(data_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                raise StorageDeleteError(ref, str(e)) from e
        logger.debug("Patched %s/%s", namespace, object_id)
        return self._to_record(ref, data_path, document)

    async def remove(self, namespace: str, object_id: str) -> ObjectRecord | None:
        """Delete metadata first so concurrent gets see the record as gone."""
        ref, meta_path, data_path = self._paths(namespace, object_id)
        document = await self._read_metadata(ref, meta_path)
        if document is None:
            return None
        try:
            await aiofiles.os.remove(meta_path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageDeleteError(ref, str(e)) from e
        try:
            await aiofiles.os.remove(data_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageDeleteError(ref, str(e)) from e
        self._prune_empty_dirs(meta_path.parent)
        logger.debug("Removed %s/%s", namespace, object_id)
        return self._record_from_document(ref, document, None)

    def _prune_empty_dirs(self, directory: Path) -> None:
        """Remove empty fan-out directories up to (not including) storage_root."""
        parent = directory
        while parent != self.storage_root:
            try:
                if any(parent.iterdir()):
                    break
                parent.rmdir()
                parent = parent.parent
            except OSError:
                break

    def _scan_metadata_paths(self, namespace_dir: Path) -> list[Path]:
        if not namespace_dir.is_dir():
            return []
        return [
            path
            for path in namespace_dir.glob("*/*" + RecordPlacement.METADATA_SUFFIX)
            if not path.name.startswith(_TEMP_PREFIX)
        ]

    async def list(
        self,
        namespace: str,
        limit: int | None = None,
        skip: int | None = None,
    ) -> ListPage:
        """Read every sidecar of the namespace, order by creation, slice the page."""
        limit, skip = self._page_bounds(limit, skip)
        prefix = self.placement.namespace_prefix(namespace)
        namespace_dir = self._get_full_path(prefix)
        try:
            meta_paths = await asyncio.to_thread(self._scan_metadata_paths, namespace_dir)
        except OSError as e:
            raise StorageDownloadError(prefix, str(e)) from e

        records: list[ObjectRecord] = []
        for meta_path in meta_paths:
            ref = f"{prefix}/{meta_path.parent.name}/{meta_path.name}"
            document = await self._read_metadata(ref, meta_path)
            if document is None:
                continue  # removed while listing
            data_path = meta_path.with_name(
                meta_path.name.removesuffix(RecordPlacement.METADATA_SUFFIX)
                + RecordPlacement.CONTENT_SUFFIX
            )
            records.append(self._to_record(ref, data_path, document))

        records.sort(key=self._sort_key)
        return ListPage(
            total=len(records),
            limit=limit,
            skip=skip,
            data=records[skip : skip + limit],
        )
