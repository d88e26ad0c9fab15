"""Behaviour shared by storage backends: placement, documents, pagination."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from objectstore.core.constants import DEFAULT_SNIFF_BYTES
from objectstore.domain.entities import ContentStream, ObjectRecord
from objectstore.domain.exceptions import ValidationException
from objectstore.infrastructure.external.storage.placement import RecordPlacement
from objectstore.infrastructure.exceptions import StorageCorruptedError
from objectstore.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from objectstore.application.services.type_registry import TypeRegistry


class BaseStorageService:
    """Common state of a storage backend.

    Owns the secret-keyed placement and the type registry shared by every
    Model bound to this store.
    """

    CHUNK_SIZE = 64 * 1024  # 64KB

    def __init__(
        self,
        secret: str,
        types: TypeRegistry | None = None,
        default_limit: int = 10,
        max_limit: int = 100,
        chunk_size: int | None = None,
        sniff_bytes: int = DEFAULT_SNIFF_BYTES,
    ) -> None:
        if types is None:
            from objectstore.application.services.type_registry import TypeRegistry

            types = TypeRegistry()
        self.placement = RecordPlacement(secret)
        self.types = types
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.chunk_size = chunk_size or self.CHUNK_SIZE
        self.sniff_bytes = sniff_bytes
        self._last_stamp: datetime | None = None

    def _next_timestamp(self) -> datetime:
        """utc_now(), strictly increasing per instance so creation order is total."""
        now = utc_now()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now

    def _page_bounds(self, limit: int | None, skip: int | None) -> tuple[int, int]:
        """Resolve list pagination. Limit is capped at max_limit."""
        limit = self.default_limit if limit is None else limit
        skip = 0 if skip is None else skip
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ValidationException("limit must be a non-negative integer", field="limit")
        if isinstance(skip, bool) or not isinstance(skip, int) or skip < 0:
            raise ValidationException("skip must be a non-negative integer", field="skip")
        return min(limit, self.max_limit), skip

    @staticmethod
    def _new_document(
        namespace: str,
        object_id: str,
        metadata: dict[str, Any],
        now: datetime,
        size: int | None,
        checksum: str | None,
    ) -> dict[str, Any]:
        return {
            "id": object_id,
            "namespace": namespace,
            "created_at": now,
            "updated_at": now,
            "has_data": size is not None,
            "size": size,
            "checksum": checksum,
            "fields": dict(metadata),
        }

    @staticmethod
    def _record_from_document(
        storage_ref: str,
        document: dict[str, Any],
        data: ContentStream | None,
    ) -> ObjectRecord:
        try:
            return ObjectRecord(
                id=document["id"],
                namespace=document["namespace"],
                fields=dict(document["fields"]),
                created_at=document["created_at"],
                updated_at=document["updated_at"],
                data=data,
                size=document.get("size"),
                checksum=document.get("checksum"),
            )
        except (KeyError, TypeError) as e:
            raise StorageCorruptedError(storage_ref, f"missing attribute {e}") from e

    @staticmethod
    def _sort_key(record: ObjectRecord) -> tuple[datetime, str]:
        return (record.created_at, record.id)
