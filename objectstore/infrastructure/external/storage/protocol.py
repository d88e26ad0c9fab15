"""Storage service protocol (DIP). Implementations: LocalStorageService, S3StorageService."""

from __future__ import annotations

from collections.abc import AsyncIterable
from typing import TYPE_CHECKING, Any, Protocol

from objectstore.domain.entities import ListPage, ObjectRecord

if TYPE_CHECKING:
    from objectstore.application.services.type_registry import TypeRegistry


class StorageProtocol(Protocol):
    """Protocol for record storage backends (local, S3-compatible).

    Missing records are reported as None; medium failures raise
    StorageException subclasses.
    """

    types: TypeRegistry
    sniff_bytes: int

    async def create(
        self,
        namespace: str,
        object_id: str,
        metadata: dict[str, Any],
        data: AsyncIterable[bytes] | None = None,
    ) -> ObjectRecord:
        """Persist a new record and, when given, its content."""
        ...

    async def get(self, namespace: str, object_id: str) -> ObjectRecord | None:
        """Return the record or None."""
        ...

    async def patch(
        self,
        namespace: str,
        object_id: str,
        metadata: dict[str, Any],
        data: AsyncIterable[bytes] | None = None,
        drop_data: bool = False,
    ) -> ObjectRecord | None:
        """Merge metadata; replace content if data given, delete it if drop_data."""
        ...

    async def remove(self, namespace: str, object_id: str) -> ObjectRecord | None:
        """Delete record and content. Returns the pre-deletion snapshot or None."""
        ...

    async def list(
        self,
        namespace: str,
        limit: int | None = None,
        skip: int | None = None,
    ) -> ListPage:
        """Return one page of records ordered by creation."""
        ...
