"""ObjectRecord domain entity and list page.

A record is the metadata of one stored object plus, for everything but
directories, an accessor for its content bytes.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from objectstore.core.constants import (
    DIRECTORY_TYPE,
    FIELD_DATA,
    FIELD_DIR,
    FIELD_NAME,
    FIELD_TYPE,
)


@runtime_checkable
class ContentStream(Protocol):
    """Restartable producer of content bytes.

    Every ``async for`` starts reading from the first byte again; nothing is
    held in memory between iterations. Stopping iteration early is safe.
    """

    def __aiter__(self) -> AsyncIterator[bytes]: ...

    async def read(self) -> bytes:
        """Read the whole content into memory."""
        ...


@dataclass(frozen=True)
class ObjectRecord:
    """Immutable read-model of a stored object.

    fields holds the transformed metadata (type, name, dir and any schema
    field). Bookkeeping (timestamps, size, checksum) is owned by storage.
    """

    id: str
    namespace: str
    fields: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    data: ContentStream | None = None
    size: int | None = None
    checksum: str | None = None

    @property
    def type(self) -> str | None:
        return self.fields.get(FIELD_TYPE)

    @property
    def name(self) -> str | None:
        return self.fields.get(FIELD_NAME)

    @property
    def dir(self) -> str | None:
        return self.fields.get(FIELD_DIR)

    @property
    def is_directory(self) -> bool:
        return self.type == DIRECTORY_TYPE

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    def without_data(self) -> "ObjectRecord":
        """Copy of this record with no content accessor."""
        return replace(self, data=None)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict view; the data key is present only when content exists."""
        out: dict[str, Any] = {
            "id": self.id,
            **self.fields,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.data is not None:
            out[FIELD_DATA] = self.data
            out["size"] = self.size
            out["checksum"] = self.checksum
        return out


@dataclass(frozen=True)
class ListPage:
    """One page of a listing; total ignores pagination."""

    total: int
    limit: int
    skip: int
    data: list[ObjectRecord] = field(default_factory=list)
