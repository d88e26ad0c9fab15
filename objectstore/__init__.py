"""Schema-driven object store.

Typical use::

    storage = create_storage(secret="...", root="/srv/objects")
    files = Model(storage, "files")
    record = await files.create({"data": b"...", "type": "text/plain"})
"""

from __future__ import annotations

from typing import Any

from objectstore.application.services.field_types import FieldHandler
from objectstore.application.services.type_registry import (
    TypeRegistry,
    make_identity_handler,
)
from objectstore.application.use_cases.model import Model
from objectstore.core.config import Settings
from objectstore.core.constants import DIRECTORY_TYPE, FILE_SCHEMA
from objectstore.domain.entities import ContentStream, ListPage, ObjectRecord
from objectstore.domain.exceptions import (
    ObjectStoreException,
    SchemaDefinitionException,
    TransformException,
    UnknownTypeException,
    ValidationException,
)
from objectstore.infrastructure.exceptions import StorageException
from objectstore.infrastructure.external.storage import (
    StorageFactory,
    StorageProtocol,
)

__version__ = "1.0.0"


def create_storage(
    secret: str | None = None,
    root: str | None = None,
    *,
    settings: Settings | None = None,
    types: TypeRegistry | None = None,
    **overrides: Any,
) -> StorageProtocol:
    """Build a configured storage backend.

    With settings, those are used as is. Otherwise settings load from the
    environment/.env, with secret, root and any other keyword overriding
    the matching Settings field.

    Raises:
        pydantic.ValidationError: Missing or invalid configuration.
    """
    if settings is None:
        if secret is not None:
            overrides["storage_secret"] = secret
        if root is not None:
            overrides["storage_root"] = root
        settings = Settings(**overrides)
    return StorageFactory.create_storage_service(settings, types=types)


__all__ = [
    "DIRECTORY_TYPE",
    "FILE_SCHEMA",
    "ContentStream",
    "FieldHandler",
    "ListPage",
    "Model",
    "ObjectRecord",
    "ObjectStoreException",
    "SchemaDefinitionException",
    "Settings",
    "StorageException",
    "StorageProtocol",
    "TransformException",
    "TypeRegistry",
    "UnknownTypeException",
    "ValidationException",
    "create_storage",
    "make_identity_handler",
]
