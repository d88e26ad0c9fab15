"""Domain layer: entities and exceptions. No infrastructure imports."""

from objectstore.domain.entities import ContentStream, ListPage, ObjectRecord
from objectstore.domain.exceptions import (
    ObjectStoreException,
    SchemaDefinitionException,
    TransformException,
    UnknownTypeException,
    ValidationException,
)

__all__ = [
    "ContentStream",
    "ListPage",
    "ObjectRecord",
    "ObjectStoreException",
    "SchemaDefinitionException",
    "TransformException",
    "UnknownTypeException",
    "ValidationException",
]
