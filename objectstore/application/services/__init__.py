"""Application services: type registry, transform pipeline, content detection."""

from objectstore.application.services.content_detection import (
    ContentSniffer,
    FiletypeSniffer,
)
from objectstore.application.services.field_types import (
    DateTimeType,
    FieldHandler,
    IdentityType,
    JSONType,
    PasswordType,
    TextType,
)
from objectstore.application.services.transform_pipeline import TransformPipeline
from objectstore.application.services.type_registry import (
    TypeRegistry,
    make_identity_handler,
)

__all__ = [
    "ContentSniffer",
    "DateTimeType",
    "FieldHandler",
    "FiletypeSniffer",
    "IdentityType",
    "JSONType",
    "PasswordType",
    "TextType",
    "TransformPipeline",
    "TypeRegistry",
    "make_identity_handler",
]
