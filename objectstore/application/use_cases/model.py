"""Model: schema-bound entity manager over a storage backend.

A Model validates create/patch input, detects content types from payload
bytes, runs every schema field through the transform pipeline and
persists through storage. Missing records are returned as None.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Mapping
from typing import Any

import jsonschema

from objectstore.application.services.content_detection import (
    ContentSniffer,
    FiletypeSniffer,
)
from objectstore.application.services.field_types import FieldHandler, PasswordType
from objectstore.application.services.payload import iter_payload, peek_payload
from objectstore.application.services.transform_pipeline import TransformPipeline
from objectstore.application.services.type_registry import TypeRegistry
from objectstore.core.constants import (
    DEFAULT_SNIFF_BYTES,
    DIRECTORY_TYPE,
    FIELD_DATA,
    FIELD_DIR,
    FIELD_NAME,
    FIELD_TYPE,
    FILE_SCHEMA,
)
from objectstore.domain.entities import ListPage, ObjectRecord
from objectstore.domain.exceptions import (
    SchemaDefinitionException,
    TransformException,
    ValidationException,
)
from objectstore.infrastructure.external.storage.protocol import StorageProtocol
from objectstore.infrastructure.external.storage.record_codec import check_encodable
from objectstore.shared.telemetry.logging import get_logger
from objectstore.shared.utils.generators import generate_cuid, generate_name

logger = get_logger(__name__)

_NAMESPACE_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

SCHEMA_DEFINITION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": {
        "type": "object",
        "required": ["type"],
        "properties": {"type": {"type": "string", "minLength": 1}},
    },
}


def _validate_schema(schema: Mapping[str, Any]) -> None:
    try:
        jsonschema.validate(instance=dict(schema), schema=SCHEMA_DEFINITION_SCHEMA)
    except jsonschema.ValidationError as e:
        path = "/".join(str(p) for p in e.absolute_path)
        message = f"{path}: {e.message}" if path else e.message
        raise SchemaDefinitionException(validation_errors=[message]) from e


class Model:
    """Schema-bound manager for one namespace of records.

    The built-in file schema (name, dir, type) sits underneath the given
    schema; entries of the given schema override it.
    """

    def __init__(
        self,
        storage: StorageProtocol,
        namespace: str,
        schema: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        types: TypeRegistry | None = None,
        sniffer: ContentSniffer | None = None,
        sniff_bytes: int | None = None,
    ) -> None:
        """Bind a schema and namespace to storage.

        Args:
            storage: Backend persisting records.
            namespace: Partition name (letters, digits, '_' and '-').
            schema: Field name -> {"type": <type name>, **options}.
            types: Registry to resolve types with; defaults to storage.types.
            sniffer: Content-type detector; filetype-based by default.
            sniff_bytes: Leading bytes handed to the sniffer; defaults to
                storage.sniff_bytes.

        Raises:
            ValueError: Invalid namespace or sniff_bytes.
            SchemaDefinitionException: Malformed schema.
        """
        if not isinstance(namespace, str) or not _NAMESPACE_RE.match(namespace):
            raise ValueError(
                "Namespace must be non-empty and contain only letters, digits, '_' or '-'"
            )
        if sniff_bytes is None:
            sniff_bytes = getattr(storage, "sniff_bytes", DEFAULT_SNIFF_BYTES)
        if sniff_bytes < 1:
            raise ValueError("sniff_bytes must be positive")
        schema = dict(schema or {})
        _validate_schema(schema)

        self.storage = storage
        self.namespace = namespace
        self.schema: dict[str, dict[str, Any]] = {
            **{k: dict(v) for k, v in FILE_SCHEMA.items()},
            **{k: dict(v) for k, v in schema.items()},
        }
        self.types = types if types is not None else storage.types
        self.pipeline = TransformPipeline(self.types)
        self.sniffer = sniffer or FiletypeSniffer()
        self.sniff_bytes = sniff_bytes

    def __repr__(self) -> str:
        return f"Model(namespace={self.namespace!r}, fields={sorted(self.schema)!r})"

    def id(self) -> str:
        """Return a fresh identifier. No side effects."""
        return generate_cuid()

    def use(self, name: str, handler: FieldHandler) -> None:
        """Register a field type for every Model sharing this registry."""
        self.types.register(name, handler)

    def _check_fields(self, values: Mapping[str, Any]) -> None:
        unknown = sorted(k for k in values if k != FIELD_DATA and k not in self.schema)
        if unknown:
            raise ValidationException(
                f"Unknown field \"{unknown[0]}\"", field=unknown[0]
            )

    async def _normalize_type(self, value: Any) -> str | None:
        """Run a type value through the schema's type field; blank becomes None."""
        if value is None:
            return None
        normalized = await self.pipeline.run(self, self.schema[FIELD_TYPE], value)
        return normalized or None

    async def _detect_type(
        self, data: Any, declared_type: str | None
    ) -> tuple[str, AsyncIterator[bytes]]:
        """Sniff the payload head. Detected type wins; declared type is the fallback.

        Raises:
            ValidationException: Nothing detected and no type declared.
        """
        head, stream = await peek_payload(iter_payload(data), self.sniff_bytes)
        detected = await self._normalize_type(self.sniffer.sniff(head))
        if detected:
            if declared_type and detected != declared_type:
                logger.debug(
                    "Detected type %s overrides declared %s", detected, declared_type
                )
            return detected, stream
        if not declared_type:
            raise ValidationException("Cannot detect file type", field=FIELD_TYPE)
        return declared_type, stream

    async def _transform_data(self, stream: AsyncIterator[bytes]) -> Any:
        """Run the payload through the schema's data field, when it defines one."""
        definition = self.schema.get(FIELD_DATA)
        if definition is None:
            return stream
        return await self.pipeline.run(self, definition, stream)

    async def _transform_fields(
        self, file_type: str | None, values: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Transform every given schema field; type arrives already normalized.

        Raises:
            TransformException: A field failed, or its result cannot be stored.
        """
        schema = {
            k: v for k, v in self.schema.items() if k not in (FIELD_DATA, FIELD_TYPE)
        }
        metadata = await self.pipeline.run_fields(self, schema, values)
        if file_type is not None:
            metadata = {FIELD_TYPE: file_type, **metadata}
        for field_name, value in metadata.items():
            try:
                check_encodable(value)
            except TypeError as e:
                raise TransformException(
                    f"Field \"{field_name}\" cannot be stored: {e}",
                    type_name=self.schema[field_name]["type"].lower(),
                    field=field_name,
                ) from e
        return metadata

    async def create(
        self, values: Mapping[str, Any] | None = None, **fields: Any
    ) -> ObjectRecord:
        """Validate, detect, transform and persist a new record.

        Raises:
            ValidationException: Missing payload, undetectable type, unknown field.
            TransformException: A field could not be transformed.
            StorageException: The medium failed.
        """
        values = {**(values or {}), **fields}
        self._check_fields(values)
        data = values.pop(FIELD_DATA, None)
        file_type = await self._normalize_type(values.pop(FIELD_TYPE, None))

        stream: AsyncIterator[bytes] | None = None
        if file_type == DIRECTORY_TYPE:
            if data is not None:
                raise ValidationException(
                    "Directory cannot contain file data", field=FIELD_DATA
                )
        else:
            if data is None:
                raise ValidationException("No file data", field=FIELD_DATA)
            file_type, stream = await self._detect_type(data, file_type)

        object_id = self.id()
        if values.get(FIELD_NAME) is None:
            values[FIELD_NAME] = generate_name()
        if values.get(FIELD_DIR) is None:
            values[FIELD_DIR] = ""
        for field_name in self.schema:
            if field_name not in (FIELD_DATA, FIELD_TYPE):
                values.setdefault(field_name, None)

        metadata = await self._transform_fields(file_type, values)
        content = await self._transform_data(stream) if stream is not None else None

        record = await self.storage.create(self.namespace, object_id, metadata, content)
        logger.info(
            "Created %s record %s (type=%s)", self.namespace, object_id, record.type
        )
        return record

    async def get(self, object_id: str) -> ObjectRecord | None:
        """Return the record, or None when absent."""
        return await self.storage.get(self.namespace, object_id)

    async def list(
        self, query: Mapping[str, Any] | None = None, **params: Any
    ) -> ListPage:
        """Return one page of records; query accepts limit and skip."""
        q = {**(query or {}), **params}
        unknown = sorted(set(q) - {"limit", "skip"})
        if unknown:
            raise ValidationException(
                f"Unsupported list parameter \"{unknown[0]}\"", field=unknown[0]
            )
        return await self.storage.list(
            self.namespace, limit=q.get("limit"), skip=q.get("skip")
        )

    async def patch(
        self, object_id: str, fields: Mapping[str, Any] | None = None, **extra: Any
    ) -> ObjectRecord | None:
        """Re-transform the given fields and merge them into the record.

        Untouched fields keep their values. New data is sniffed like on
        create, with the record's current type as the declared fallback.
        Returns None, without writing, when the record does not exist.

        Raises:
            ValidationException: Invalid combination of type and data, or an
                empty type.
            TransformException: A field could not be transformed.
            StorageException: The medium failed.
        """
        values: dict[str, Any] = {**(fields or {}), **extra}
        self._check_fields(values)
        existing = await self.storage.get(self.namespace, object_id)
        if existing is None:
            return None

        has_new_data = values.get(FIELD_DATA) is not None
        data = values.pop(FIELD_DATA, None)
        new_type: str | None = None
        if FIELD_TYPE in values:
            new_type = await self._normalize_type(values.pop(FIELD_TYPE))
            if new_type is None:
                raise ValidationException("Type cannot be empty", field=FIELD_TYPE)
        target_type = new_type or existing.type

        stream: AsyncIterator[bytes] | None = None
        drop_data = False
        if target_type == DIRECTORY_TYPE:
            if has_new_data:
                raise ValidationException(
                    "Directory cannot contain file data", field=FIELD_DATA
                )
            drop_data = existing.data is not None
        elif has_new_data:
            new_type, stream = await self._detect_type(data, target_type)
        elif existing.data is None:
            raise ValidationException("No file data", field=FIELD_DATA)

        metadata = await self._transform_fields(new_type, values)
        content = await self._transform_data(stream) if stream is not None else None

        record = await self.storage.patch(
            self.namespace, object_id, metadata, data=content, drop_data=drop_data
        )
        if record is not None:
            logger.info("Patched %s record %s", self.namespace, object_id)
        return record

    async def remove(self, object_id: str) -> ObjectRecord | None:
        """Delete the record; returns its last representation or None."""
        record = await self.storage.remove(self.namespace, object_id)
        if record is not None:
            logger.info("Removed %s record %s", self.namespace, object_id)
        return record

    def verify_password(self, record: ObjectRecord, field_name: str, candidate: str) -> bool:
        """Check candidate against the digest stored in a password field.

        Raises:
            ValueError: field_name is not a password field of this schema.
        """
        definition = self.schema.get(field_name)
        handler = self.types.resolve(definition["type"]) if definition else None
        if not isinstance(handler, PasswordType):
            raise ValueError(f"Field {field_name!r} is not a password field")
        digest = record.get(field_name)
        if not isinstance(digest, str):
            return False
        return handler.verify(candidate, digest)
