"""Built-in field types: JSON, text, datetime, password, and pass-through.

Every type implements FieldHandler.transform(model, field_definition, value)
and returns the value in its canonical stored form. Handlers may be async.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from objectstore.domain.exceptions import TransformException
from objectstore.shared.utils.datetime import parse_datetime, utc_now

if TYPE_CHECKING:
    from objectstore.infrastructure.security.password import PasswordHasher


@runtime_checkable
class FieldHandler(Protocol):
    """Capability converting a raw field value to its stored form."""

    def transform(
        self, model: Any, field_definition: Mapping[str, Any], value: Any
    ) -> Any | Awaitable[Any]: ...


class IdentityType:
    """Returns values unchanged; base for custom types without bespoke logic."""

    def transform(self, model: Any, field_definition: Mapping[str, Any], value: Any) -> Any:
        return value

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class JSONType:
    """Structured values. Absent -> {}; JSON text is decoded; structures pass through."""

    def transform(self, model: Any, field_definition: Mapping[str, Any], value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str | bytes | bytearray):
            try:
                return json.loads(value)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise TransformException(
                    f"Invalid JSON value: {e}", type_name="json"
                ) from e
        return value


class TextType:
    """Text with optional trim, then lowercase/uppercase folding."""

    def transform(
        self, model: Any, field_definition: Mapping[str, Any], value: Any
    ) -> str | None:
        if value is None:
            return None
        if isinstance(value, bytes | bytearray):
            try:
                text = bytes(value).decode("utf-8")
            except UnicodeDecodeError as e:
                raise TransformException(
                    "Text value is not valid UTF-8", type_name="text"
                ) from e
        else:
            text = str(value)
        if field_definition.get("trim"):
            text = text.strip()
        if field_definition.get("lowercase"):
            text = text.lower()
        if field_definition.get("uppercase"):
            text = text.upper()
        return text


class DateTimeType:
    """Points in time (UTC). Absent -> now."""

    def transform(
        self, model: Any, field_definition: Mapping[str, Any], value: Any
    ) -> datetime:
        if value is None:
            return utc_now()
        try:
            return parse_datetime(value)
        except ValueError as e:
            raise TransformException(str(e), type_name="datetime") from e


class PasswordType:
    """Irreversible digest of the raw value; the raw value is never kept.

    Hashing is CPU-bound, so it runs in a worker thread.
    """

    def __init__(self, hasher: PasswordHasher) -> None:
        self.hasher = hasher

    async def transform(
        self, model: Any, field_definition: Mapping[str, Any], value: Any
    ) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise TransformException("Password value must be a string", type_name="password")
        return await asyncio.to_thread(self.hasher.hash, value)

    def verify(self, candidate: str, digest: str) -> bool:
        return self.hasher.verify(candidate, digest)
