"""Runs one field value through the handler its definition names."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from objectstore.application.services.type_registry import TypeRegistry
from objectstore.domain.exceptions import UnknownTypeException


class TransformPipeline:
    """Resolves field types through a TypeRegistry and applies them."""

    def __init__(self, types: TypeRegistry) -> None:
        self.types = types

    async def run(
        self,
        model: Any,
        field_definition: Mapping[str, Any],
        value: Any,
    ) -> Any:
        """Transform value under field_definition["type"].

        The handler's result is returned as is (awaited first when the
        handler is async).

        Raises:
            UnknownTypeException: No handler registered for the type name.
            TransformException: The handler rejected the value.
        """
        type_name = str(field_definition.get("type", ""))
        handler = self.types.resolve(type_name)
        if handler is None:
            raise UnknownTypeException(type_name)
        result = handler.transform(model, field_definition, value)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def run_fields(
        self,
        model: Any,
        schema: Mapping[str, Mapping[str, Any]],
        values: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Transform every field of values that the schema defines, in schema order.

        Raises on the first failure, so nothing partial is returned.
        """
        out: dict[str, Any] = {}
        for field_name, definition in schema.items():
            if field_name in values:
                out[field_name] = await self.run(model, definition, values[field_name])
        return out
