"""Type registry: case-insensitive type name -> field handler.

One registry is created per store and shared by every Model bound to it,
so a type registered once is usable by all of them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from objectstore.application.services.field_types import (
    DateTimeType,
    FieldHandler,
    IdentityType,
    JSONType,
    PasswordType,
    TextType,
)
from objectstore.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from objectstore.infrastructure.security.password import PasswordHasher

logger = get_logger(__name__)


def make_identity_handler() -> FieldHandler:
    """Return a handler that passes values through unchanged."""
    return IdentityType()


class TypeRegistry:
    """Registered field types keyed by lower-cased name."""

    def __init__(
        self,
        password_hasher: PasswordHasher | None = None,
        include_builtins: bool = True,
    ) -> None:
        self._handlers: dict[str, FieldHandler] = {}
        if include_builtins:
            if password_hasher is None:
                from objectstore.infrastructure.security.password import (
                    BcryptPasswordHasher,
                )

                password_hasher = BcryptPasswordHasher()
            self.register("JSON", JSONType())
            self.register("text", TextType())
            self.register("datetime", DateTimeType())
            self.register("password", PasswordType(password_hasher))

    def register(self, name: str, handler: FieldHandler) -> None:
        """Add or replace the handler for name (case-insensitive).

        Raises:
            ValueError: Empty name.
            TypeError: handler has no callable transform.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Type name must be a non-empty string")
        if not callable(getattr(handler, "transform", None)):
            raise TypeError(
                f"Handler for type {name!r} must define transform(model, field_definition, value)"
            )
        key = name.strip().lower()
        if key in self._handlers:
            logger.debug("Replacing handler for type %r", key)
        self._handlers[key] = handler

    def resolve(self, name: str) -> FieldHandler | None:
        """Return the handler for name, or None when unregistered."""
        if not isinstance(name, str):
            return None
        return self._handlers.get(name.strip().lower())

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._handlers

    def make_identity_handler(self) -> FieldHandler:
        return make_identity_handler()
