"""Domain exceptions for the object store.

Defines exceptions for caller-facing rule violations: bad input, fields
that cannot be coerced to their declared type, and malformed schemas.
Storage-medium failures live in objectstore.infrastructure.exceptions.
"""

from typing import Any


class ObjectStoreException(Exception):
    """Base exception for all object store errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, type name).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(ObjectStoreException):
    """Raised when caller input violates a precondition (e.g. missing file data)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class TransformException(ObjectStoreException):
    """Raised when a field value cannot be coerced under its declared type."""

    def __init__(
        self,
        message: str,
        type_name: str | None = None,
        field: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if type_name:
            details["type_name"] = type_name
        if field:
            details["field"] = field
        super().__init__(message, "TRANSFORM_ERROR", details)


class UnknownTypeException(TransformException):
    """Raised when a field definition names a type nobody registered."""

    def __init__(self, type_name: str) -> None:
        """Initialize with the (lower-cased) unknown type name."""
        name = type_name.lower()
        super().__init__(f'wrong schema type "{name}"', type_name=name)


class SchemaDefinitionException(ObjectStoreException):
    """Raised when a Model schema is malformed."""

    def __init__(self, validation_errors: list[str]) -> None:
        """Initialize with list of validation error messages.

        Args:
            validation_errors: Human-readable validation error strings.
        """
        super().__init__(
            "Invalid schema definition",
            "SCHEMA_DEFINITION_ERROR",
            {"validation_errors": validation_errors},
        )
