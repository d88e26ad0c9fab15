"""Tests for the exception hierarchy."""

from objectstore import (
    ObjectStoreException,
    StorageException,
    TransformException,
    UnknownTypeException,
    ValidationException,
)
from objectstore.infrastructure.exceptions import StorageCorruptedError


def test_error_code_defaults_to_class_name() -> None:
    assert ObjectStoreException("boom").error_code == "ObjectStoreException"


def test_validation_details() -> None:
    exc = ValidationException("No file data", field="data")
    assert str(exc) == "No file data"
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "data"}


def test_unknown_type_message() -> None:
    exc = UnknownTypeException("John")
    assert isinstance(exc, TransformException)
    assert exc.message == 'wrong schema type "john"'
    assert exc.details == {"type_name": "john"}


def test_storage_errors_share_base() -> None:
    exc = StorageCorruptedError("ab/cd", "bad json")
    assert isinstance(exc, StorageException)
    assert isinstance(exc, ObjectStoreException)
    assert exc.details == {"storage_ref": "ab/cd", "reason": "bad json"}
