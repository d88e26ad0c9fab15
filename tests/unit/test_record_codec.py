"""Tests for the metadata sidecar encoding."""

import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from objectstore.infrastructure.external.storage.record_codec import (
    check_encodable,
    decode_metadata,
    encode_metadata,
)


def test_typed_values_survive() -> None:
    document = {
        "created_at": datetime(2024, 5, 1, 8, 30, 15, 123456, tzinfo=UTC),
        "fields": {"name": "a", "tags": ["x", 1, 2.5, None, True], "blob": b"\x00\xff"},
        "size": None,
    }
    decoded = decode_metadata(encode_metadata(document))
    assert decoded == document
    assert decoded["created_at"].tzinfo is not None


def test_encoded_text_is_json() -> None:
    text = encode_metadata({"n": 3})
    assert json.loads(text) == {"fields": {"n": {"integerValue": "3"}}}


def test_unsupported_value_rejected() -> None:
    with pytest.raises(TypeError):
        encode_metadata({"obj": object()})


@pytest.mark.parametrize(
    "text",
    [
        "[]",
        '{"nofields": 1}',
        '{"fields": {"x": {"weird": 1}}}',
        '{"fields": {"x": 5}}',
        '{"fields": {"x": "nullValue"}}',
        '{"fields": {"x": {"mapValue": 3}}}',
        '{"fields": {"x": {"arrayValue": {"values": [7]}}}}',
        '{"fields": {"x": {"integerValue": "abc"}}}',
    ],
)
def test_malformed_documents_rejected(text: str) -> None:
    with pytest.raises(ValueError):
        decode_metadata(text)


@pytest.mark.parametrize("value", [{1, 2}, Decimal("1.5"), {"nested": [object()]}])
def test_check_encodable_rejects(value) -> None:
    with pytest.raises(TypeError):
        check_encodable(value)


def test_check_encodable_accepts_plain_values() -> None:
    check_encodable({"a": [1, "b", None, datetime(2024, 1, 1, tzinfo=UTC)]})
