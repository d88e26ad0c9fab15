"""Tests for secret-keyed record placement."""

import pytest

from objectstore.infrastructure.external.storage.placement import RecordPlacement


def test_same_id_same_location() -> None:
    p = RecordPlacement("s" * 32)
    assert p.record_ref("files", "abc") == p.record_ref("files", "abc")


def test_location_depends_on_secret() -> None:
    a = RecordPlacement("a" * 32)
    b = RecordPlacement("b" * 32)
    assert a.record_ref("files", "abc") != b.record_ref("files", "abc")


def test_location_depends_on_namespace() -> None:
    p = RecordPlacement("s" * 32)
    assert p.record_key("files", "abc") != p.record_key("notes", "abc")
    assert p.namespace_prefix("files") != p.namespace_prefix("notes")


def test_location_does_not_contain_id() -> None:
    p = RecordPlacement("s" * 32)
    ref = p.record_ref("files", "../../etc/passwd")
    assert ".." not in ref
    assert "passwd" not in ref
    prefix, fanout, key = ref.split("/")
    assert prefix == p.namespace_prefix("files")
    assert fanout == key[:2]
    assert len(key) == 64


def test_suffixes() -> None:
    p = RecordPlacement("s" * 32)
    assert p.metadata_ref("files", "x").endswith(".meta.json")
    assert p.content_ref("files", "x").endswith(".data")


def test_empty_secret_rejected() -> None:
    with pytest.raises(ValueError):
        RecordPlacement("")
