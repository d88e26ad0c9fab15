"""Model over local storage: create/get/list/patch/remove end to end."""

import io

import pytest

from objectstore import (
    DIRECTORY_TYPE,
    ListPage,
    Model,
    StorageException,
    TransformException,
    ValidationException,
)
from objectstore.shared.utils.generators import generate_cuid
from tests.conftest import make_png, read_all


async def test_id_returns_distinct_strings(file_model: Model) -> None:
    ids = {file_model.id() for _ in range(200)}
    assert len(ids) == 200
    assert all(isinstance(i, str) and i for i in ids)


async def test_create_text_file(file_model: Model) -> None:
    record = await file_model.create({"data": b"hello world", "type": "text/plain"})

    assert record.data is not None
    assert record.type == "text/plain"
    assert await read_all(record.data) == b"hello world"
    assert record.size == 11
    assert record.checksum is not None


async def test_create_reads_content_repeatedly(file_model: Model) -> None:
    record = await file_model.create({"data": "hello world", "type": "text/plain"})
    assert await record.data.read() == b"hello world"
    assert await record.data.read() == b"hello world"


async def test_create_png_overrides_declared_type(file_model: Model) -> None:
    record = await file_model.create({"data": make_png(100, 100), "type": "text/plain"})

    assert record.data is not None
    assert record.type == "image/png"


async def test_create_png_without_declared_type(file_model: Model) -> None:
    record = await file_model.create({"data": io.BytesIO(make_png())})
    assert record.type == "image/png"


async def test_create_with_name(file_model: Model) -> None:
    record = await file_model.create(
        {"data": iter([b"hello ", "world"]), "name": "hello", "type": "text/plain"}
    )

    assert record.name == "hello"
    assert record.type == "text/plain"
    assert await read_all(record.data) == b"hello world"


async def test_create_without_name_generates_one(file_model: Model) -> None:
    record = await file_model.create({"data": b"x", "type": "text/plain"})
    assert isinstance(record.name, str) and record.name
    assert record.dir == ""


async def test_create_without_data_fails(file_model: Model) -> None:
    with pytest.raises(ValidationException) as exc_info:
        await file_model.create({"type": "text/plain"})
    assert exc_info.value.message == "No file data"


async def test_create_undetectable_without_type_fails(file_model: Model) -> None:
    with pytest.raises(ValidationException) as exc_info:
        await file_model.create({"data": b"hello world"})
    assert str(exc_info.value) == "Cannot detect file type"


async def test_missing_data_checked_before_type(file_model: Model) -> None:
    with pytest.raises(ValidationException, match="No file data"):
        await file_model.create({})


async def test_create_directory(file_model: Model) -> None:
    record = await file_model.create({"type": DIRECTORY_TYPE})

    assert record.data is None
    assert "data" not in record.to_dict()
    assert record.type == DIRECTORY_TYPE
    assert record.size is None


async def test_directory_with_data_rejected(file_model: Model) -> None:
    with pytest.raises(ValidationException, match="Directory cannot contain file data"):
        await file_model.create({"type": DIRECTORY_TYPE, "data": b"x"})


async def test_create_with_name_and_dir_then_get(file_model: Model) -> None:
    record = await file_model.create(
        {"data": b"hello world", "name": "hello", "dir": "foo/bar", "type": "text/plain"}
    )
    fetched = await file_model.get(record.id)

    assert fetched is not None
    assert fetched.name == "hello"
    assert fetched.dir == "foo/bar"
    assert fetched.type == "text/plain"
    assert fetched.created_at == record.created_at
    assert await read_all(fetched.data) == b"hello world"


async def test_create_unknown_field_rejected(file_model: Model) -> None:
    with pytest.raises(ValidationException, match='Unknown field "owner"'):
        await file_model.create({"data": b"x", "type": "text/plain", "owner": "me"})


async def test_missing_ids_return_none(file_model: Model) -> None:
    missing = generate_cuid()
    assert await file_model.get(missing) is None
    assert await file_model.patch(missing, {}) is None
    assert await file_model.remove(missing) is None


async def test_list_shape(file_model: Model) -> None:
    page = await file_model.list()
    assert isinstance(page, ListPage)
    assert page.total == 0
    assert page.limit == 10
    assert page.skip == 0
    assert page.data == []


async def test_list_orders_by_creation_and_paginates(file_model: Model) -> None:
    created = [
        await file_model.create({"data": f"file {i}", "name": f"f{i}", "type": "text/plain"})
        for i in range(5)
    ]

    page = await file_model.list({"limit": 2, "skip": 1})
    assert page.total == 5
    assert page.limit == 2
    assert page.skip == 1
    assert [r.id for r in page.data] == [created[1].id, created[2].id]

    everything = await file_model.list(limit=100)
    assert [r.name for r in everything.data] == ["f0", "f1", "f2", "f3", "f4"]


async def test_list_is_partitioned_by_namespace(storage) -> None:
    files = Model(storage, "files")
    notes = Model(storage, "notes")
    await files.create({"type": DIRECTORY_TYPE})

    assert (await files.list()).total == 1
    assert (await notes.list()).total == 0


async def test_list_rejects_unknown_parameter(file_model: Model) -> None:
    with pytest.raises(ValidationException):
        await file_model.list({"query": "x"})


async def test_patch_merges_fields(file_model: Model) -> None:
    record = await file_model.create(
        {"data": b"hello world", "name": "patchme", "type": "text/plain"}
    )

    patched = await file_model.patch(
        record.id, {"name": "me", "dir": "foo/bar", "type": "text/html"}
    )

    assert patched is not None
    assert patched.name == "me"
    assert patched.dir == "foo/bar"
    assert patched.type == "text/html"
    assert patched.created_at == record.created_at
    assert patched.updated_at >= record.updated_at
    assert await read_all(patched.data) == b"hello world"

    fetched = await file_model.get(record.id)
    assert fetched.name == "me"
    assert fetched.type == "text/html"


async def test_patch_keeps_untouched_fields(file_model: Model) -> None:
    record = await file_model.create(
        {"data": b"abc", "name": "keep", "dir": "a/b", "type": "text/plain"}
    )
    patched = await file_model.patch(record.id, {"name": "renamed"})
    assert patched.dir == "a/b"
    assert patched.type == "text/plain"
    assert patched.checksum == record.checksum


async def test_patch_new_data_is_sniffed(file_model: Model) -> None:
    record = await file_model.create({"data": b"plain", "type": "text/plain"})
    patched = await file_model.patch(record.id, {"data": make_png()})

    assert patched.type == "image/png"
    assert await read_all(patched.data) == make_png()


async def test_patch_new_undetectable_data_keeps_type(file_model: Model) -> None:
    record = await file_model.create({"data": b"old", "type": "text/plain"})
    patched = await file_model.patch(record.id, {"data": b"new text"})

    assert patched.type == "text/plain"
    assert await read_all(patched.data) == b"new text"
    assert patched.size == 8


async def test_patch_to_directory_drops_content(file_model: Model) -> None:
    record = await file_model.create({"data": b"bytes", "type": "text/plain"})
    patched = await file_model.patch(record.id, {"type": DIRECTORY_TYPE})

    assert patched.data is None
    assert patched.size is None
    fetched = await file_model.get(record.id)
    assert fetched.data is None


async def test_patch_directory_to_file_requires_data(file_model: Model) -> None:
    record = await file_model.create({"type": DIRECTORY_TYPE})
    with pytest.raises(ValidationException, match="No file data"):
        await file_model.patch(record.id, {"type": "text/plain"})

    unchanged = await file_model.get(record.id)
    assert unchanged.type == DIRECTORY_TYPE


async def test_remove_directory(file_model: Model) -> None:
    created = await file_model.create(
        {"name": "removeme", "dir": "/foo", "type": DIRECTORY_TYPE}
    )

    removed = await file_model.remove(created.id)

    assert removed is not None
    assert removed.data is None
    assert removed.name == "removeme"
    assert removed.dir == "/foo"
    assert removed.type == DIRECTORY_TYPE
    assert await file_model.get(created.id) is None


async def test_remove_file_deletes_content(file_model: Model, storage_root) -> None:
    # Content bytes are deleted with the record; the snapshot keeps metadata only.
    created = await file_model.create(
        {"data": b"hello world", "name": "gone", "type": "text/plain"}
    )

    removed = await file_model.remove(created.id)

    assert removed.name == "gone"
    assert removed.type == "text/plain"
    assert removed.data is None
    assert await file_model.get(created.id) is None
    assert not any(p.is_file() for p in storage_root.rglob("*"))
    assert (await file_model.list()).total == 0


async def test_custom_schema_fields_are_transformed(storage) -> None:
    users = Model(
        storage,
        "users",
        {
            "profile": {"type": "JSON"},
            "joined": {"type": "datetime"},
            "password": {"type": "password"},
        },
    )

    record = await users.create(
        {
            "type": DIRECTORY_TYPE,
            "profile": '{"plan": "pro"}',
            "joined": "2021-01-25T05:09:23Z",
            "password": "helloworld",
        }
    )
    fetched = await users.get(record.id)

    assert fetched["profile"] == {"plan": "pro"}
    assert fetched["joined"].isoformat() == "2021-01-25T05:09:23+00:00"
    assert fetched["password"] != "helloworld"
    assert users.verify_password(fetched, "password", "helloworld")
    assert not users.verify_password(fetched, "password", "wrong")


async def test_custom_schema_defaults_for_absent_fields(storage) -> None:
    model = Model(storage, "defaults", {"meta": {"type": "JSON"}, "at": {"type": "datetime"}})
    record = await model.create({"type": DIRECTORY_TYPE})
    assert record["meta"] == {}
    assert record["at"] is not None


async def test_transform_failure_aborts_create(storage) -> None:
    from objectstore import TransformException

    model = Model(storage, "broken", {"meta": {"type": "JSON"}})
    with pytest.raises(TransformException):
        await model.create({"type": DIRECTORY_TYPE, "meta": "{not json"})
    assert (await model.list()).total == 0


async def test_registered_type_shared_across_models(storage) -> None:
    from objectstore import make_identity_handler

    first = Model(storage, "first")
    first.use("Permission", make_identity_handler())
    second = Model(storage, "second", {"perm": {"type": "permission"}})

    record = await second.create({"type": DIRECTORY_TYPE, "perm": "123"})
    assert record["perm"] == "123"


@pytest.mark.parametrize("spelling", ["Inode/Directory", " inode/directory", "INODE/DIRECTORY "])
async def test_directory_type_is_normalized_before_checks(
    file_model: Model, spelling: str
) -> None:
    with pytest.raises(ValidationException, match="Directory cannot contain file data"):
        await file_model.create({"data": b"hello world", "type": spelling})

    created = await file_model.create({"type": spelling})
    assert created.type == DIRECTORY_TYPE
    assert created.data is None


@pytest.mark.parametrize("spelling", [" inode/directory", "Inode/Directory"])
async def test_patch_to_normalized_directory_drops_content(
    file_model: Model, spelling: str
) -> None:
    record = await file_model.create({"data": b"bytes", "type": "text/plain"})
    patched = await file_model.patch(record.id, {"type": spelling})

    assert patched.type == DIRECTORY_TYPE
    assert patched.data is None
    assert (await file_model.get(record.id)).data is None


@pytest.mark.parametrize("empty", [None, "", "   "])
async def test_patch_cannot_clear_type(file_model: Model, empty) -> None:
    record = await file_model.create({"data": b"bytes", "type": "text/plain"})
    with pytest.raises(ValidationException, match="Type cannot be empty"):
        await file_model.patch(record.id, {"type": empty})

    unchanged = await file_model.get(record.id)
    assert unchanged.type == "text/plain"
    assert await read_all(unchanged.data) == b"bytes"


async def test_unstorable_field_value_is_a_transform_failure(storage) -> None:
    notes = Model(storage, "notes", {"meta": {"type": "JSON"}})
    with pytest.raises(TransformException, match='Field "meta" cannot be stored') as exc_info:
        await notes.create({"type": DIRECTORY_TYPE, "meta": {"s": {1, 2}}})

    assert not isinstance(exc_info.value, StorageException)
    assert exc_info.value.details["field"] == "meta"
    assert (await notes.list()).total == 0


async def test_unstorable_patch_keeps_record(storage) -> None:
    notes = Model(storage, "notes", {"meta": {"type": "JSON"}})
    record = await notes.create({"data": b"old", "type": "text/plain"})
    with pytest.raises(TransformException):
        await notes.patch(record.id, {"data": b"newcontent", "meta": {"s": {1}}})

    fetched = await notes.get(record.id)
    assert await read_all(fetched.data) == b"old"
    assert fetched.get("meta") == {}
