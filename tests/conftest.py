"""Pytest configuration and fixtures for objectstore.

Storage fixtures write under pytest's tmp_path; bcrypt runs at the minimum
cost factor so password tests stay fast.
"""

import secrets
import struct
import zlib
from pathlib import Path

import pytest

from objectstore import Model, Settings, TypeRegistry, create_storage
from objectstore.infrastructure.external.storage.local_storage import LocalStorageService
from objectstore.infrastructure.security.password import BcryptPasswordHasher


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)


def make_png(width: int = 1, height: int = 1) -> bytes:
    """Smallest valid grayscale PNG of the given size."""
    header = struct.pack(">IIBBBBB", width, height, 8, 0, 0, 0, 0)
    raw = b"".join(b"\x00" + b"\x00" * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(raw))
        + _png_chunk(b"IEND", b"")
    )


async def read_all(stream) -> bytes:
    """Concatenate an async byte stream."""
    return b"".join([chunk async for chunk in stream])


@pytest.fixture
def storage_secret() -> str:
    return secrets.token_hex(16)


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "storage"


@pytest.fixture
def settings(storage_secret: str, storage_root: Path) -> Settings:
    """Settings for a local store under tmp_path."""
    return Settings(
        storage_secret=storage_secret,
        storage_root=str(storage_root),
        password_bcrypt_rounds=4,
        _env_file=None,
    )


@pytest.fixture
def types() -> TypeRegistry:
    return TypeRegistry(password_hasher=BcryptPasswordHasher(rounds=4))


@pytest.fixture
def storage(settings: Settings, types: TypeRegistry) -> LocalStorageService:
    store = create_storage(settings=settings, types=types)
    assert isinstance(store, LocalStorageService)
    return store


@pytest.fixture
def file_model(storage: LocalStorageService) -> Model:
    """Model over the built-in file schema."""
    return Model(storage, "tests")
