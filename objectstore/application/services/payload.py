"""Normalization of caller payloads into async byte streams.

Callers may hand over bytes, text, binary file objects, (async) iterables
of chunks, or another record's content stream. Everything becomes an
AsyncIterator[bytes] so storage can stream it without buffering.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import Any

from objectstore.domain.exceptions import ValidationException

_FILE_CHUNK_SIZE = 64 * 1024


def _to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, bytearray | memoryview):
        return bytes(chunk)
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    raise ValidationException(
        f"File data chunks must be bytes or str, got {type(chunk).__name__}",
        field="data",
    )


async def _from_file(file_obj: Any) -> AsyncIterator[bytes]:
    while True:
        chunk = await asyncio.to_thread(file_obj.read, _FILE_CHUNK_SIZE)
        if not chunk:
            break
        yield _to_bytes(chunk)


async def _from_iterable(chunks: Iterable[Any]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield _to_bytes(chunk)


async def _from_async_iterable(chunks: AsyncIterable[Any]) -> AsyncIterator[bytes]:
    async for chunk in chunks:
        yield _to_bytes(chunk)


def iter_payload(data: Any) -> AsyncIterator[bytes]:
    """Return an async byte iterator over data.

    Raises:
        ValidationException: data is of an unsupported kind.
    """
    if isinstance(data, bytes | bytearray | memoryview | str):
        return _from_iterable([data])
    if hasattr(data, "read") and callable(data.read) and not hasattr(data, "__aiter__"):
        return _from_file(data)
    if hasattr(data, "__aiter__"):
        return _from_async_iterable(data)
    if isinstance(data, Iterable):
        return _from_iterable(data)
    raise ValidationException(
        f"Unsupported file data type: {type(data).__name__}", field="data"
    )


async def _chain(head: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    if head:
        yield head
    async for chunk in rest:
        yield chunk


async def peek_payload(
    stream: AsyncIterator[bytes], size: int
) -> tuple[bytes, AsyncIterator[bytes]]:
    """Read up to size leading bytes without losing them.

    Returns the head and an iterator that yields the complete payload,
    head included. Only the head is held in memory.
    """
    buffered: list[bytes] = []
    total = 0
    while total < size:
        try:
            chunk = await anext(stream)
        except StopAsyncIteration:
            break
        buffered.append(chunk)
        total += len(chunk)
    joined = b"".join(buffered)
    return joined[:size], _chain(joined, stream)
