"""Turn a streamed object body into one contiguous byte buffer.

Store clients hand back bodies in several shapes: a reader that returns the
whole payload in one call, an async iterator of chunks, or a synchronous
chunk producer. :func:`materialize` checks for those capabilities in that
order and always returns ``bytes`` (or ``None`` for an empty body).
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from anyio import to_thread

LOG = logging.getLogger("asset_relay.body")


async def _call(func: Any) -> Any:
    if inspect.iscoroutinefunction(func):
        return await func()
    result = await to_thread.run_sync(func)
    if inspect.isawaitable(result):
        return await result
    return result


def _drain(chunks: Any) -> bytes:
    return b"".join(bytes(chunk) for chunk in chunks)


async def _read_all(body: Any) -> bytes | None:
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)

    read = getattr(body, "read", None)
    if callable(read):
        payload = await _call(read)
        return None if payload is None else bytes(payload)

    if hasattr(body, "__aiter__"):
        parts = [bytes(chunk) async for chunk in body]
        return b"".join(parts)

    iter_chunks = getattr(body, "iter_chunks", None)
    if callable(iter_chunks):
        return await to_thread.run_sync(_drain, iter_chunks())

    if hasattr(body, "__iter__") and not isinstance(body, str):
        return await to_thread.run_sync(_drain, body)

    LOG.debug("unsupported body shape %r", type(body))
    return None


async def _close(body: Any) -> None:
    close = getattr(body, "close", None)
    if not callable(close):
        return
    await _call(close)


async def materialize(body: Any) -> bytes | None:
    """Read ``body`` fully and return its bytes.

    Returns ``None`` when the body is absent, empty, or of a shape that
    cannot be read.
    """
    if body is None:
        return None
    try:
        payload = await _read_all(body)
    finally:
        if not isinstance(body, (bytes, bytearray, memoryview)):
            await _close(body)
    return payload or None
