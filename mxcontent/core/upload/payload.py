"""
Upload payload normalization.

Accepted payloads:

- ``bytes``, ``bytearray``, ``memoryview``; ``str`` (UTF-8 encoded)
- ``pathlib.Path``: read with aiofiles, name and type taken from the path
- binary file objects with ``read(n)`` (sync or async, e.g. aiofiles handles)
- async iterables of byte chunks (size unknown)
- ``NamedPayload`` wrapping any of the above with a name and content type
"""
import asyncio
import os
import inspect
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

import aiofiles

DEFAULT_CONTENT_TYPE = 'application/octet-stream'

_BYTES_TYPES = (bytes, bytearray, memoryview)


@dataclass(frozen=True)
class NamedPayload:
    """
    Payload with its metadata attached.

    Example:
        >>> NamedPayload(b"\\x89PNG...", name="cat.png", content_type="image/png")
    """
    data: Any
    name: Optional[str] = None
    content_type: Optional[str] = None


def _guess_type(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return mimetypes.guess_type(name)[0]


def _file_size(fileobj) -> int:
    """Remaining size of a file object, or 0 if it cannot be determined."""
    try:
        remaining = os.fstat(fileobj.fileno()).st_size - fileobj.tell()
    except (AttributeError, OSError, ValueError):
        return 0
    return max(remaining, 0)


class Payload:
    """
    A normalized upload body.

    Attributes:
        name: Declared file name (None if the payload has none)
        content_type: Declared content type (None if unknown)
        size: Total size in bytes; 0 means unknown
    """

    def __init__(
        self,
        source: Any,
        name: Optional[str] = None,
        content_type: Optional[str] = None,
        size: int = 0
    ):
        self._source = source
        self.name = name
        self.content_type = content_type
        self.size = size

    @classmethod
    def wrap(cls, obj: Any) -> 'Payload':
        """
        Normalize any accepted payload.

        Raises:
            TypeError: If the payload type is not supported
        """
        if isinstance(obj, Payload):
            return obj

        if isinstance(obj, NamedPayload):
            inner = cls.wrap(obj.data)
            inner.name = obj.name or inner.name
            inner.content_type = obj.content_type or inner.content_type
            return inner

        if isinstance(obj, str):
            obj = obj.encode('utf-8')

        if isinstance(obj, _BYTES_TYPES):
            data = bytes(obj)
            return cls(data, size=len(data))

        if isinstance(obj, Path):
            return cls(
                obj,
                name=obj.name,
                content_type=_guess_type(obj.name),
                size=obj.stat().st_size
            )

        if hasattr(obj, 'read'):
            raw_name = getattr(obj, 'name', None)
            name = os.path.basename(raw_name) if isinstance(raw_name, str) else None
            return cls(
                obj,
                name=name or None,
                content_type=_guess_type(name),
                size=_file_size(obj)
            )

        if hasattr(obj, '__aiter__'):
            return cls(obj)

        raise TypeError(f"Unsupported payload type: {type(obj).__name__}")

    @property
    def in_memory(self) -> bool:
        return isinstance(self._source, bytes)

    def as_body(self, chunk_size: int) -> Union[bytes, AsyncIterator[bytes]]:
        """Bytes for in-memory payloads, otherwise an async chunk iterator."""
        if self.in_memory:
            return self._source
        return self.chunks(chunk_size)

    async def chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        """Yield the payload in chunks of at most ``chunk_size`` bytes."""
        source = self._source

        if isinstance(source, bytes):
            view = memoryview(source)
            for start in range(0, len(source), chunk_size):
                yield bytes(view[start:start + chunk_size])
            return

        if isinstance(source, Path):
            async with aiofiles.open(source, 'rb') as f:
                while True:
                    chunk = await f.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk
            return

        if hasattr(source, 'read'):
            # sync reads go through the executor so the loop keeps serving other uploads
            loop = asyncio.get_running_loop()
            async_read = inspect.iscoroutinefunction(source.read)
            while True:
                if async_read:
                    chunk = source.read(chunk_size)
                else:
                    chunk = await loop.run_in_executor(None, source.read, chunk_size)
                if inspect.isawaitable(chunk):
                    chunk = await chunk
                if not chunk:
                    break
                yield bytes(chunk)
            return

        async for chunk in source:
            if chunk:
                yield bytes(chunk)
