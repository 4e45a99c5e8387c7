"""Bounded views over seekable streams and SHA-1 helpers."""

from __future__ import annotations

import hashlib
import io
from typing import IO

BUFFER_SIZE = 16 * 1024


class PartialStream(io.RawIOBase):
    """A zero-based window ``[position, position + length)`` over ``backing``.

    Reads never cross the window's end and writes are truncated to its
    remaining capacity. Several views may share one backing stream; they
    share its cursor, so they must be used one at a time.
    """

    def __init__(
        self,
        backing: IO[bytes],
        position: int,
        length: int,
        *,
        writable: bool = False,
    ) -> None:
        super().__init__()
        if position < 0:
            raise ValueError(f"position must be non-negative, got {position}")
        if length < 0:
            raise ValueError(f"length must be non-negative, got {length}")
        if not backing.seekable():
            raise ValueError("backing stream must be seekable")
        if writable:
            if not backing.writable():
                raise ValueError("backing stream must be writable")
        elif not backing.readable():
            raise ValueError("backing stream must be readable")

        self._backing = backing
        self._position = position
        self._length = length
        self._offset = 0
        self._writable = writable
        backing.seek(position, io.SEEK_SET)

    @property
    def position(self) -> int:
        return self._position

    @property
    def length(self) -> int:
        return self._length

    @property
    def remaining(self) -> int:
        return max(0, self._length - self._offset)

    def readable(self) -> bool:
        return not self._writable

    def writable(self) -> bool:
        return self._writable

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._offset

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._offset + offset
        elif whence == io.SEEK_END:
            target = self._length + offset
        else:
            raise ValueError(f"invalid whence: {whence}")
        if target < 0:
            raise ValueError(f"negative seek position {target}")
        self._offset = target
        return self._offset

    def _sync_backing(self) -> None:
        self._backing.seek(self._position + self._offset, io.SEEK_SET)

    def readinto(self, buffer) -> int:  # type: ignore[no-untyped-def, override]
        if self._writable:
            raise io.UnsupportedOperation("read")
        view = memoryview(buffer).cast("B")
        count = min(len(view), self.remaining)
        if count == 0:
            return 0
        self._sync_backing()
        data = self._backing.read(count)
        n = len(data)
        view[:n] = data
        self._offset += n
        return n

    def write(self, data) -> int:  # type: ignore[no-untyped-def, override]
        if not self._writable:
            raise io.UnsupportedOperation("write")
        view = memoryview(data).cast("B")
        count = min(len(view), self.remaining)
        if count == 0:
            return 0
        self._sync_backing()
        written = self._backing.write(view[:count])
        written = count if written is None else written
        self._offset += written
        return written

    def flush(self) -> None:
        if self._writable and not self._backing.closed:
            self._backing.flush()


def sha1_hexdigest(stream: IO[bytes], length: int = -1) -> str:
    """SHA-1 of ``length`` bytes (or up to EOF) from the current position.

    The stream position is restored afterwards.
    """
    start = stream.tell()
    digest = hashlib.sha1()
    remaining = length
    while remaining != 0:
        size = BUFFER_SIZE if remaining < 0 else min(BUFFER_SIZE, remaining)
        chunk = stream.read(size)
        if not chunk:
            break
        digest.update(chunk)
        if remaining > 0:
            remaining -= len(chunk)
    stream.seek(start, io.SEEK_SET)
    return digest.hexdigest()


__all__ = ["BUFFER_SIZE", "PartialStream", "sha1_hexdigest"]
