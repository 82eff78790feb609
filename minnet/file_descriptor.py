"""A reference-counted handle to a kernel file descriptor."""

from __future__ import annotations

import errno
import os
import sys
from typing import Callable, Iterable, TypeVar, Union

from minnet.errors import UnixError

BytesLike = Union[bytes, bytearray, memoryview]
T = TypeVar("T")

_WOULD_BLOCK = (errno.EAGAIN, errno.EWOULDBLOCK, errno.EINPROGRESS)


class _FDWrapper:
    """The shared state behind one kernel file descriptor; closes it when collected."""

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid fd number:{fd}")
        self.fd = fd
        self.eof = False
        self.closed = False
        self.read_count = 0
        self.write_count = 0
        try:
            self.non_blocking = not os.get_blocking(fd)
        except OSError as exc:
            self.closed = True
            raise UnixError("fcntl", exc.errno or 0) from exc

    def call(self, attempt: str, func: Callable[..., T], *args: object) -> T | int:
        try:
            return func(*args)
        except OSError as exc:
            if self.non_blocking and exc.errno in _WOULD_BLOCK:
                return 0
            raise UnixError(attempt, exc.errno or 0) from exc

    def close(self) -> None:
        self.call("close", os.close, self.fd)
        self.eof = self.closed = True

    def __del__(self) -> None:
        if getattr(self, "closed", True):
            return
        try:
            self.close()
        except Exception as exc:  # never raise from a finalizer
            sys.stderr.write(f"Exception destructing FDWrapper: {exc}\n")


class FileDescriptor:
    """A handle to a file descriptor; copies made by duplicate() share it.

    The descriptor is closed when the last handle goes away, or on close().
    """

    READ_BUFFER_SIZE = 16384

    def __init__(self, fd: int) -> None:
        self._internal = _FDWrapper(fd)

    @classmethod
    def _sharing(cls, wrapper: _FDWrapper) -> "FileDescriptor":
        handle = cls.__new__(cls)
        handle._internal = wrapper
        return handle

    # Helpers for subclasses.
    def _set_eof(self) -> None:
        self._internal.eof = True

    def _register_read(self) -> None:
        self._internal.read_count += 1

    def _register_write(self) -> None:
        self._internal.write_count += 1

    def _call(self, attempt: str, func: Callable[..., T], *args: object) -> T | int:
        """Run a system call, raising UnixError; would-block yields 0 if non-blocking."""
        return self._internal.call(attempt, func, *args)

    def read(self, limit: int = READ_BUFFER_SIZE) -> bytes:
        """Read up to ``limit`` bytes; empty on end of file or when it would block."""
        if limit <= 0:
            limit = self.READ_BUFFER_SIZE
        try:
            data = os.read(self.fd_num(), limit)
        except OSError as exc:
            if self._internal.non_blocking and exc.errno in _WOULD_BLOCK:
                return b""
            raise UnixError("read", exc.errno or 0) from exc

        self._register_read()
        if not data:
            self._internal.eof = True
        if len(data) > limit:
            raise RuntimeError("read() read more than requested")
        return data

    def read_vectored(self, sizes: Iterable[int]) -> list[bytes]:
        """Scatter one read across buffers of the given sizes.

        The last buffer always gets READ_BUFFER_SIZE bytes of room. Each buffer
        comes back holding what was read into it. When the read would block,
        the result is an empty list.
        """
        sizes = list(sizes)
        if not sizes:
            return []
        sizes[-1] = self.READ_BUFFER_SIZE
        buffers = [bytearray(size) for size in sizes]
        try:
            bytes_read = os.readv(self.fd_num(), buffers)
        except OSError as exc:
            if self._internal.non_blocking and exc.errno in _WOULD_BLOCK:
                return []
            raise UnixError("read", exc.errno or 0) from exc

        self._register_read()
        if bytes_read > sum(sizes):
            raise RuntimeError("read() read more than requested")

        out = []
        remaining = bytes_read
        for buf in buffers:
            take = min(remaining, len(buf))
            out.append(bytes(buf[:take]))
            remaining -= take
        return out

    def write(self, data: BytesLike | Iterable[BytesLike]) -> int:
        """Write one buffer or a sequence of buffers; return the bytes written."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            buffers = [bytes(data)]
        else:
            buffers = [bytes(piece) for piece in data]
        total = sum(len(b) for b in buffers)

        written = self._call("writev", os.writev, self.fd_num(), buffers)
        self._register_write()

        if written == 0 and total != 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def close(self) -> None:
        self._internal.close()

    def duplicate(self) -> "FileDescriptor":
        """Another handle to the same descriptor, sharing its state."""
        return FileDescriptor._sharing(self._internal)

    def set_blocking(self, blocking: bool) -> None:
        try:
            os.set_blocking(self.fd_num(), blocking)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno or 0) from exc
        self._internal.non_blocking = not blocking

    def fd_num(self) -> int:
        return self._internal.fd

    def eof(self) -> bool:
        return self._internal.eof

    def closed(self) -> bool:
        return self._internal.closed

    def read_count(self) -> int:
        return self._internal.read_count

    def write_count(self) -> int:
        return self._internal.write_count

    def __enter__(self) -> "FileDescriptor":
        return self

    def __exit__(self, *args: object) -> None:
        if not self.closed():
            self.close()