"""Parsing and serialization of big-endian wire formats split across buffers."""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable, Union

BytesLike = Union[bytes, bytearray, memoryview]


def _as_buffers(data: BytesLike | Iterable[BytesLike]) -> list[bytes]:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return [bytes(data)]
    return [bytes(piece) for piece in data]


class Parser:
    """Reads integers and byte strings from a sequence of buffers.

    Errors are sticky: once input runs short, every later read is skipped
    and returns a zero value, and ``has_error()`` reports the failure.
    """

    def __init__(self, buffers: BytesLike | Iterable[BytesLike]) -> None:
        self._segments: deque[bytes] = deque(b for b in _as_buffers(buffers) if b)
        self._size = sum(len(b) for b in self._segments)
        self._skip = 0
        self._error = False

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def _check_size(self, size: int) -> bool:
        if size > self._size:
            self._error = True
        return not self._error

    def remove_prefix(self, n: int) -> None:
        """Discard up to ``n`` bytes from the front of the input."""
        while n > 0 and self._segments:
            front = self._segments[0]
            take = min(n, len(front) - self._skip)
            self._skip += take
            self._size -= take
            n -= take
            if self._skip == len(front):
                self._segments.popleft()
                self._skip = 0

    def truncate(self, length: int) -> None:
        """Drop everything after the first ``length`` remaining bytes."""
        if self._size <= length:
            return
        if length == 0:
            self._segments.clear()
            self._size = 0
            self._skip = 0
            return

        kept: deque[bytes] = deque()
        so_far = 0
        for position, segment in enumerate(self._segments):
            start = self._skip if position == 0 else 0
            available = len(segment) - start
            if so_far + available < length:
                kept.append(segment)
                so_far += available
                continue
            kept.append(segment[: start + (length - so_far)])
            break
        self._segments = kept
        self._size = length

    def all_remaining(self) -> list[bytes]:
        """Take every remaining byte, as a list of buffers."""
        out = self.buffer()
        self._segments.clear()
        self._size = 0
        self._skip = 0
        return out

    def buffer(self) -> list[bytes]:
        """The remaining input as a list of buffers, without consuming it."""
        out = []
        for position, segment in enumerate(self._segments):
            out.append(segment[self._skip :] if position == 0 else segment)
        return out

    def _take(self, size: int) -> bytes:
        parts = []
        while size > 0:
            front = self._segments[0]
            chunk = front[self._skip : self._skip + size]
            parts.append(chunk)
            self.remove_prefix(len(chunk))
            size -= len(chunk)
        return b"".join(parts)

    def string(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        if not self._check_size(size):
            return bytes(size)
        return self._take(size)

    def concatenate_all_remaining(self) -> bytes:
        return b"".join(self.all_remaining())

    def integer(self, size: int) -> int:
        """Read an unsigned big-endian integer of ``size`` bytes."""
        if not self._check_size(size):
            return 0
        return int.from_bytes(self._take(size), "big")


class Serializer:
    """Builds a list of buffers from integers and byte strings."""

    def __init__(self) -> None:
        self._output: list[bytes] = []
        self._pending = bytearray()

    def _flush(self) -> None:
        if self._pending:
            self._output.append(bytes(self._pending))
            self._pending = bytearray()

    def integer(self, value: int, size: int) -> None:
        """Append ``value`` as an unsigned big-endian integer of ``size`` bytes."""
        mask = (1 << (8 * size)) - 1
        self._pending += (value & mask).to_bytes(size, "big")

    def buffer(self, data: BytesLike | Iterable[BytesLike]) -> None:
        """Append one buffer or a sequence of buffers; empty ones are skipped."""
        for piece in _as_buffers(data):
            if piece:
                self._flush()
                self._output.append(piece)

    def finish(self) -> list[bytes]:
        self._flush()
        output, self._output = self._output, []
        return output


def serialize(obj: Any) -> list[bytes]:
    """Serialize any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.finish()


def parse(obj: Any, buffers: BytesLike | Iterable[BytesLike], *args: Any) -> bool:
    """Parse ``buffers`` into ``obj``; return True when parsing succeeded."""
    parser = Parser(buffers)
    obj.parse(parser, *args)
    return not parser.has_error()