"""The Internet checksum (one's-complement sum of 16-bit words)."""

from __future__ import annotations

from typing import Iterable, Union

BytesLike = Union[bytes, bytearray, memoryview]


class InternetChecksum:
    """Accumulates data and yields its Internet checksum.

    Data may be added in pieces of any length; odd-length pieces are
    handled so that the result equals that of the concatenated data.
    """

    def __init__(self, total: int = 0) -> None:
        self._sum = total & 0xFFFFFFFF
        self._odd = False

    def add(self, data: BytesLike | Iterable[BytesLike]) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            for piece in data:
                self.add(piece)
            return
        for byte in bytes(data):
            self._sum = (self._sum + (byte if self._odd else byte << 8)) & 0xFFFFFFFF
            self._odd = not self._odd

    def value(self) -> int:
        folded = self._sum
        while folded > 0xFFFF:
            folded = (folded >> 16) + (folded & 0xFFFF)
        return ~folded & 0xFFFF