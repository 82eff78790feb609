"""Ethernet addresses, headers and frames."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from minnet.parser import Parser, Serializer

ETHERNET_ADDRESS_LENGTH = 6

#: The Ethernet broadcast address (ff:ff:ff:ff:ff:ff).
ETHERNET_BROADCAST = b"\xff" * ETHERNET_ADDRESS_LENGTH


def ethernet_to_string(address: bytes) -> str:
    """Colon-separated lowercase hex form of an Ethernet address."""
    return ":".join(f"{byte:02x}" for byte in address)


def _write_address(serializer: Serializer, address: bytes, what: str) -> None:
    if len(address) != ETHERNET_ADDRESS_LENGTH:
        raise ValueError(f"{what} must be {ETHERNET_ADDRESS_LENGTH} bytes, got {len(address)}")
    serializer.integer(int.from_bytes(address, "big"), ETHERNET_ADDRESS_LENGTH)


@dataclass
class EthernetHeader:
    """An Ethernet frame header."""

    LENGTH: ClassVar[int] = 14
    TYPE_IPV4: ClassVar[int] = 0x800
    TYPE_ARP: ClassVar[int] = 0x806

    dst: bytes = bytes(ETHERNET_ADDRESS_LENGTH)
    src: bytes = bytes(ETHERNET_ADDRESS_LENGTH)
    type: int = 0

    def __str__(self) -> str:
        if self.type == self.TYPE_IPV4:
            kind = "IPv4"
        elif self.type == self.TYPE_ARP:
            kind = "ARP"
        else:
            kind = f"[unknown type {self.type:x}!]"
        return f"dst={ethernet_to_string(self.dst)} src={ethernet_to_string(self.src)} type={kind}"

    def parse(self, parser: Parser) -> None:
        self.dst = parser.string(ETHERNET_ADDRESS_LENGTH)
        self.src = parser.string(ETHERNET_ADDRESS_LENGTH)
        self.type = parser.integer(2)

    def serialize(self, serializer: Serializer) -> None:
        _write_address(serializer, self.dst, "destination address")
        _write_address(serializer, self.src, "source address")
        serializer.integer(self.type, 2)


@dataclass
class EthernetFrame:
    """An Ethernet header followed by its payload buffers."""

    header: EthernetHeader = field(default_factory=EthernetHeader)
    payload: list[bytes] = field(default_factory=list)

    def parse(self, parser: Parser) -> None:
        self.header.parse(parser)
        self.payload = parser.all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        self.header.serialize(serializer)
        serializer.buffer(self.payload)