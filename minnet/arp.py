"""ARP messages for Ethernet and IPv4."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import ClassVar

from minnet.ethernet import (
    ETHERNET_ADDRESS_LENGTH,
    EthernetHeader,
    ethernet_to_string,
)
from minnet.parser import Parser, Serializer

_IPV4_ADDRESS_LENGTH = 4


def _ip_to_string(value: int) -> str:
    return str(ipaddress.IPv4Address(value & 0xFFFFFFFF))


@dataclass
class ARPMessage:
    """An ARP request or reply."""

    LENGTH: ClassVar[int] = 28
    TYPE_ETHERNET: ClassVar[int] = 1
    OPCODE_REQUEST: ClassVar[int] = 1
    OPCODE_REPLY: ClassVar[int] = 2

    hardware_type: int = 1
    protocol_type: int = EthernetHeader.TYPE_IPV4
    hardware_address_size: int = ETHERNET_ADDRESS_LENGTH
    protocol_address_size: int = _IPV4_ADDRESS_LENGTH
    opcode: int = 0

    sender_ethernet_address: bytes = bytes(ETHERNET_ADDRESS_LENGTH)
    sender_ip_address: int = 0

    target_ethernet_address: bytes = bytes(ETHERNET_ADDRESS_LENGTH)
    target_ip_address: int = 0

    def supported(self) -> bool:
        """Whether this is an Ethernet/IPv4 request or reply."""
        return (
            self.hardware_type == self.TYPE_ETHERNET
            and self.protocol_type == EthernetHeader.TYPE_IPV4
            and self.hardware_address_size == ETHERNET_ADDRESS_LENGTH
            and self.protocol_address_size == _IPV4_ADDRESS_LENGTH
            and self.opcode in (self.OPCODE_REQUEST, self.OPCODE_REPLY)
        )

    def __str__(self) -> str:
        if self.opcode == self.OPCODE_REQUEST:
            opcode = "REQUEST"
        elif self.opcode == self.OPCODE_REPLY:
            opcode = "REPLY"
        else:
            opcode = "(unknown type)"
        return (
            f"opcode={opcode}, "
            f"sender={ethernet_to_string(self.sender_ethernet_address)}/{_ip_to_string(self.sender_ip_address)}, "
            f"target={ethernet_to_string(self.target_ethernet_address)}/{_ip_to_string(self.target_ip_address)}"
        )

    def parse(self, parser: Parser) -> None:
        self.hardware_type = parser.integer(2)
        self.protocol_type = parser.integer(2)
        self.hardware_address_size = parser.integer(1)
        self.protocol_address_size = parser.integer(1)
        self.opcode = parser.integer(2)

        if not self.supported():
            parser.set_error()
            return

        self.sender_ethernet_address = parser.string(ETHERNET_ADDRESS_LENGTH)
        self.sender_ip_address = parser.integer(_IPV4_ADDRESS_LENGTH)
        self.target_ethernet_address = parser.string(ETHERNET_ADDRESS_LENGTH)
        self.target_ip_address = parser.integer(_IPV4_ADDRESS_LENGTH)

    def serialize(self, serializer: Serializer) -> None:
        if not self.supported():
            raise ValueError(
                "ARPMessage: unsupported field combination (must be Ethernet/IP, and request or reply)"
            )
        for address in (self.sender_ethernet_address, self.target_ethernet_address):
            if len(address) != ETHERNET_ADDRESS_LENGTH:
                raise ValueError(f"Ethernet address must be {ETHERNET_ADDRESS_LENGTH} bytes")

        serializer.integer(self.hardware_type, 2)
        serializer.integer(self.protocol_type, 2)
        serializer.integer(self.hardware_address_size, 1)
        serializer.integer(self.protocol_address_size, 1)
        serializer.integer(self.opcode, 2)

        serializer.integer(int.from_bytes(self.sender_ethernet_address, "big"), ETHERNET_ADDRESS_LENGTH)
        serializer.integer(self.sender_ip_address, _IPV4_ADDRESS_LENGTH)
        serializer.integer(int.from_bytes(self.target_ethernet_address, "big"), ETHERNET_ADDRESS_LENGTH)
        serializer.integer(self.target_ip_address, _IPV4_ADDRESS_LENGTH)