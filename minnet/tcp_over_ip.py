"""Configuration for TCP peers and conversion of TCP messages to and from IPv4."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import ClassVar, Optional

from minnet.address import Address
from minnet.ipv4 import IPv4Datagram, IPv4Header
from minnet.parser import parse, serialize
from minnet.tcp_segment import TCPMessage, TCPSegment, UserDatagramInfo


def _any_address() -> Address:
    return Address.from_ipv4_numeric(0)


def _address(numeric_ip: int, port: int) -> Address:
    return Address.from_ip(str(ipaddress.IPv4Address(numeric_ip)), port)


@dataclass
class TCPConfig:
    """Settings for a TCP sender and receiver."""

    DEFAULT_CAPACITY: ClassVar[int] = 64000
    MAX_PAYLOAD_SIZE: ClassVar[int] = 1000
    TIMEOUT_DFLT: ClassVar[int] = 1000
    MAX_RETX_ATTEMPTS: ClassVar[int] = 8

    rt_timeout: int = TIMEOUT_DFLT  # initial retransmission timeout, in ms
    recv_capacity: int = DEFAULT_CAPACITY
    send_capacity: int = DEFAULT_CAPACITY
    isn: int = 137  # initial sequence number


@dataclass
class FdAdapterConfig:
    """Addresses and loss rates for a datagram adapter."""

    source: Address = field(default_factory=_any_address)
    destination: Address = field(default_factory=_any_address)
    loss_rate_dn: int = 0  # downlink loss rate, out of 65536
    loss_rate_up: int = 0  # uplink loss rate, out of 65536


class FdAdapterBase:
    """State shared by datagram adapters: their configuration and listening flag."""

    def __init__(self) -> None:
        self.config = FdAdapterConfig()
        self.listening = False
        self.elapsed_ms = 0

    def tick(self, ms: int) -> None:
        """Called periodically as time passes; keeps a running total of elapsed time."""
        self.elapsed_ms += ms


class TCPOverIPv4Adapter(FdAdapterBase):
    """Converts TCP messages to IPv4 datagrams and back, filtering by connection."""

    def unwrap_tcp_in_ip(self, datagram: IPv4Datagram) -> Optional[TCPMessage]:
        """The TCP message in ``datagram``, or None if invalid or unrelated.

        While listening, a SYN fixes the connection's addresses and ports
        and ends listening.
        """
        cfg = self.config
        # binding to 0.0.0.0 is allowed, with replies coming from the address contacted
        if not self.listening and datagram.header.dst != cfg.source.ipv4_numeric():
            return None
        if not self.listening and datagram.header.src != cfg.destination.ipv4_numeric():
            return None
        if datagram.header.proto != IPv4Header.PROTO_TCP:
            return None

        segment = TCPSegment()
        if not parse(segment, list(datagram.payload), datagram.header.pseudo_checksum()):
            return None

        if segment.udinfo.dst_port != cfg.source.port():
            return None

        if self.listening:
            sender = segment.message.sender
            if not (sender.syn and not sender.rst):
                return None
            cfg.source = _address(datagram.header.dst, cfg.source.port())
            cfg.destination = _address(datagram.header.src, segment.udinfo.src_port)
            self.listening = False

        if segment.udinfo.src_port != cfg.destination.port():
            return None

        return segment.message

    def wrap_tcp_in_ip(self, message: TCPMessage) -> IPv4Datagram:
        """A checksummed IPv4 datagram carrying ``message`` between our addresses."""
        cfg = self.config
        segment = TCPSegment(
            message=message,
            udinfo=UserDatagramInfo(src_port=cfg.source.port(), dst_port=cfg.destination.port()),
        )

        datagram = IPv4Datagram()
        datagram.header.src = cfg.source.ipv4_numeric()
        datagram.header.dst = cfg.destination.ipv4_numeric()
        datagram.header.length = (
            datagram.header.hlen * 4 + TCPSegment.HEADER_LENGTH + len(message.sender.payload)
        )

        segment.compute_checksum(datagram.header.pseudo_checksum())
        datagram.header.compute_checksum()
        datagram.payload = serialize(segment)
        return datagram