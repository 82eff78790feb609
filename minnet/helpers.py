"""Helpers for printing, joining and copying frames and datagrams."""

from __future__ import annotations

import copy
from typing import Iterable, TypeVar, Union

from minnet.arp import ARPMessage
from minnet.ethernet import EthernetFrame, EthernetHeader
from minnet.ipv4 import IPv4Datagram, IPv4Header
from minnet.parser import parse
from minnet.tcp_segment import TCPSegment

BytesLike = Union[bytes, bytearray, memoryview]
Cloneable = TypeVar("Cloneable", EthernetFrame, IPv4Datagram)


def pretty_print(data: Union[BytesLike, str], max_length: int = 32) -> str:
    """Escape unprintable bytes and quotes, truncating with "..." past ``max_length``."""
    raw = data.encode() if isinstance(data, str) else bytes(data)
    out = ""
    truncated = False
    for byte in raw:
        if len(out) >= max_length:
            truncated = True
            break
        if 0x20 <= byte <= 0x7E and byte != ord('"'):
            out += chr(byte)
        else:
            out += f"\\x{byte:02x}"
    if truncated:
        out = out[:-3] + "..." if len(out) >= 3 else out + "..."
    return out


def concat(buffers: Iterable[BytesLike]) -> bytes:
    """Join a sequence of buffers into one."""
    return b"".join(bytes(b) for b in buffers)


def clone(obj: Cloneable) -> Cloneable:
    """An independent copy of an Ethernet frame or IPv4 datagram."""
    if not isinstance(obj, (EthernetFrame, IPv4Datagram)):
        raise TypeError(f"cannot clone {type(obj).__name__}")
    return type(obj)(header=copy.copy(obj.header), payload=list(obj.payload))


def summary(frame: EthernetFrame) -> str:
    """A one-line human-readable description of an Ethernet frame."""
    out = f"{frame.header} payload: "
    if frame.header.type == EthernetHeader.TYPE_IPV4:
        dgram = IPv4Datagram()
        if not parse(dgram, list(frame.payload)):
            return out + "bad IPv4 datagram"
        out += f"{dgram.header} payload="
        if dgram.header.proto == IPv4Header.PROTO_TCP:
            segment = TCPSegment()
            if parse(segment, dgram.payload, dgram.header.pseudo_checksum()):
                return out + str(segment)
            return out + "bad TCP segment"
        return out + '"' + pretty_print(concat(dgram.payload)) + '"'
    if frame.header.type == EthernetHeader.TYPE_ARP:
        arp = ARPMessage()
        if parse(arp, list(frame.payload)):
            return out + str(arp)
        return out + "bad ARP message"
    return out + "unknown frame type"