"""Datagram adapters carrying TCP over IPv4 on a TUN device, with optional loss."""

from __future__ import annotations

import random
from typing import Optional, Protocol

from minnet.file_descriptor import FileDescriptor
from minnet.ipv4 import IPv4Datagram, IPv4Header
from minnet.parser import parse, serialize
from minnet.tcp_over_ip import FdAdapterConfig, TCPOverIPv4Adapter
from minnet.tcp_segment import TCPMessage, TCPSegment


class DatagramAdapter(Protocol):
    """What LossyFdAdapter needs from the adapter it wraps."""

    config: FdAdapterConfig
    listening: bool

    def read(self) -> Optional[TCPMessage]: ...

    def write(self, message: TCPMessage) -> None: ...

    def tick(self, ms: int) -> None: ...

    def fd(self) -> FileDescriptor: ...


class RandomBits(Protocol):
    """A source of random bits, such as ``random.Random``."""

    def getrandbits(self, k: int) -> int: ...


class TCPOverIPv4OverTunFdAdapter(TCPOverIPv4Adapter):
    """Reads and writes IPv4 datagrams carrying TCP on a TUN device."""

    def __init__(self, tun: FileDescriptor) -> None:
        super().__init__()
        self._tun = tun

    def read(self) -> Optional[TCPMessage]:
        """Read one datagram; return its TCP message if valid and for this connection."""
        buffers = self._tun.read_vectored([IPv4Header.LENGTH, TCPSegment.HEADER_LENGTH, 0])
        datagram = IPv4Datagram()
        if parse(datagram, buffers):
            return self.unwrap_tcp_in_ip(datagram)
        return None

    def write(self, message: TCPMessage) -> None:
        """Wrap ``message`` in an IPv4 datagram and write it to the device."""
        self._tun.write(serialize(self.wrap_tcp_in_ip(message)))

    def fd(self) -> FileDescriptor:
        """The underlying device descriptor."""
        return self._tun


class LossyFdAdapter:
    """Wraps an adapter and drops reads and writes at random.

    The loss rates in the wrapped adapter's configuration are out of 65536.
    """

    def __init__(self, adapter: DatagramAdapter, rng: Optional[RandomBits] = None) -> None:
        self._adapter = adapter
        self._rng: RandomBits = rng if rng is not None else random.Random()

    def _should_drop(self, uplink: bool) -> bool:
        cfg = self._adapter.config
        loss = cfg.loss_rate_up if uplink else cfg.loss_rate_dn
        return loss != 0 and self._rng.getrandbits(16) < loss

    def read(self) -> Optional[TCPMessage]:
        """Read from the wrapped adapter; None if nothing came or it was dropped."""
        message = self._adapter.read()
        if self._should_drop(False):
            return None
        return message

    def write(self, message: TCPMessage) -> None:
        """Write through the wrapped adapter, unless the message is dropped."""
        if self._should_drop(True):
            return
        self._adapter.write(message)

    def set_listening(self, listening: bool) -> None:
        self._adapter.listening = listening

    @property
    def config(self) -> FdAdapterConfig:
        return self._adapter.config

    @config.setter
    def config(self, value: FdAdapterConfig) -> None:
        self._adapter.config = value

    def tick(self, ms: int) -> None:
        self._adapter.tick(ms)

    def fd(self) -> FileDescriptor:
        return self._adapter.fd()