"""Network sockets (UDP, TCP, packet and Unix-domain) on top of FileDescriptor."""

from __future__ import annotations

import socket
import struct
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar, Union

from minnet.address import Address
from minnet.errors import UnixError
from minnet.file_descriptor import FileDescriptor

BytesLike = Union[bytes, bytearray, memoryview]
T = TypeVar("T")
S = TypeVar("S", bound="Socket")

AF_PACKET = getattr(socket, "AF_PACKET", 17)
SOL_PACKET = getattr(socket, "SOL_PACKET", 263)
PACKET_ADD_MEMBERSHIP = 1
PACKET_MR_PROMISC = 1
SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
MSG_TRUNC = getattr(socket, "MSG_TRUNC", 0)


class Socket(FileDescriptor):
    """Base class for network sockets; normally used through a subclass."""

    def __init__(self, domain: int, socket_type: int, protocol: int = 0) -> None:
        try:
            sock = socket.socket(domain, socket_type, protocol)
        except OSError as exc:
            raise UnixError("socket", exc.errno or 0) from exc
        super().__init__(sock.detach())

    def _take_over(self, fd: FileDescriptor, domain: int, socket_type: int, protocol: int = 0) -> None:
        """Share ``fd``'s descriptor, checking that it is the expected kind of socket."""
        self._internal = fd._internal
        with self._socket_object("getsockopt") as sock:
            actual = (int(sock.family), int(sock.type), int(sock.proto))
        if actual[0] != domain:
            raise RuntimeError("socket domain mismatch")
        if actual[1] != socket_type:
            raise RuntimeError("socket type mismatch")
        if actual[2] != protocol:
            raise RuntimeError("socket protocol mismatch")

    @classmethod
    def _adopt(cls: type[S], fd: FileDescriptor, domain: int, socket_type: int, protocol: int = 0) -> S:
        instance = cls.__new__(cls)
        instance._take_over(fd, domain, socket_type, protocol)
        return instance

    @contextmanager
    def _socket_object(self, attempt: str) -> Iterator[socket.socket]:
        """A temporary socket object over our descriptor, which it never closes."""
        try:
            sock = socket.socket(fileno=self.fd_num())
        except OSError as exc:
            raise UnixError(attempt, exc.errno or 0) from exc
        try:
            yield sock
        finally:
            sock.detach()

    def _with_socket(self, attempt: str, operation: Callable[[socket.socket], T]) -> T | int:
        with self._socket_object(attempt) as sock:
            return self._call(attempt, operation, sock)

    def _getsockopt(self, level: int, option: int) -> int:
        return self._with_socket("getsockopt", lambda s: s.getsockopt(level, option))

    def _setsockopt(self, level: int, option: int, value: Union[int, bytes]) -> None:
        self._with_socket("setsockopt", lambda s: s.setsockopt(level, option, value))

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listen/accept."""
        self._with_socket("bind", lambda s: s.bind(address.sockaddr()))

    def bind_to_device(self, device_name: str) -> None:
        self._setsockopt(socket.SOL_SOCKET, SO_BINDTODEVICE, device_name.encode())

    def connect(self, address: Address) -> None:
        self._with_socket("connect", lambda s: s.connect(address.sockaddr()))

    def shutdown(self, how: int) -> None:
        """Shut down reading (SHUT_RD), writing (SHUT_WR) or both (SHUT_RDWR)."""
        self._with_socket("shutdown", lambda s: s.shutdown(how))
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise ValueError("Socket.shutdown() called with invalid `how`")

    def _get_address(self, attempt: str, getter: Callable[[socket.socket], Any]) -> Address:
        with self._socket_object(attempt) as sock:
            family = int(sock.family)
            sockaddr = self._call(attempt, getter, sock)
        return Address.from_sockaddr(family, sockaddr)

    def local_address(self) -> Address:
        return self._get_address("getsockname", lambda s: s.getsockname())

    def peer_address(self) -> Address:
        return self._get_address("getpeername", lambda s: s.getpeername())

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner (SO_REUSEADDR)."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def throw_if_error(self) -> None:
        """Raise the socket's pending error, if any (seen on non-blocking sockets)."""
        socket_error = self._getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self) -> tuple[Address, bytes]:
        """Receive one datagram; return its sender's address and its payload."""
        size = self.READ_BUFFER_SIZE
        with self._socket_object("recvfrom") as sock:
            family = int(sock.family)
            try:
                payload, source = sock.recvfrom(size, MSG_TRUNC)
            except OSError as exc:
                raise UnixError("recvfrom", exc.errno or 0) from exc
        if len(payload) > size:
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return Address.from_sockaddr(family, source), payload

    def sendto(self, destination: Address, payload: BytesLike) -> None:
        data = bytes(payload)
        self._with_socket("sendto", lambda s: s.sendto(data, destination.sockaddr()))
        self._register_write()

    def send(self, payload: BytesLike) -> None:
        """Send to the connected address (connect() must come first)."""
        data = bytes(payload)
        self._with_socket("send", lambda s: s.send(data))
        self._register_write()


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """An unbound, unconnected TCP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM)

    def listen(self, backlog: int = 16) -> None:
        self._with_socket("listen", lambda s: s.listen(backlog))

    def accept(self) -> "TCPSocket":
        """Wait for an incoming connection and return a socket connected to the peer."""
        self._register_read()
        with self._socket_object("accept") as sock:
            try:
                conn, _peer = sock.accept()
            except OSError as exc:
                raise UnixError("accept", exc.errno or 0) from exc
        fd = FileDescriptor(conn.detach())
        return TCPSocket._adopt(fd, socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)


class PacketSocket(DatagramSocket):
    """A link-layer packet socket."""

    def __init__(self, socket_type: int, protocol: int) -> None:
        super().__init__(AF_PACKET, socket_type, protocol)

    def set_promiscuous(self) -> None:
        """Put the bound interface into promiscuous mode."""
        address = self.local_address()
        if address.family != AF_PACKET:
            raise RuntimeError("Address.as() conversion failure")
        ifname = address.sockaddr()[0]
        try:
            ifindex = socket.if_nametoindex(ifname) if ifname else 0
        except OSError as exc:
            raise UnixError("if_nametoindex", exc.errno or 0) from exc
        request = struct.pack("iHH8s", ifindex, PACKET_MR_PROMISC, 0, b"")
        self._setsockopt(SOL_PACKET, PACKET_ADD_MEMBERSHIP, request)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket over an existing descriptor."""

    def __init__(self, fd: FileDescriptor) -> None:
        self._take_over(fd, socket.AF_UNIX, socket.SOCK_STREAM)


class LocalDatagramSocket(DatagramSocket):
    """An unbound, unconnected Unix-domain datagram socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_DGRAM)