import errno
import os
import socket

import pytest

from minnet.address import Address
from minnet.errors import UnixError
from minnet.file_descriptor import FileDescriptor
from minnet.sockets import (
    LocalDatagramSocket,
    LocalStreamSocket,
    TCPSocket,
    UDPSocket,
)


def _local_pair():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    return LocalStreamSocket(FileDescriptor(a.detach())), LocalStreamSocket(FileDescriptor(b.detach()))


def _loopback():
    return Address.from_ip("127.0.0.1", 0)


def test_udp_sendto_and_recv():
    with UDPSocket() as receiver, UDPSocket() as sender:
        receiver.bind(_loopback())
        sender.bind(_loopback())
        sender.sendto(receiver.local_address(), b"datagram payload")
        source, payload = receiver.recv()
        assert payload == b"datagram payload"
        assert source == sender.local_address()
        assert receiver.read_count() == 1
        assert sender.write_count() == 1


def test_udp_connected_send():
    with UDPSocket() as receiver, UDPSocket() as sender:
        receiver.bind(_loopback())
        sender.connect(receiver.local_address())
        assert sender.peer_address() == receiver.local_address()
        sender.send(b"xyz")
        _source, payload = receiver.recv()
        assert payload == b"xyz"


def test_unbound_udp_local_address():
    with UDPSocket() as sock:
        assert str(sock.local_address()) == "0.0.0.0:0"


def test_tcp_listen_accept_exchange():
    with TCPSocket() as server, TCPSocket() as client:
        server.set_reuseaddr()
        server.bind(_loopback())
        server.listen()
        client.connect(server.local_address())
        conn = server.accept()
        try:
            assert server.read_count() == 1
            assert conn.peer_address() == client.local_address()
            assert conn.local_address() == server.local_address()
            client.throw_if_error()
            assert client.write(b"hello") == 5
            assert conn.read() == b"hello"
        finally:
            conn.close()
        assert conn.closed()


def test_set_reuseaddr_sets_option():
    with TCPSocket() as sock:
        sock.set_reuseaddr()
        probe = socket.socket(fileno=os.dup(sock.fd_num()))
        try:
            assert probe.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) == 1
        finally:
            probe.close()


def test_connect_refused_raises_unix_error():
    with TCPSocket() as placeholder:
        placeholder.bind(_loopback())
        target = placeholder.local_address()
    with TCPSocket() as client:
        with pytest.raises(UnixError) as info:
            client.connect(target)
    assert info.value.error_code == errno.ECONNREFUSED
    assert str(info.value).startswith("connect: ")


def test_shutdown_write_counts_and_peer_sees_eof():
    left, right = _local_pair()
    with left, right:
        left.shutdown(socket.SHUT_WR)
        assert left.write_count() == 1
        assert left.read_count() == 0
        assert right.read() == b""
        assert right.eof()


def test_shutdown_both_counts_read_and_write():
    left, right = _local_pair()
    with left, right:
        left.shutdown(socket.SHUT_RDWR)
        assert (left.read_count(), left.write_count()) == (1, 1)


def test_shutdown_invalid_how():
    left, right = _local_pair()
    with left, right:
        with pytest.raises(UnixError) as info:
            left.shutdown(99)
        assert info.value.attempt == "shutdown"


def test_local_stream_pair_exchanges_data():
    left, right = _local_pair()
    with left, right:
        left.write(b"ping")
        assert right.read() == b"ping"


def test_local_stream_rejects_wrong_domain():
    fd = FileDescriptor(socket.socket(socket.AF_INET, socket.SOCK_STREAM).detach())
    with fd:
        with pytest.raises(RuntimeError, match="socket domain mismatch"):
            LocalStreamSocket(fd)


def test_local_stream_rejects_wrong_type():
    fd = FileDescriptor(socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM).detach())
    with fd:
        with pytest.raises(RuntimeError, match="socket type mismatch"):
            LocalStreamSocket(fd)


def test_local_datagram_socket(tmp_path):
    path = str(tmp_path / "sock")
    with LocalDatagramSocket() as receiver, LocalDatagramSocket() as sender:
        receiver.bind(Address.from_sockaddr(socket.AF_UNIX, path))
        assert receiver.local_address().sockaddr() == path
        sender.sendto(Address.from_sockaddr(socket.AF_UNIX, path), b"local")
        _source, payload = receiver.recv()
        assert payload == b"local"


def test_bind_to_unknown_device_fails():
    with UDPSocket() as sock:
        with pytest.raises(UnixError) as info:
            sock.bind_to_device("nosuchdev0")
        assert info.value.attempt == "setsockopt"


def test_context_manager_closes_socket():
    with UDPSocket() as sock:
        assert not sock.closed()
    assert sock.closed()