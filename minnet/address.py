"""Socket addresses, with name resolution for IPv4."""

from __future__ import annotations

import ipaddress
import socket
from typing import Any

from minnet.errors import ErrorCategory, TaggedError

_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)
_AI_ALL = getattr(socket, "AI_ALL", 0)


def _gai_error(attempt: str, exc: socket.gaierror) -> TaggedError:
    code = exc.errno if isinstance(exc.errno, int) else 0
    message = exc.strerror or str(exc)
    category = ErrorCategory("gai_error_category", lambda _code: message)
    return TaggedError(category, attempt, code)


def _check_port(port: int) -> int:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return port


class Address:
    """An immutable socket address: an address family plus its sockaddr value."""

    __slots__ = ("_family", "_sockaddr")

    def __init__(self, family: int, sockaddr: Any) -> None:
        self._family = int(family)
        self._sockaddr = tuple(sockaddr) if isinstance(sockaddr, list) else sockaddr

    @classmethod
    def _lookup(cls, node: str, service: str, flags: int) -> "Address":
        try:
            results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
        except socket.gaierror as exc:
            raise _gai_error(f"getaddrinfo({node}, {service})", exc) from exc
        if not results:
            raise RuntimeError("getaddrinfo returned successfully but with no results")
        family, _type, _proto, _canonname, sockaddr = results[0]
        return cls(family, sockaddr)

    @classmethod
    def resolve(cls, hostname: str, service: str) -> "Address":
        """Resolve a host name and a service name or number to an IPv4 address."""
        return cls._lookup(hostname, service, _AI_ALL)

    @classmethod
    def from_ip(cls, ip: str, port: int = 0) -> "Address":
        """Build from a dotted-quad string and a numeric port, without any lookup."""
        _check_port(port)
        return cls._lookup(ip, str(port), socket.AI_NUMERICHOST | socket.AI_NUMERICSERV)

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: Any) -> "Address":
        """Wrap a sockaddr value as returned by the socket module."""
        return cls(family, sockaddr)

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> "Address":
        """Build an IPv4 address (port 0) from its 32-bit numeric value."""
        if not 0 <= ip_address <= 0xFFFFFFFF:
            raise ValueError(f"IPv4 address out of range: {ip_address}")
        return cls(socket.AF_INET, (str(ipaddress.IPv4Address(ip_address)), 0))

    @property
    def family(self) -> int:
        return self._family

    def sockaddr(self) -> Any:
        """The sockaddr value, as the socket module expects it."""
        return self._sockaddr

    def ip_port(self) -> tuple[str, int]:
        """Numeric IP address string and port number."""
        if self._family not in _INTERNET_FAMILIES:
            raise RuntimeError("Address.ip_port() called on non-Internet address")
        try:
            host, service = socket.getnameinfo(
                self._sockaddr, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
            )
        except socket.gaierror as exc:
            raise _gai_error("getnameinfo", exc) from exc
        return host, int(service)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """The IPv4 address as an integer in host byte order."""
        if self._family != socket.AF_INET:
            raise RuntimeError("ipv4_numeric called on non-IPV4 address")
        return int(ipaddress.IPv4Address(self._sockaddr[0]))

    def __str__(self) -> str:
        if self._family in _INTERNET_FAMILIES:
            ip, port = self.ip_port()
            return f"{ip}:{port}"
        return "(non-Internet address)"

    def __repr__(self) -> str:
        return f"Address(family={self._family!r}, sockaddr={self._sockaddr!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))