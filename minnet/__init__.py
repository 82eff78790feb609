"""Wire formats, checksums, sockets, adapters and an event loop for a user-space TCP/IP stack."""

__version__ = "0.1.0"

__all__ = [
    "adapters",
    "address",
    "arp",
    "checksum",
    "debug",
    "errors",
    "ethernet",
    "eventloop",
    "file_descriptor",
    "helpers",
    "ipv4",
    "parser",
    "sockets",
    "tcp_over_ip",
    "tcp_segment",
]