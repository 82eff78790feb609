# minnet

Building blocks for a small TCP/IP stack that runs in user space on Linux.
The package parses and serializes the wire formats, computes Internet
checksums, wraps file descriptors and sockets, converts TCP messages to and
from IPv4 datagrams, and drives callbacks with a poll-based event loop.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

| Module | Contents |
| --- | --- |
| `minnet.parser` | `Parser` and `Serializer` for big-endian fields over lists of byte buffers, plus the `parse` and `serialize` helpers |
| `minnet.checksum` | `InternetChecksum`, the ones'-complement sum used by IPv4 and TCP |
| `minnet.ethernet` | `EthernetHeader`, `EthernetFrame`, `ethernet_to_string`, `ETHERNET_BROADCAST` |
| `minnet.arp` | `ARPMessage` |
| `minnet.ipv4` | `IPv4Header`, `IPv4Datagram` |
| `minnet.tcp_segment` | `TCPSenderMessage`, `TCPReceiverMessage`, `UserDatagramInfo`, `TCPMessage`, `TCPSegment` |
| `minnet.helpers` | `pretty_print`, `summary`, `concat`, `clone` |
| `minnet.address` | `Address`, an IPv4/IPv6 socket address with name resolution |
| `minnet.file_descriptor` | `FileDescriptor`, a shared handle that counts reads and writes and tracks EOF |
| `minnet.sockets` | `UDPSocket`, `TCPSocket`, `PacketSocket`, `LocalStreamSocket`, `LocalDatagramSocket` |
| `minnet.eventloop` | `EventLoop`, `Direction`, `Result`, `RuleHandle` |
| `minnet.tcp_over_ip` | `TCPConfig`, `FdAdapterConfig`, `FdAdapterBase`, `TCPOverIPv4Adapter` |
| `minnet.adapters` | `TCPOverIPv4OverTunFdAdapter`, `LossyFdAdapter` |
| `minnet.debug` | `debug`, `debug_str`, `set_debug_handler`, `reset_debug_handler` |
| `minnet.errors` | `TaggedError`, `UnixError`, `check_system_call`, `notnull` |

## Examples

Build an IPv4 header, fill in its checksum and read it back:

```python
from minnet.ipv4 import IPv4Header
from minnet.parser import parse, serialize

header = IPv4Header(length=40, src=0x0A000001, dst=0x0A000002)
header.compute_checksum()
wire = serialize(header)

decoded = IPv4Header()
assert parse(decoded, wire)
print(decoded)  # IPv4 len=40 proto=6 ttl=128 src=10.0.0.1 dst=10.0.0.2
```

Compute an Internet checksum directly:

```python
from minnet.checksum import InternetChecksum

check = InternetChecksum()
check.add(b"\x45\x00\x00\x1c")
print(hex(check.value()))  # 0xbae3
```

Drive callbacks from an event loop:

```python
from minnet.eventloop import EventLoop, Result

loop = EventLoop()
pending = ["a", "b"]
category = loop.add_category("drain")
loop.add_rule(category, lambda: pending.pop(), lambda: bool(pending))
while loop.wait_next_event(10) is not Result.EXIT:
    pass
```

Rules tied to a file descriptor are added with `EventLoop.add_fd_rule`,
giving a `Direction.IN` or `Direction.OUT` and optional cancel and error
callbacks.

Debug messages go to stderr unless redirected:

```python
from minnet.debug import debug, reset_debug_handler, set_debug_handler

messages = []
set_debug_handler(messages.append)
debug("sent {} bytes", 42)
reset_debug_handler()
print(messages)  # ['sent 42 bytes']
```

## What it does not do

- It does not open or create TUN/TAP devices. `TCPOverIPv4OverTunFdAdapter`
  takes a `FileDescriptor` that the caller has already opened on such a
  device.
- It has no TCP sender, receiver or connection state machine; it supplies
  the messages, segments and adapters such a stack is built from.
- It installs no command-line program.

Packet sockets (`PacketSocket`) need the matching privileges on Linux.