import pytest

from minnet.ethernet import (
    ETHERNET_BROADCAST,
    EthernetFrame,
    EthernetHeader,
    ethernet_to_string,
)
from minnet.parser import parse, serialize

SRC = bytes([0x02, 0, 0, 0, 0, 0x01])
DST = bytes([0x02, 0, 0, 0, 0, 0x02])


def test_broadcast_to_string():
    assert ethernet_to_string(ETHERNET_BROADCAST) == "ff:ff:ff:ff:ff:ff"


def test_to_string_has_six_fields():
    text = ethernet_to_string(SRC)
    assert [int(part, 16) for part in text.split(":")] == list(SRC)


def test_header_str_arp():
    header = EthernetHeader(ETHERNET_BROADCAST, SRC, EthernetHeader.TYPE_ARP)
    assert str(header) == "dst=ff:ff:ff:ff:ff:ff src=02:00:00:00:00:01 type=ARP"


def test_header_str_ipv4_and_unknown():
    assert str(EthernetHeader(DST, SRC, EthernetHeader.TYPE_IPV4)).endswith("type=IPv4")
    assert str(EthernetHeader(DST, SRC, 0x1234)).endswith("type=[unknown type 1234!]")


def test_header_round_trip():
    header = EthernetHeader(DST, SRC, EthernetHeader.TYPE_IPV4)
    wire = b"".join(serialize(header))
    assert len(wire) == EthernetHeader.LENGTH
    assert wire[:6] == DST and wire[6:12] == SRC
    parsed = EthernetHeader()
    assert parse(parsed, [wire])
    assert parsed == header


def test_header_short_input_fails():
    wire = b"".join(serialize(EthernetHeader(DST, SRC, 1)))
    assert not parse(EthernetHeader(), [wire[:-1]])


def test_header_rejects_bad_address_length():
    with pytest.raises(ValueError):
        serialize(EthernetHeader(b"\x01\x02", SRC, 1))


def test_frame_round_trip():
    frame = EthernetFrame(EthernetHeader(DST, SRC, EthernetHeader.TYPE_ARP), [b"hello", b"world"])
    parsed = EthernetFrame()
    assert parse(parsed, serialize(frame))
    assert parsed.header == frame.header
    assert b"".join(parsed.payload) == b"helloworld"


def test_frame_without_payload():
    frame = EthernetFrame(EthernetHeader(DST, SRC, 7))
    parsed = EthernetFrame()
    assert parse(parsed, serialize(frame))
    assert parsed.payload == []
    assert parsed.header.type == 7