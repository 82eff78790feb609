from dataclasses import dataclass

import pytest

from minnet.parser import Parser, Serializer, parse, serialize


@pytest.mark.parametrize("size", [1, 2, 4, 8])
def test_integer_round_trip(size):
    value = (1 << (8 * size)) - 3
    s = Serializer()
    s.integer(value, size)
    data = s.finish()
    p = Parser(data)
    assert p.integer(size) == value
    assert not p.has_error()


def test_serializer_integer_is_big_endian():
    s = Serializer()
    s.integer(0x1234, 2)
    assert s.finish() == [b"\x12\x34"]


def test_serializer_masks_to_size():
    s = Serializer()
    s.integer(0x1FF, 1)
    p = Parser(s.finish())
    assert p.integer(1) == 0x1FF & 0xFF


def test_integer_across_buffer_boundaries():
    split = Parser([b"\x12", b"\x34\x56", b"\x78"])
    whole = Parser([b"\x12\x34\x56\x78"])
    assert split.integer(4) == whole.integer(4)


def test_short_input_sets_sticky_error():
    p = Parser([b"\x01"])
    assert p.integer(2) == 0
    assert p.has_error()
    assert p.integer(1) == 0
    assert p.has_error()


def test_set_error():
    p = Parser([b"abc"])
    p.set_error()
    assert p.has_error()
    assert p.string(1) == bytes(1)


def test_string_spans_buffers():
    p = Parser([b"ab", b"cd"])
    assert p.string(3) == b"abcd"[:3]
    assert p.concatenate_all_remaining() == b"abcd"[3:]


def test_remove_prefix_then_all_remaining():
    p = Parser([b"abc", b"def"])
    p.remove_prefix(4)
    assert b"".join(p.all_remaining()) == b"abcdef"[4:]
    assert p.all_remaining() == []


def test_remove_prefix_beyond_input_does_not_error():
    p = Parser([b"abc"])
    p.remove_prefix(10)
    assert not p.has_error()
    assert p.buffer() == []


def test_buffer_is_not_destructive():
    p = Parser([b"ab", b"cd"])
    p.remove_prefix(1)
    assert p.buffer() == [b"ab"[1:], b"cd"]
    assert p.concatenate_all_remaining() == b"abcd"[1:]


@pytest.mark.parametrize("length", [0, 1, 3, 4, 6, 10])
def test_truncate(length):
    p = Parser([b"abc", b"def"])
    p.truncate(length)
    assert p.concatenate_all_remaining() == b"abcdef"[:length]


@pytest.mark.parametrize("length", [1, 2, 3, 5])
def test_truncate_after_prefix_removed(length):
    p = Parser([b"abcdef", b"ghij"])
    p.remove_prefix(2)
    p.truncate(length)
    assert p.concatenate_all_remaining() == b"abcdefghij"[2 : 2 + length]


def test_truncate_limits_reads():
    p = Parser([b"abcdef"])
    p.truncate(2)
    p.integer(4)
    assert p.has_error()


def test_serializer_keeps_order_of_integers_and_buffers():
    s = Serializer()
    s.integer(1, 1)
    s.buffer(b"xyz")
    s.integer(2, 1)
    assert s.finish() == [bytes([1]), b"xyz", bytes([2])]


def test_serializer_skips_empty_buffers():
    s = Serializer()
    s.buffer(b"")
    s.buffer([b"", b"q"])
    assert s.finish() == [b"q"]


def test_finish_resets_output():
    s = Serializer()
    s.buffer(b"data")
    s.finish()
    assert s.finish() == []


@dataclass
class _Pair:
    first: int = 0
    second: int = 0

    def parse(self, parser, scale=1):
        self.first = parser.integer(2) * scale
        self.second = parser.integer(1) * scale

    def serialize(self, serializer):
        serializer.integer(self.first, 2)
        serializer.integer(self.second, 1)


def test_serialize_parse_helpers_round_trip():
    original = _Pair(513, 7)
    out = _Pair()
    assert parse(out, serialize(original))
    assert out == original


def test_parse_forwards_extra_arguments():
    out = _Pair()
    assert parse(out, serialize(_Pair(5, 6)), 10)
    assert out == _Pair(50, 60)


def test_parse_reports_failure():
    out = _Pair()
    assert not parse(out, [b"\x00"])