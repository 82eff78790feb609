import os

import pytest

from minnet.errors import UnixError
from minnet.file_descriptor import FileDescriptor


@pytest.fixture
def pipe():
    r, w = os.pipe()
    reader, writer = FileDescriptor(r), FileDescriptor(w)
    yield reader, writer
    for fd in (reader, writer):
        if not fd.closed():
            fd.close()


def test_write_then_read(pipe):
    reader, writer = pipe
    assert writer.write(b"hello") == 5
    assert reader.read() == b"hello"
    assert writer.write_count() == 1
    assert reader.read_count() == 1
    assert not reader.eof()


def test_write_multiple_buffers(pipe):
    reader, writer = pipe
    assert writer.write([b"ab", b"", b"cde"]) == 5
    assert reader.read() == b"abcde"


def test_read_limit(pipe):
    reader, writer = pipe
    writer.write(b"abcdef")
    assert reader.read(4) == b"abcd"
    assert reader.read(4) == b"ef"
    assert reader.read_count() == 2


def test_eof_after_writer_closed(pipe):
    reader, writer = pipe
    writer.close()
    assert writer.closed()
    assert writer.eof()
    assert reader.read() == b""
    assert reader.eof()
    assert reader.read_count() == 1


def test_non_blocking_read_without_data(pipe):
    reader, _writer = pipe
    reader.set_blocking(False)
    assert reader.read() == b""
    assert not reader.eof()
    assert reader.read_count() == 0


def test_read_vectored_splits_data(pipe):
    reader, writer = pipe
    writer.write(b"0123456789")
    parts = reader.read_vectored([3, 4, 0])
    assert parts == [b"012", b"3456", b"789"]
    assert reader.read_count() == 1


def test_read_vectored_short_read(pipe):
    reader, writer = pipe
    writer.write(b"ab")
    assert reader.read_vectored([3, 4, 0]) == [b"ab", b"", b""]


def test_read_vectored_empty():
    r, w = os.pipe()
    with FileDescriptor(r) as reader, FileDescriptor(w):
        assert reader.read_vectored([]) == []
        assert reader.read_count() == 0


def test_duplicate_shares_state(pipe):
    reader, writer = pipe
    copy = writer.duplicate()
    assert copy.fd_num() == writer.fd_num()
    copy.write(b"x")
    assert writer.write_count() == 1
    copy.close()
    assert writer.closed()
    assert reader.read() == b"x"


def test_context_manager_closes():
    r, w = os.pipe()
    reader = FileDescriptor(r)
    with FileDescriptor(w) as writer:
        writer.write(b"z")
    assert writer.closed()
    assert reader.read() == b"z"
    assert reader.read() == b""
    assert reader.eof()
    reader.close()


def test_negative_fd_rejected():
    with pytest.raises(ValueError):
        FileDescriptor(-1)


def test_closed_fd_rejected():
    r, w = os.pipe()
    os.close(r)
    try:
        with pytest.raises(UnixError) as info:
            FileDescriptor(r)
        assert info.value.attempt == "fcntl"
    finally:
        os.close(w)


def test_double_close_raises(pipe):
    _reader, writer = pipe
    writer.close()
    with pytest.raises(UnixError) as info:
        writer.close()
    assert str(info.value).startswith("close: ")


def test_write_after_close_raises(pipe):
    _reader, writer = pipe
    writer.close()
    with pytest.raises(UnixError) as info:
        writer.write(b"data")
    assert info.value.attempt == "writev"