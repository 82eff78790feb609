import pytest

from minnet.debug import debug, debug_str, reset_debug_handler, set_debug_handler


@pytest.fixture
def captured():
    messages = []
    set_debug_handler(messages.append)
    yield messages
    reset_debug_handler()


def test_debug_formats_arguments(captured):
    debug("x={} y={}", 3, "z")
    assert captured == ["x=3 y=z"]


def test_debug_str_goes_to_handler(captured):
    debug_str("one")
    debug_str("two")
    assert captured == ["one", "two"]


def test_default_handler_writes_to_stderr(capsys):
    reset_debug_handler()
    debug_str("hello")
    assert capsys.readouterr().err == "DEBUG: hello\n"


def test_reset_restores_default(capsys):
    messages = []
    set_debug_handler(messages.append)
    reset_debug_handler()
    debug("value {}", 1)
    assert messages == []
    assert capsys.readouterr().err == "DEBUG: value 1\n"