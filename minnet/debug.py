"""Debug output that can be redirected, e.g. into a test harness."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Callable

DebugHandler = Callable[[str], None]


def _default_handler(message: str) -> None:
    sys.stderr.write(f"DEBUG: {message}\n")


@dataclass
class _DebugState:
    handler: DebugHandler = _default_handler


_state = _DebugState()


def debug_str(message: str) -> None:
    """Send a message to the current debug handler."""
    _state.handler(message)


def debug(fmt: str, *args: Any) -> None:
    """Format with ``str.format`` and send to the debug handler.

    Does nothing when Python runs with optimisation (``-O``).
    """
    if __debug__:
        debug_str(fmt.format(*args))


def set_debug_handler(handler: DebugHandler) -> DebugHandler:
    """Route debug messages to ``handler``; return the handler it replaces."""
    previous = _state.handler
    _state.handler = handler
    return previous


def reset_debug_handler() -> DebugHandler:
    """Route debug messages back to stderr; return the handler it replaces."""
    previous = _state.handler
    _state.handler = _default_handler
    return previous