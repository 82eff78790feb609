"""An event loop that polls file descriptors and runs callbacks."""

from __future__ import annotations

import enum
import errno
import os
import select
import socket
import sys
import weakref
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from minnet.errors import UnixError
from minnet.file_descriptor import FileDescriptor

Callback = Callable[[], None]
Interest = Callable[[], bool]

_ALWAYS_REPORTED = select.POLLERR | select.POLLHUP | select.POLLNVAL


def _always() -> bool:
    return True


def _run(callback: Optional[Callback]) -> None:
    if callback is not None:
        callback()


class Direction(enum.Enum):
    """Whether a rule waits for its descriptor to be readable or writable."""

    IN = "in"
    OUT = "out"


class Result(enum.Enum):
    """The outcome of one call to EventLoop.wait_next_event."""

    SUCCESS = "success"  # at least one rule was triggered
    TIMEOUT = "timeout"  # no rule was triggered before the timeout
    EXIT = "exit"  # every rule was cancelled or uninterested


@dataclass(eq=False)
class _BasicRule:
    category_id: int
    interest: Interest
    callback: Callback
    cancel_requested: bool = field(default=False, init=False)


@dataclass(eq=False)
class _FDRule(_BasicRule):
    fd: FileDescriptor
    direction: Direction
    on_cancel: Optional[Callback]
    on_error: Optional[Callback]

    def service_count(self) -> int:
        """How often the descriptor was read or written, by the rule's direction."""
        if self.direction is Direction.IN:
            return self.fd.read_count()
        return self.fd.write_count()


class RuleHandle:
    """A handle that can cancel a rule, if the rule still exists."""

    def __init__(self, rule: _BasicRule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


class EventLoop:
    """Waits for events on file descriptors and runs the matching callbacks."""

    MAX_CATEGORIES = 64
    BUSY_WAIT_LIMIT = 128

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._non_fd_rules: list[_BasicRule] = []

    def add_category(self, name: str) -> int:
        """Register a category name for rules; return its id."""
        if len(self._categories) >= self.MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: Union[int, str]) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def _name(self, rule: _BasicRule) -> str:
        return self._categories[rule.category_id]

    def add_rule(
        self,
        category: Union[int, str],
        callback: Callback,
        interest: Interest = _always,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` while ``interest()`` holds.

        ``category`` is a category id, or a name for a new category.
        """
        rule = _BasicRule(self._category_id(category), interest, callback)
        self._non_fd_rules.append(rule)
        return RuleHandle(rule)

    def add_fd_rule(
        self,
        category: Union[int, str],
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Optional[Callback] = None,
        error: Optional[Callback] = None,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` when ``fd`` is ready in ``direction``.

        ``cancel`` runs when the rule ends on its own (EOF, hangup, closure);
        ``error`` runs first when the descriptor reports an error.
        """
        rule = _FDRule(
            self._category_id(category),
            interest,
            callback,
            fd=fd.duplicate(),
            direction=direction,
            on_cancel=cancel,
            on_error=error,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def _run_non_fd_rules(self) -> bool:
        for rule in list(self._non_fd_rules):
            if rule.cancel_requested:
                self._non_fd_rules.remove(rule)
                continue

            fired = False
            iterations = 0
            while rule.interest():
                if iterations >= self.BUSY_WAIT_LIMIT:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations + 1} iterations"
                    )
                iterations += 1
                fired = True
                rule.callback()

            if fired:
                return True  # only serve one rule on each iteration
        return False

    def _report_fd_error(self, rule: _FDRule) -> None:
        name = self._name(rule)
        try:
            sock = socket.socket(fileno=rule.fd.fd_num())
        except OSError as exc:
            if exc.errno == errno.ENOTSOCK:
                sys.stderr.write(f'error on polled file descriptor for rule "{name}"\n')
                return
            raise UnixError("getsockopt", exc.errno or 0) from exc
        try:
            socket_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno or 0) from exc
        finally:
            sock.detach()
        if socket_error:
            sys.stderr.write(
                f'error on polled socket for rule "{name}": {os.strerror(socket_error)}\n'
            )

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve at most one rule, waiting up to ``timeout_ms`` (negative: forever)."""
        if self._run_non_fd_rules():
            return Result.SUCCESS

        polled: list[tuple[_FDRule, int]] = []
        something_to_poll = False
        for rule in list(self._fd_rules):
            if rule.cancel_requested:
                # cancelled from outside: no cancellation callback
                self._fd_rules.remove(rule)
                continue
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                _run(rule.on_cancel)
                self._fd_rules.remove(rule)
                continue
            if rule.interest():
                events = select.POLLIN if rule.direction is Direction.IN else select.POLLOUT
                something_to_poll = True
            else:
                events = 0  # still polled, so errors are seen
            polled.append((rule, events))

        if not something_to_poll:
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in polled:
            masks[rule.fd.fd_num()] = masks.get(rule.fd.fd_num(), 0) | events
        poller = select.poll()
        for fd_num, mask in masks.items():
            poller.register(fd_num, mask)
        try:
            ready = dict(poller.poll(timeout_ms))
        except OSError as exc:
            raise UnixError("poll", exc.errno or 0) from exc
        if not ready:
            return Result.TIMEOUT

        for rule, events in polled:
            revents = ready.get(rule.fd.fd_num(), 0) & (events | _ALWAYS_REPORTED)

            if revents & (select.POLLERR | select.POLLNVAL):
                self._report_fd_error(rule)
                _run(rule.on_error)
                _run(rule.on_cancel)
                self._fd_rules.remove(rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                # only a hangup: this descriptor will never be ready again
                _run(rule.on_cancel)
                self._fd_rules.remove(rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if (
                    count_before == rule.service_count()
                    and not rule.fd.closed()
                    and rule.interest()
                ):
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS  # only serve one rule on each iteration

        return Result.SUCCESS