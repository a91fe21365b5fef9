"""Writable signals: atomic state that tracks its readers.

When a signal is read inside a derived signal's evaluation, the read is
recorded in the open tracking frame. When the signal is written with a value
the equality policy considers different, every listener is called with the
new value, synchronously and in subscription order.

Listener errors are not caught: the first failing listener's exception
propagates to the caller of set(), and listeners after it are skipped.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from sigx import _tracking
from sigx._utils import EqualFn, SignalKind, default_equal

T = TypeVar("T")

Listener = Callable[[T], None]
Unsubscribe = Callable[[], None]


class ReadableSignal(Generic[T]):
    """Shared read/subscribe machinery for every signal kind."""

    __slots__ = ("_value", "_listeners", "_equal", "_version")

    _kind: SignalKind

    def __init__(self, value: T, equal: EqualFn | None = None) -> None:
        self._value = value
        # dict as an insertion-ordered set
        self._listeners: dict[Listener, None] = {}
        self._equal = equal if equal is not None else default_equal
        # bumped on every committed change
        self._version = 0

    @property
    def kind(self) -> SignalKind:
        return self._kind

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def __call__(self) -> T:
        """Read the value. If inside a tracking frame, registers the read."""
        _tracking.register(self)
        return self._value

    def get(self) -> T:
        return self()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register listener. Returns a function that removes it.

        Subscribing the same listener twice is a no-op, and so is calling
        the returned function twice.
        """
        self._listeners[listener] = None

        def _unsubscribe() -> None:
            self._listeners.pop(listener, None)

        return _unsubscribe

    def _notify(self, value: T) -> None:
        """Call every listener with value, in subscription order.

        Iterates a snapshot: listeners added during the pass wait for the
        next one, listeners removed during the pass are skipped. A listener
        that writes a new value starts a nested pass; the outer pass then
        stops, so no listener ever receives a value the signal no longer holds.
        """
        for listener in list(self._listeners):
            if self._value is not value:
                return
            if listener in self._listeners:
                listener(value)

    def _write(self, value: T) -> bool:
        """Store value if it differs from the current one. Returns whether it did."""
        if self._equal(self._value, value):
            return False
        self._value = value
        self._version += 1
        self._notify(value)
        return True

    def _sync(self) -> int:
        """Bring the value up to date and return the change counter."""
        return self._version

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"


class WritableSignal(ReadableSignal[T]):
    """A single mutable value with listeners."""

    __slots__ = ()

    _kind = SignalKind.WRITABLE

    def set(self, value: T) -> None:
        """Write a new value. Equal values (per the policy) are ignored."""
        self._write(value)

    def update(self, fn: Callable[[T], T]) -> None:
        """Write fn(current value)."""
        self.set(fn(self._value))


def signal(initial: T | None = None, *, equal: EqualFn | None = None) -> WritableSignal[T]:
    """Create a writable signal.

    Omitting initial gives a signal holding None.

    Usage:
        count = signal(0)
        unsubscribe = count.subscribe(lambda v: print("count:", v))
        count.set(1)                    # prints "count: 1"
        count.update(lambda v: v + 1)   # prints "count: 2"
        count.set(2)                    # equal, nothing printed
        unsubscribe()
    """
    return WritableSignal(initial, equal)
