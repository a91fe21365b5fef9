"""Computed signals: derived state with automatic dependency tracking.

A derived signal wraps a computation and is in one of two states:

- INACTIVE (no listeners): nothing is subscribed upstream. Every read runs
  the computation again, so the value is always fresh.
- ACTIVE (one or more listeners): subscribed to every signal the
  computation read last time. A dependency change recomputes the value,
  re-subscribes if the set of dependencies moved, and notifies listeners
  when the equality policy says the value changed. Reads return the cache.

The first subscribe() activates the signal and delivers the current value
to that listener synchronously; removing the last listener deactivates it
and releases every upstream subscription.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, TypeVar

from sigx import _tracking
from sigx._utils import EqualFn, SignalKind
from sigx.signal import Listener, ReadableSignal, Unsubscribe

T = TypeVar("T")

logger = logging.getLogger("sigx.computed")


class SignalState(enum.Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


class DerivedSignal(ReadableSignal[T]):
    """Base for signals whose value comes from a computation.

    Subclasses implement _evaluate(), which runs inside whatever tracking
    frame the caller opened.
    """

    __slots__ = ("_state", "_dependencies", "_cleanups", "_linking")

    def __init__(self, equal: EqualFn | None = None) -> None:
        super().__init__(None, equal)
        self._state = SignalState.INACTIVE
        self._cleanups: dict[ReadableSignal, Unsubscribe] = {}
        self._linking = False
        self._dependencies = _tracking.scan(self._seed)

    @property
    def state(self) -> SignalState:
        return self._state

    @property
    def dependencies(self) -> frozenset[ReadableSignal]:
        """Signals read by the most recent evaluation."""
        return frozenset(self._dependencies)

    def _evaluate(self) -> T:
        raise NotImplementedError

    def _seed(self) -> None:
        self._value = self._evaluate()

    def _refresh_inactive(self) -> T:
        with _tracking.frame() as deps:
            value = self._evaluate()
        self._dependencies = deps
        return value

    def _current(self) -> T:
        if self._state is SignalState.INACTIVE:
            value = self._refresh_inactive()
            # a lazy read that finds a new value counts as a change
            if not self._equal(self._value, value):
                self._version += 1
            self._value = value
        return self._value

    def _sync(self) -> int:
        if self._state is SignalState.INACTIVE:
            self._current()
        return self._version

    def __call__(self) -> T:
        """Read the value: fresh while inactive, cached while active."""
        _tracking.register(self)
        return self._current()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register listener. Returns a function that removes it.

        The first listener activates the signal and is called with the
        current value before subscribe() returns.
        """
        activating = self._state is SignalState.INACTIVE
        if activating:
            self._activate()
        self._listeners[listener] = None

        def _unsubscribe() -> None:
            self._listeners.pop(listener, None)
            if not self._listeners and self._state is SignalState.ACTIVE:
                self._deactivate()

        if activating:
            try:
                listener(self._value)
            except Exception:
                _unsubscribe()
                raise
        return _unsubscribe

    def _activate(self) -> None:
        self._dependencies = _tracking.scan(self._seed)
        for dep in self._dependencies:
            self._link(dep)
        self._state = SignalState.ACTIVE
        logger.debug("Activated %r with %d dependencies", self, len(self._dependencies))

    def _deactivate(self) -> None:
        self._state = SignalState.INACTIVE
        cleanups = list(self._cleanups.values())
        self._cleanups.clear()
        for cleanup in cleanups:
            cleanup()
        logger.debug("Deactivated %r", self)

    def _link(self, dep: ReadableSignal) -> None:
        # Deps that activate on this subscribe deliver their value right away;
        # _linking makes the handler ignore that delivery.
        self._linking = True
        try:
            self._cleanups[dep] = dep.subscribe(self._on_dependency_changed)
        finally:
            self._linking = False

    def _relink(self, deps: set[ReadableSignal]) -> None:
        for dep in self._dependencies - deps:
            cleanup = self._cleanups.pop(dep, None)
            if cleanup is not None:
                cleanup()
        for dep in deps - self._dependencies:
            self._link(dep)
        self._dependencies = deps

    def _on_dependency_changed(self, _value: object) -> None:
        if self._state is not SignalState.ACTIVE or self._linking:
            return

        with _tracking.frame() as deps:
            next_value = self._evaluate()
        self._relink(deps)

        self._write(next_value)

    def _describe(self) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._describe()}, {self._state.value}, value={self._value!r})"


class Computed(DerivedSignal[T]):
    """A read-only signal derived from other signals."""

    __slots__ = ("_fn",)

    _kind = SignalKind.COMPUTED

    def __init__(self, fn: Callable[[], T], equal: EqualFn | None = None) -> None:
        self._fn = fn
        super().__init__(equal)

    def _evaluate(self) -> T:
        return self._fn()

    def _describe(self) -> str:
        return getattr(self._fn, "__name__", repr(self._fn))


def computed(fn: Callable[[], T] | None = None, *, equal: EqualFn | None = None):
    """Factory/decorator creating a Computed from a function.

    Usage:
        count = signal(1)

        @computed
        def doubled():
            return count() * 2

        doubled()      # 2
        count.set(5)
        doubled()      # 10

        @computed(equal=lambda a, b: abs(a - b) < 1)
        def smoothed():
            return count() / 3
    """
    if fn is None:
        return lambda f: Computed(f, equal)
    return Computed(fn, equal)
