"""Linked signals: derived state that can also be written directly.

A LinkedSignal follows its source like a Computed, but set() and update()
override the derived value. The override holds until one of the signals
the computation depends on changes. While active that is a dependency
notification; while inactive, a read compares each dependency's change
counter with the one saved when the override was made. Either way the
computation then derives a fresh value and the override is gone, so reads
agree whether or not anyone is subscribed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, NamedTuple, TypeVar

from sigx import _tracking
from sigx._utils import EqualFn, SignalKind, is_signal
from sigx.computed import DerivedSignal

K = TypeVar("K")
T = TypeVar("T")

_UNSET = object()


class Previous(NamedTuple):
    """What a linked computation sees of its last derivation."""

    source: Any
    value: Any


class LinkedSignal(DerivedSignal[T]):
    """A derived signal with a writable override."""

    __slots__ = ("_source", "_computation", "_last_source", "_overridden", "_override_versions")

    _kind = SignalKind.LINKED

    def __init__(
        self,
        source: Callable[[], K],
        computation: Callable[[K, Previous | None], T] | None = None,
        equal: EqualFn | None = None,
    ) -> None:
        self._source = source
        self._computation = computation
        self._last_source = _UNSET
        self._overridden = False
        self._override_versions: dict = {}
        super().__init__(equal)

    @property
    def overridden(self) -> bool:
        return self._overridden

    def _evaluate(self) -> T:
        return self._derive(self._source())

    def _derive(self, source_value: K) -> T:
        if self._computation is None:
            value = source_value
        else:
            previous = None
            if self._last_source is not _UNSET:
                previous = Previous(self._last_source, self._value)
            # only the source is a dependency
            with _tracking.untracked():
                value = self._computation(source_value, previous)
        self._last_source = source_value
        self._overridden = False
        return value

    def _override_holds(self) -> bool:
        """Whether no dependency has changed since the override was made."""
        return self._overridden and all(
            dep._sync() == version for dep, version in self._override_versions.items()
        )

    def _seed(self) -> None:
        if self._override_holds():
            for dep in self._override_versions:
                _tracking.register(dep)
            return
        self._value = self._evaluate()

    def _refresh_inactive(self) -> T:
        if self._override_holds():
            return self._value
        return super()._refresh_inactive()

    def set(self, value: T) -> None:
        """Override the derived value. Equal values (per the policy) are ignored."""
        if self._equal(self._current(), value):
            return
        self._value = value
        self._version += 1
        self._overridden = True
        self._override_versions = {dep: dep._version for dep in self._dependencies}
        self._notify(value)

    def update(self, fn: Callable[[T], T]) -> None:
        """Override with fn(current value)."""
        self.set(fn(self._current()))

    def _describe(self) -> str:
        fn = self._source if self._computation is None else self._computation
        return getattr(fn, "__name__", repr(fn))


def linked_signal(
    source: Callable[[], K] | Mapping[str, Any],
    computation: Callable[[K, Previous | None], T] | None = None,
    *,
    equal: EqualFn | None = None,
) -> LinkedSignal:
    """Create a linked signal.

    Two forms:
    - linked_signal(fn): every signal fn reads is a dependency and fn's
      result is the value. fn may itself be a signal.
    - linked_signal(source, computation): source must be a signal and is the
      only dependency; the value is computation(source_value, previous),
      where previous is None the first time and otherwise
      Previous(source=<last source value>, value=<current value>).
      The same configuration may be passed as a mapping with "source",
      "computation" and optional "equal" keys.

    Usage:
        user_id = signal(1)
        form = linked_signal(lambda: {"id": user_id(), "name": ""})

        form.update(lambda f: {**f, "name": "Alice"})
        form()["name"]    # "Alice"
        user_id.set(2)
        form()            # {"id": 2, "name": ""}

        page = signal(0)
        selection = linked_signal(
            page,
            lambda p, prev: prev.value if prev and prev.source == p else None,
        )
    """
    if isinstance(source, Mapping):
        config = dict(source)
        unknown = set(config) - {"source", "computation", "equal"}
        if unknown or "source" not in config or "computation" not in config:
            raise TypeError(
                "linked_signal() config needs 'source' and 'computation' "
                f"(optional 'equal'), got keys {sorted(source)}"
            )
        if computation is not None:
            raise TypeError("linked_signal() got a config mapping and a computation")
        source = config["source"]
        computation = config["computation"]
        equal = config.get("equal", equal)
        if computation is None:
            raise TypeError("linked_signal() config 'computation' must be callable, got None")

    if not callable(source):
        raise TypeError(
            f"linked_signal() needs a computation or a signal, got {type(source).__name__}"
        )
    if computation is not None:
        if not is_signal(source):
            raise TypeError(
                f"linked_signal() source must be a signal when a computation is given, "
                f"got {type(source).__name__}"
            )
        if not callable(computation):
            raise TypeError(
                f"linked_signal() computation must be callable, got {type(computation).__name__}"
            )
    return LinkedSignal(source, computation, equal)
