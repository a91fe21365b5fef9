"""Dependency tracking engine: the heart of sigx.

Uses a contextvar to hold the currently-recording frame: the set of signals
read while a derived signal's computation runs. Opening a frame sets the var,
closing it resets the token, so frames nest and a read only ever lands in the
innermost open frame.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

if TYPE_CHECKING:
    from sigx.signal import ReadableSignal

logger = logging.getLogger("sigx.tracking")

# The frame collecting reads for the computation currently being evaluated.
# None when nothing is recording (or inside an untracked() block).
current_frame: contextvars.ContextVar[set[ReadableSignal] | None] = contextvars.ContextVar(
    "current_frame", default=None
)


def is_open() -> bool:
    """Whether a frame is currently recording reads."""
    return current_frame.get() is not None


def register(signal: ReadableSignal) -> None:
    """Record a read of signal in the innermost open frame. No-op otherwise."""
    frame_ = current_frame.get()
    if frame_ is not None:
        frame_.add(signal)


@contextmanager
def frame() -> Iterator[set[ReadableSignal]]:
    """Open a recording frame for the duration of the block.

    Yields the set that collects every signal read inside the block.
    Exceptions raised in the block propagate; the frame is closed either way.

    Usage:
        with frame() as deps:
            value = fn()
    """
    deps: set[ReadableSignal] = set()
    token = current_frame.set(deps)
    try:
        yield deps
    finally:
        current_frame.reset(token)


def scan(computation: Callable[[], object]) -> set[ReadableSignal]:
    """Run computation once and return the signals it read.

    A computation that raises is not an error here: the exception is logged
    and the signals read before it are returned. The set may therefore be
    smaller than the computation's real dependencies.
    """
    with frame() as deps:
        try:
            computation()
        except Exception:
            logger.warning(
                "Dependency scan of %r raised; recorded %d dependencies before the error",
                computation, len(deps), exc_info=True,
            )
    return deps


@contextmanager
def untracked() -> Iterator[None]:
    """Hide the enclosing frame: reads inside the block record nothing.

    Usage:
        a = signal(1)
        b = signal(10)

        @computed
        def total():
            with untracked():
                scale = b()  # not a dependency
            return a() * scale
    """
    token = current_frame.set(None)
    try:
        yield
    finally:
        current_frame.reset(token)
