"""Textual integration for sigx. Opt-in, requires textual.

Bridges a signal's subscribe()/read pair to Textual widgets. Any signal
kind works: the listener receives the new value, and calling the signal
right after a notification returns that same value.

Guarding (not running, paused, NoMatches) is enforced here, not at callsites.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, TypeVar

from textual.css.query import NoMatches

from sigx.signal import ReadableSignal, Unsubscribe

T = TypeVar("T")

logger = logging.getLogger("sigx.textual")

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend bound effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def bind(
    app,
    sig: ReadableSignal[T],
    effect: Callable[[T], None],
    *,
    fire_immediately: bool = True,
) -> Unsubscribe:
    """Call effect(value) whenever sig changes. Returns the unsubscribe function.

    With fire_immediately, effect also runs once with the current value
    before bind() returns. Effects are skipped while the app is not running
    or paused; NoMatches from widget queries is swallowed, other errors
    propagate to whoever wrote the signal.

    Usage:
        class CounterApp(App):
            def on_mount(self):
                self._unbind = bind(self, count, self._show)

            def _show(self, value):
                self.query_one("#count", Label).update(str(value))
    """
    subscribed = False
    fired = False

    def _run(value: T) -> None:
        nonlocal fired
        fired = True
        if not is_safe(app):
            return
        try:
            effect(value)
        except NoMatches:
            logger.debug("Skipped %r: widget not mounted", effect)

    def _listener(value: T) -> None:
        # Derived signals deliver their value during their first subscribe().
        if not subscribed:
            if fire_immediately:
                _run(value)
            return
        _run(value)

    unsubscribe = sig.subscribe(_listener)
    subscribed = True
    if fire_immediately and not fired:
        _run(sig())
    return unsubscribe
