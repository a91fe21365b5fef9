"""Equality policy and signal kind discrimination."""

from __future__ import annotations

import enum
from typing import Callable, TypeVar

T = TypeVar("T")

EqualFn = Callable[[T, T], bool]


class SignalKind(enum.Enum):
    """Discriminant carried by every signal as its `kind` attribute."""

    WRITABLE = "writable"
    COMPUTED = "computed"
    LINKED = "linked"


def default_equal(prev: object, next_: object) -> bool:
    """Identity first, then ==. Equal values never notify.

    Because of ==, writing a new dict or list that compares equal to the
    current one is silent. Pass equal=lambda a, b: a is b to a signal that
    must notify on every new object.
    """
    return prev is next_ or prev == next_


def is_signal(value: object) -> bool:
    """Capability check: callable and carries a SignalKind marker.

    Deliberately not an isinstance() check, so any object exposing the
    marker and a zero-argument call is accepted.
    """
    return callable(value) and isinstance(getattr(value, "kind", None), SignalKind)
