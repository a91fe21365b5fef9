"""sigx: fine-grained reactive signals for Python."""

from importlib.metadata import version as _version

__version__ = _version("sigx")

from sigx._tracking import untracked
from sigx._utils import SignalKind, default_equal, is_signal
from sigx.signal import WritableSignal, signal
from sigx.computed import Computed, SignalState, computed
from sigx.linked import LinkedSignal, Previous, linked_signal
# textual NOT auto-imported: opt-in only

__all__ = [
    "WritableSignal",
    "signal",
    "Computed",
    "computed",
    "LinkedSignal",
    "linked_signal",
    "Previous",
    "SignalKind",
    "SignalState",
    "is_signal",
    "default_equal",
    "untracked",
]
