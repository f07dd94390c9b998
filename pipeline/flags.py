"""
Process-wide optimizer flag slot.

Adapters receive flags by value, but in-process compiler bindings read the
active flags from here. A scenario owns the slot for its whole duration:
`applied_flags` snapshots the current value, installs the scenario's flags,
and restores the snapshot on every exit path.
"""

from __future__ import annotations

import contextlib
import threading
from dataclasses import fields
from typing import Iterator

from pipeline.interfaces import OptimizerFlags


class OptimizerFlagsError(RuntimeError):
    pass


_LOCK = threading.RLock()
_CURRENT = OptimizerFlags()


def current_flags() -> OptimizerFlags:
    with _LOCK:
        return _CURRENT


def set_flags(flags: OptimizerFlags) -> OptimizerFlags:
    """
    Install `flags` and return the previous value.
    """
    global _CURRENT
    if not isinstance(flags, OptimizerFlags):
        raise OptimizerFlagsError(f"expected OptimizerFlags, got {type(flags).__name__}")
    for f in fields(flags):
        v = getattr(flags, f.name)
        if not isinstance(v, bool):
            raise OptimizerFlagsError(f"flag {f.name} must be a bool, got {v!r}")
    with _LOCK:
        prev = _CURRENT
        _CURRENT = flags
        return prev


@contextlib.contextmanager
def applied_flags(flags: OptimizerFlags) -> Iterator[OptimizerFlags]:
    with _LOCK:
        prev = set_flags(flags)
        try:
            yield flags
        finally:
            set_flags(prev)


__all__ = ["OptimizerFlagsError", "current_flags", "set_flags", "applied_flags"]
