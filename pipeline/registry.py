"""
Execution adapter registry (adapter name -> factory).

MVP: a simple in-process dict. Backend packages register their adapters on
import; built-in backends are imported lazily on first lookup so callers
don't need to import a backend module just to register it.
"""

from __future__ import annotations

import importlib
from typing import Any, Callable, Dict, List

from pipeline.interfaces import ExecutionAdapter

AdapterFactory = Callable[..., ExecutionAdapter]

_REGISTRY: Dict[str, AdapterFactory] = {}

_LAZY = {
    "systemds": "backends.systemds",
    "inprocess": "backends.reference",
    "rscript": "backends.reference",
}


def register(name: str, factory: AdapterFactory) -> None:
    _REGISTRY[str(name)] = factory


def create(name: str, **kwargs: Any) -> ExecutionAdapter:
    if name not in _REGISTRY:
        mod = _LAZY.get(name)
        if mod:
            importlib.import_module(mod)
    if name not in _REGISTRY:
        raise KeyError(f"execution adapter not registered: {name}")
    return _REGISTRY[name](**kwargs)


def available() -> List[str]:
    return sorted(set(_REGISTRY) | set(_LAZY))


__all__ = ["AdapterFactory", "register", "create", "available"]
