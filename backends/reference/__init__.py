"""
Reference (oracle) side of the differential run.
"""

from pipeline import registry

from .runtime import InProcessOracle, ScriptOracle  # noqa: F401

registry.register("inprocess", InProcessOracle)
registry.register("rscript", ScriptOracle)

__all__ = ["InProcessOracle", "ScriptOracle"]
