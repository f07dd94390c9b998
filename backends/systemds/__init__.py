"""
SystemDS-style compiler/runtime backend (candidate side of the differential run).
"""

from pipeline import registry

from .matrix_io import read_matrix, write_matrix  # noqa: F401
from .runtime import SystemDSCandidate  # noqa: F401
from .stats import parse_heavy_hitters  # noqa: F401

registry.register("systemds", SystemDSCandidate)

__all__ = [
    "SystemDSCandidate",
    "parse_heavy_hitters",
    "read_matrix",
    "write_matrix",
]
