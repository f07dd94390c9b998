"""
Absolute tolerances for candidate-vs-oracle comparison.

Algorithms are compared with a single absolute epsilon chosen from the scale
of their outputs on the standard fixtures. Unknown algorithms fall back to
the legacy default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Tolerances:
    atol: float

    def to_dict(self) -> Dict[str, float]:
        return {"atol": float(self.atol)}


_ALGORITHM_TOL: Dict[str, Tolerances] = {
    # Outputs reach ~1e12 after 10 iterations on the 1468x1468 fixture.
    "pagerank": Tolerances(1e-1),
}

_LEGACY_DEFAULT = Tolerances(1e-10)


def tolerance_for(algorithm: str) -> Tolerances:
    return _ALGORITHM_TOL.get(str(algorithm).lower(), _LEGACY_DEFAULT)


__all__ = ["Tolerances", "tolerance_for"]
