"""
Cell-wise comparison of candidate output vs oracle output.

The tolerance is absolute only: PageRank outputs on the standard fixture live
around 1e12, so relative error is meaningless near zero cells and the
historical suite has always gated on a max absolute difference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np

from verify.gen_cases import MatrixPayload


class ShapeMismatchError(ValueError):
    def __init__(self, candidate_shape: Tuple[int, int], oracle_shape: Tuple[int, int]):
        self.candidate_shape = tuple(candidate_shape)
        self.oracle_shape = tuple(oracle_shape)
        super().__init__(f"shape mismatch: candidate {self.candidate_shape} vs oracle {self.oracle_shape}")


class ToleranceExceededError(AssertionError):
    def __init__(self, verdict: "ComparisonVerdict"):
        self.verdict = verdict
        super().__init__(verdict.summary)


MismatchedCell = Tuple[int, int, float, float]


@dataclass(frozen=True)
class ComparisonVerdict:
    passed: bool
    max_abs_diff: float
    abs_tolerance: float
    # (row, col, expected, actual), row-major, capped at the sample limit
    mismatched_cells: Tuple[MismatchedCell, ...] = field(default_factory=tuple)
    num_mismatched: int = 0

    @property
    def summary(self) -> str:
        if self.passed:
            return f"ok (max_abs_diff={self.max_abs_diff:.6g} <= {self.abs_tolerance:g})"
        return (
            f"{self.num_mismatched} cell(s) exceed abs tolerance {self.abs_tolerance:g} "
            f"(max_abs_diff={self.max_abs_diff:.6g})"
        )

    def raise_for_status(self) -> None:
        if not self.passed:
            raise ToleranceExceededError(self)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "passed": bool(self.passed),
            "max_abs_diff": float(self.max_abs_diff),
            "abs_tolerance": float(self.abs_tolerance),
            "num_mismatched": int(self.num_mismatched),
            "mismatched_cells": [
                {"row": r, "col": c, "expected": e, "actual": a} for (r, c, e, a) in self.mismatched_cells
            ],
        }


def _abs_diff(candidate: np.ndarray, oracle: np.ndarray) -> np.ndarray:
    # Matching non-finite cells (NaN vs NaN, +Inf vs +Inf) count as equal;
    # any other non-finite pairing is an infinite difference.
    c_nonfinite = ~np.isfinite(candidate)
    o_nonfinite = ~np.isfinite(oracle)
    diff = np.zeros(candidate.shape, dtype=np.float64)
    finite = ~(c_nonfinite | o_nonfinite)
    diff[finite] = np.abs(candidate[finite] - oracle[finite])
    either = c_nonfinite | o_nonfinite
    if np.any(either):
        same = (candidate == oracle) | (np.isnan(candidate) & np.isnan(oracle))
        diff[either & ~same] = np.inf
    return diff


def compare(
    candidate: MatrixPayload,
    oracle: MatrixPayload,
    abs_tolerance: float,
    *,
    max_cells: int = 32,
) -> ComparisonVerdict:
    """
    Compare every cell of the zero-filled union of both matrices.

    Passes iff max |candidate - oracle| <= abs_tolerance. Raises
    ShapeMismatchError when the matrices are not the same shape.
    """
    if candidate.shape != oracle.shape:
        raise ShapeMismatchError(candidate.shape, oracle.shape)
    tol = float(abs_tolerance)
    if not tol >= 0.0:
        raise ValueError(f"abs_tolerance must be >= 0: {abs_tolerance}")

    c = candidate.values
    o = oracle.values
    diff = _abs_diff(c, o)
    max_abs = float(diff.max()) if diff.size else 0.0

    bad = diff > tol
    num_bad = int(np.count_nonzero(bad))
    cells: List[MismatchedCell] = []
    if num_bad:
        for r, col in np.argwhere(bad)[: max(0, int(max_cells))]:
            cells.append((int(r), int(col), float(o[r, col]), float(c[r, col])))
    return ComparisonVerdict(
        passed=(num_bad == 0),
        max_abs_diff=max_abs,
        abs_tolerance=tol,
        mismatched_cells=tuple(cells),
        num_mismatched=num_bad,
    )


__all__ = [
    "ShapeMismatchError",
    "ToleranceExceededError",
    "ComparisonVerdict",
    "compare",
]
