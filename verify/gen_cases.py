"""
Deterministic matrix generation for differential runs.

Every input matrix is fully described by a `MatrixSpec`. Generation only
depends on the spec (no global RNG state), so the same spec always yields a
bit-identical matrix and a failing scenario can be replayed exactly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple

import numpy as np
import scipy.sparse as sp


# Below this fraction of non-zeros the runtime stores a block in sparse format.
SPARSE_THRESHOLD = 0.4


class InvalidSpecError(ValueError):
    pass


@dataclass(frozen=True)
class MatrixSpec:
    rows: int
    cols: int
    min_value: float = 0.0
    max_value: float = 1.0
    density: float = 1.0
    seed: int = 0

    def validate(self) -> None:
        if int(self.rows) <= 0 or int(self.cols) <= 0:
            raise InvalidSpecError(f"matrix dims must be positive: rows={self.rows} cols={self.cols}")
        d = float(self.density)
        if not (0.0 <= d <= 1.0):
            raise InvalidSpecError(f"density must be in [0, 1]: {self.density}")
        lo, hi = float(self.min_value), float(self.max_value)
        if not (math.isfinite(lo) and math.isfinite(hi)):
            raise InvalidSpecError(f"value range must be finite: [{lo}, {hi}]")
        if lo > hi:
            raise InvalidSpecError(f"empty value range: min_value={lo} > max_value={hi}")


class MatrixPayload:
    """
    A rows x cols matrix of float64 values.

    Cells that are not stored are implicitly zero; `cells()` exposes the
    stored (non-zero) cells keyed by (row, col).
    """

    __slots__ = ("rows", "cols", "values")

    def __init__(self, values: np.ndarray):
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"matrix payload must be 2-D, got shape {arr.shape}")
        self.values = arr
        self.rows = int(arr.shape[0])
        self.cols = int(arr.shape[1])

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "MatrixPayload":
        return cls(np.zeros((int(rows), int(cols)), dtype=np.float64))

    @classmethod
    def from_cells(cls, cells: Mapping[Tuple[int, int], float], rows: int, cols: int) -> "MatrixPayload":
        out = np.zeros((int(rows), int(cols)), dtype=np.float64)
        for (r, c), v in cells.items():
            if not (0 <= int(r) < rows and 0 <= int(c) < cols):
                raise ValueError(f"cell ({r}, {c}) out of bounds for {rows}x{cols} matrix")
            out[int(r), int(c)] = float(v)
        return cls(out)

    @classmethod
    def from_triples(cls, triples: Iterable[Tuple[int, int, float]], rows: int, cols: int) -> "MatrixPayload":
        """
        Build from (row, col, value) triples, rejecting duplicate keys.
        """
        cells: Dict[Tuple[int, int], float] = {}
        for r, c, v in triples:
            key = (int(r), int(c))
            if key in cells:
                raise ValueError(f"duplicate cell {key}")
            cells[key] = float(v)
        return cls.from_cells(cells, rows, cols)

    @classmethod
    def from_sparse(cls, mat: sp.spmatrix) -> "MatrixPayload":
        coo = sp.coo_matrix(mat)
        rows, cols = coo.shape
        return cls.from_triples(zip(coo.row.tolist(), coo.col.tolist(), coo.data.tolist()), rows, cols)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    @property
    def nnz(self) -> int:
        return int(np.count_nonzero(self.values))

    @property
    def sparsity(self) -> float:
        total = self.rows * self.cols
        return float(self.nnz) / float(total) if total else 0.0

    @property
    def is_sparse(self) -> bool:
        return self.sparsity < SPARSE_THRESHOLD

    def cells(self) -> Dict[Tuple[int, int], float]:
        rr, cc = np.nonzero(self.values)
        return {(int(r), int(c)): float(self.values[r, c]) for r, c in zip(rr, cc)}

    def get(self, row: int, col: int) -> float:
        return float(self.values[int(row), int(col)])

    def to_dense(self) -> np.ndarray:
        return np.array(self.values, copy=True)

    def to_sparse(self) -> sp.csr_matrix:
        return sp.csr_matrix(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MatrixPayload):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self.values, other.values))

    def __repr__(self) -> str:
        return f"MatrixPayload({self.rows}x{self.cols}, nnz={self.nnz})"


def generate(spec: MatrixSpec) -> MatrixPayload:
    """
    Generate the matrix described by `spec`.

    The non-zero positions and the values are both drawn from a generator
    seeded with `spec.seed`: a cell is kept iff its positional draw is
    <= density, and kept cells get a value uniform in [min_value, max_value].
    """
    spec.validate()
    rows, cols = int(spec.rows), int(spec.cols)
    rng = np.random.default_rng(int(spec.seed))
    keep = rng.random((rows, cols)) <= float(spec.density)
    if float(spec.density) == 0.0:
        keep[:] = False
    vals = rng.uniform(float(spec.min_value), float(spec.max_value), size=(rows, cols))
    return MatrixPayload(np.where(keep, vals, 0.0))


def pagerank_input_specs(rows: int, cols: int, density: float) -> Dict[str, MatrixSpec]:
    """
    Inputs of the power-iteration fixture: link matrix G, rank vector p,
    teleport vector e and dangling-mass vector u.
    """
    return {
        "G": MatrixSpec(rows=rows, cols=cols, min_value=1.0, max_value=1.0, density=density, seed=234),
        "p": MatrixSpec(rows=cols, cols=1, min_value=0.0, max_value=1e-14, density=1.0, seed=71),
        "e": MatrixSpec(rows=rows, cols=1, min_value=0.0, max_value=1e-14, density=1.0, seed=72),
        "u": MatrixSpec(rows=1, cols=cols, min_value=0.0, max_value=1e-14, density=1.0, seed=73),
    }


__all__ = [
    "SPARSE_THRESHOLD",
    "InvalidSpecError",
    "MatrixSpec",
    "MatrixPayload",
    "generate",
    "pagerank_input_specs",
]
