"""
Persisted matrices exchanged with the external programs.

Each matrix is written as a Matrix Market file plus a JSON `<path>.mtd`
metadata sidecar (dimensions, nnz, format). Outputs are read back according
to their sidecar: `mm`, `text` (1-based `i j v` lines) or `csv`. Distributed
runs may write a directory of part files instead of a single file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import scipy.io
import scipy.sparse as sp

from verify.gen_cases import MatrixPayload


def metadata_path(path: Path) -> Path:
    p = Path(path)
    return p.with_name(p.name + ".mtd")


def write_matrix(path: Path, matrix: MatrixPayload, *, with_mtd: bool = True) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        scipy.io.mmwrite(f, sp.coo_matrix(matrix.values), precision=17)
    if with_mtd:
        meta: Dict[str, Any] = {
            "data_type": "matrix",
            "value_type": "double",
            "rows": matrix.rows,
            "cols": matrix.cols,
            "nnz": matrix.nnz,
            "format": "mm",
        }
        metadata_path(path).write_text(json.dumps(meta, indent=2), encoding="utf-8")
    return path


def read_metadata(path: Path) -> Dict[str, Any]:
    mtd = metadata_path(path)
    if not mtd.exists():
        return {}
    obj = json.loads(mtd.read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise ValueError(f"metadata {mtd} is not a JSON object")
    return obj


def _data_files(path: Path) -> List[Path]:
    if path.is_dir():
        return sorted(
            p for p in path.iterdir() if p.is_file() and not p.name.startswith(("_", ".")) and not p.name.endswith(".crc")
        )
    return [path]


def _read_text_cells(path: Path, rows: int, cols: int) -> MatrixPayload:
    triples = []
    for part in _data_files(path):
        for line in part.read_text(encoding="utf-8").splitlines():
            s = line.strip()
            if not s or s.startswith("%"):
                continue
            i, j, v = s.split()[:3]
            triples.append((int(i) - 1, int(j) - 1, float(v)))
    return MatrixPayload.from_triples(triples, rows, cols)


def _read_csv(path: Path) -> MatrixPayload:
    chunks = [np.loadtxt(p, delimiter=",", dtype=np.float64, ndmin=2) for p in _data_files(path)]
    if not chunks:
        raise ValueError(f"csv matrix {path} has no part files")
    return MatrixPayload(np.vstack(chunks))


def _read_mm_part(path: Path) -> MatrixPayload:
    with Path(path).open("rb") as f:
        obj = scipy.io.mmread(f)
    if sp.issparse(obj):
        return MatrixPayload.from_sparse(obj)
    return MatrixPayload(np.asarray(obj, dtype=np.float64))


def _read_mm(parts: List[Path]) -> MatrixPayload:
    # Each part carries the full matrix header and a disjoint subset of the cells.
    out = _read_mm_part(parts[0])
    if len(parts) == 1:
        return out
    values = out.values.copy()
    for part in parts[1:]:
        m = _read_mm_part(part)
        if m.shape != out.shape:
            raise ValueError(f"mm part {part} has shape {m.shape}, expected {out.shape}")
        overlap = (values != 0) & (m.values != 0)
        if np.any(overlap):
            r, c = (int(x) for x in np.argwhere(overlap)[0])
            raise ValueError(f"mm part {part} repeats cell ({r}, {c})")
        values += m.values
    return MatrixPayload(values)


def read_matrix(path: Path) -> MatrixPayload:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"matrix not found: {path}")
    meta = read_metadata(path)
    fmt = str(meta.get("format", "mm")).lower()
    rows = int(meta.get("rows", 0) or 0)
    cols = int(meta.get("cols", 0) or 0)
    parts = _data_files(path)
    if not parts:
        raise ValueError(f"matrix {path} has no part files")
    if fmt == "mm":
        out = _read_mm(parts)
    elif fmt in {"text", "ijv"}:
        if rows <= 0 or cols <= 0:
            raise ValueError(f"text matrix {path} needs rows/cols in its metadata")
        out = _read_text_cells(path, rows, cols)
    elif fmt == "csv":
        out = _read_csv(path)
    else:
        raise ValueError(f"unsupported matrix format {fmt!r} for {path}")
    if rows and cols and out.shape != (rows, cols):
        raise ValueError(f"matrix {path} has shape {out.shape}, metadata says {(rows, cols)}")
    return out


__all__ = ["metadata_path", "write_matrix", "read_metadata", "read_matrix"]
