"""
Reference evaluation of the power-iteration program.

Every step is evaluated as a separate elementary operation (matrix products,
scaling, addition) with no fusion, so the result is an independent baseline
for the generated kernels.
"""

from __future__ import annotations

from typing import Mapping

import numpy as np

from verify.gen_cases import MatrixPayload


def _as_operand(m: MatrixPayload):
    # Sparse G goes through scipy's CSR product; everything else stays dense.
    return m.to_sparse() if m.is_sparse else m.to_dense()


def pagerank_reference(
    G: MatrixPayload,
    p: MatrixPayload,
    e: MatrixPayload,
    u: MatrixPayload,
    *,
    alpha: float,
    maxiter: int,
) -> MatrixPayload:
    """
    p <- alpha * (G %*% p) + (1 - alpha) * (e %*% (u %*% p)), `maxiter` times.

    `e %*% u` is the teleport matrix; multiplying `u` with `p` first keeps the
    dangling-mass correction at O(n) per iteration.
    """
    if G.cols != p.rows or p.cols != 1:
        raise ValueError(f"G {G.shape} and p {p.shape} are not conformable")
    if e.shape != (G.rows, 1) or u.shape != (1, p.rows):
        raise ValueError(f"teleport vectors e {e.shape} / u {u.shape} do not match G {G.shape}")
    if int(maxiter) < 0:
        raise ValueError(f"maxiter must be >= 0: {maxiter}")

    a = float(alpha)
    g = _as_operand(G)
    pv = p.to_dense()
    ev = e.to_dense()
    uv = u.to_dense()
    for _ in range(int(maxiter)):
        gp = np.asarray(g @ pv)
        mass = uv @ pv
        pv = a * gp + (1.0 - a) * (ev @ mass)
    return MatrixPayload(pv)


def run_pagerank_reference(inputs: Mapping[str, MatrixPayload], *, alpha: float, maxiter: int) -> MatrixPayload:
    missing = [k for k in ("G", "p", "e", "u") if k not in inputs]
    if missing:
        raise KeyError(f"missing pagerank inputs: {missing}")
    return pagerank_reference(inputs["G"], inputs["p"], inputs["e"], inputs["u"], alpha=alpha, maxiter=maxiter)


__all__ = ["pagerank_reference", "run_pagerank_reference"]
