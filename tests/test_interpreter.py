import numpy as np
import pytest

from verify.gen_cases import MatrixPayload, MatrixSpec, generate, pagerank_input_specs
from verify.interpreter import pagerank_reference, run_pagerank_reference


def _naive(G, p, e, u, alpha, maxiter):
    p = p.copy()
    for _ in range(maxiter):
        p = alpha * (G @ p) + (1 - alpha) * ((e @ u) @ p)
    return p


@pytest.mark.parametrize("density", [0.41, 0.05])
def test_reference_matches_naive_power_iteration(density):
    inputs = {n: generate(s) for n, s in pagerank_input_specs(60, 60, density).items()}
    out = run_pagerank_reference(inputs, alpha=0.85, maxiter=10)
    expected = _naive(*(inputs[n].values for n in ("G", "p", "e", "u")), 0.85, 10)
    assert out.shape == (60, 1)
    assert np.allclose(out.values, expected, rtol=1e-12, atol=0.0)


def test_zero_iterations_returns_initial_vector():
    p = generate(MatrixSpec(rows=4, cols=1, seed=1))
    G = generate(MatrixSpec(rows=4, cols=4, seed=2))
    e = generate(MatrixSpec(rows=4, cols=1, seed=3))
    u = generate(MatrixSpec(rows=1, cols=4, seed=4))
    assert pagerank_reference(G, p, e, u, alpha=0.85, maxiter=0) == p


def test_reference_rejects_nonconformable_inputs():
    G = MatrixPayload.zeros(3, 3)
    with pytest.raises(ValueError):
        pagerank_reference(G, MatrixPayload.zeros(4, 1), MatrixPayload.zeros(3, 1), MatrixPayload.zeros(1, 4), alpha=0.5, maxiter=1)
    with pytest.raises(KeyError):
        run_pagerank_reference({"G": G}, alpha=0.5, maxiter=1)
